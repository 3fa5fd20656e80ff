#!/usr/bin/env python3
"""
Credit endpoints - balance, history and metered profile reveals.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from core.access import Identity
from core.app_context import AppContext
from ..config import get_config
from ..dependencies import get_app_context, get_identity
from ..services.credit_service import CreditService
from ..models.requests import LinkedInOpenRequest
from ..models.responses import (
    CreditBalanceResponse,
    CreditHistoryResponse,
    CreditConsumeResponse,
)
from .search import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/credits", tags=["credits"])


def _credits_rate_limit() -> str:
    return get_config().web.credits_rate_limit


@router.get("/balance", response_model=CreditBalanceResponse)
def get_credit_balance(
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context)
):
    """Current credit balance of the caller's organization."""
    return CreditService(ctx).get_balance(identity)


@router.get("/history", response_model=CreditHistoryResponse)
def get_credit_history(
    credit_type: Optional[str] = Query(default=None, description="Filter by credit type"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context)
):
    """Ledger entries, newest first."""
    return CreditService(ctx).get_history(identity, credit_type, limit, offset)


@router.post("/linkedin-open", response_model=CreditConsumeResponse)
@limiter.limit(_credits_rate_limit)
def open_linkedin_profile(
    request: Request,
    body: LinkedInOpenRequest,
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context)
):
    """
    Deduct credits for opening a candidate's LinkedIn profile.

    Returns 402 when the organization cannot afford it; nothing is charged then.
    """
    return CreditService(ctx).open_linkedin_profile(identity, body.candidate_id, body.linkedin_url)
