#!/usr/bin/env python3
"""
Scoring endpoints - scoring-model step of a search.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from core.access import Identity
from core.app_context import AppContext
from ..dependencies import get_app_context, get_identity
from ..services.search_service import SearchService
from ..models.requests import ScoringModelRequest
from ..models.responses import ScoringModelResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/scoring", tags=["scoring"])


@router.post("/model", response_model=ScoringModelResponse)
def build_scoring_model(
    body: ScoringModelRequest,
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context)
):
    """
    Build the scoring model from the search's cached parse response.

    - 409: parse cache missing or invalid (run the parse step first)
    - 502: calculation service failed (recorded on the search)
    - 503: calculation service not configured
    """
    SearchService(ctx).require_writable_search(identity, body.search_id)
    result = ctx.scoring_model_step.run(body.search_id)
    return ScoringModelResponse(
        search_id=result.search_id,
        scoring_model_id=result.scoring_model_id,
        scoring_model_version=result.scoring_model_version
    )
