#!/usr/bin/env python3
"""
Credit service - HTTP-facing wrapper around the credit ledger.
"""

import logging
from typing import Optional

from fastapi import HTTPException

from core.access import Identity, require_org_write_access
from core.app_context import AppContext
from core.credits import (
    CreditOperationResult,
    INSUFFICIENT_CREDITS,
    NOT_AUTHENTICATED,
    NOT_AUTHORIZED,
    INVALID_AMOUNT,
    INVALID_CREDIT_TYPE,
    INVALID_TRANSACTION_TYPE,
)
from core.errors import (
    NotAuthenticatedError,
    NotAuthorizedError,
    InsufficientCreditsError,
)
from ..models.responses import (
    CreditBalanceResponse,
    CreditTransactionItem,
    CreditHistoryResponse,
    CreditConsumeResponse,
)
from ..utils import safe_datetime_iso

logger = logging.getLogger(__name__)


def _require_member(identity: Optional[Identity]) -> Identity:
    """Credit data is visible to organization members only, not to previews."""
    if identity is None:
        raise NotAuthenticatedError()
    if identity.is_preview or identity.organization_id is None or identity.role is None:
        raise NotAuthorizedError()
    return identity


def raise_for_result(result: CreditOperationResult) -> None:
    """Translate a failed ledger operation into the matching domain error."""
    if result.success:
        return
    if result.error == INSUFFICIENT_CREDITS:
        raise InsufficientCreditsError(f"Insufficient credits (balance: {result.balance})")
    if result.error == NOT_AUTHENTICATED:
        raise NotAuthenticatedError()
    if result.error == NOT_AUTHORIZED:
        raise NotAuthorizedError()
    if result.error == INVALID_AMOUNT:
        raise HTTPException(status_code=400, detail="Amount must be positive")
    if result.error in (INVALID_CREDIT_TYPE, INVALID_TRANSACTION_TYPE):
        raise HTTPException(status_code=400, detail=f"Invalid credit operation: {result.error}")
    raise HTTPException(status_code=404, detail="Organization not found")


class CreditService:
    """Service for credit balance, history and metered consumption."""

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    def get_balance(self, identity: Optional[Identity]) -> CreditBalanceResponse:
        identity = _require_member(identity)
        return CreditBalanceResponse(
            organization_id=identity.organization_id,
            balance=self.ctx.ledger.get_balance(identity.organization_id)
        )

    def get_history(
        self,
        identity: Optional[Identity],
        credit_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> CreditHistoryResponse:
        identity = _require_member(identity)
        transactions = self.ctx.ledger.get_history(
            identity.organization_id,
            credit_type=credit_type,
            limit=limit,
            offset=offset
        )
        items = [
            CreditTransactionItem(
                id=tx.id,
                type=tx.type,
                credit_type=tx.credit_type,
                amount=tx.amount,
                balance_before=tx.balance_before,
                balance_after=tx.balance_after,
                related_entity_id=tx.related_entity_id,
                description=tx.description,
                metadata=tx.metadata_,
                created_at=safe_datetime_iso(tx.created_at)
            )
            for tx in transactions
        ]
        return CreditHistoryResponse(transactions=items, count=len(items))

    def open_linkedin_profile(
        self,
        identity: Optional[Identity],
        candidate_id: str,
        linkedin_url: str
    ) -> CreditConsumeResponse:
        """
        Charge the organization for revealing a candidate's LinkedIn profile.

        Raises:
            InsufficientCreditsError: balance below the configured cost (402)
        """
        identity = require_org_write_access(identity)
        result = self.ctx.ledger.consume_for_linkedin_open(
            organization_id=identity.organization_id,
            user_id=identity.user_id,
            candidate_id=candidate_id,
            linkedin_url=linkedin_url,
            cost=self.ctx.config.credits.linkedin_open_cost
        )
        raise_for_result(result)
        return CreditConsumeResponse(
            success=True,
            balance=result.balance,
            transaction_id=result.transaction.id
        )
