"""
Credit Ledger - per-organization balance with an immutable transaction log.

Deductions are a single conditional UPDATE (balance >= amount) followed by
the ledger insert in the same transaction, so concurrent debits for one
organization can never overdraw it and a rejected debit writes nothing.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import sessionmaker

from core.analytics import AnalyticsTracker
from core.utils import utcnow
from database.models import CreditTransaction
from database.uow import search_uow

logger = logging.getLogger(__name__)

# Machine-readable failure codes
INSUFFICIENT_CREDITS = "insufficient_credits"
NOT_AUTHENTICATED = "not_authenticated"
NOT_AUTHORIZED = "not_authorized"
INVALID_AMOUNT = "invalid_amount"
ORGANIZATION_NOT_FOUND = "organization_not_found"
INVALID_CREDIT_TYPE = "invalid_credit_type"
INVALID_TRANSACTION_TYPE = "invalid_transaction_type"

CREDIT_TYPES = ("general", "contact_lookup", "export", "linkedin_reveal", "email_reveal", "phone_reveal")
# Consumption rows are only written by deduct_credits
GRANT_TRANSACTION_TYPES = ("subscription_grant", "manual_grant", "purchase")


@dataclass
class CreditOperationResult:
    success: bool
    transaction: Optional[CreditTransaction] = None
    error: Optional[str] = None
    balance: Optional[int] = None


@dataclass
class CreditStats:
    balance: int
    total_used: int
    total_added: int
    by_type: Dict[str, Dict[str, int]] = field(default_factory=dict)


def _valid_amount(amount: Any) -> bool:
    return isinstance(amount, int) and not isinstance(amount, bool) and amount > 0


class CreditLedger:
    def __init__(self, session_factory: sessionmaker, analytics: Optional[AnalyticsTracker] = None):
        self.session_factory = session_factory
        self.analytics = analytics

    def deduct_credits(
        self,
        organization_id: str,
        user_id: Optional[str],
        amount: int,
        credit_type: str = "general",
        related_entity_id: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        analytics_properties: Optional[Dict[str, Any]] = None
    ) -> CreditOperationResult:
        """
        Atomically debit ``amount`` credits and record a consumption entry.

        Args:
            organization_id: Organization to debit
            user_id: Acting user; must be a member of the organization
            amount: Positive number of credits
            credit_type: One of CREDIT_TYPES
            related_entity_id: Entity the credits were spent on (e.g. candidate id)
            description: Human-readable reason
            metadata: Extra JSON stored on the ledger row
            analytics_properties: Extra properties for the credits_consumed event

        Returns:
            CreditOperationResult; ``error`` is one of the module failure codes
        """
        if not user_id:
            return CreditOperationResult(success=False, error=NOT_AUTHENTICATED)
        if not _valid_amount(amount):
            return CreditOperationResult(success=False, error=INVALID_AMOUNT)
        if credit_type not in CREDIT_TYPES:
            return CreditOperationResult(success=False, error=INVALID_CREDIT_TYPE)

        with search_uow(self.session_factory) as repos:
            if repos.organizations.get_member(organization_id, user_id) is None:
                return CreditOperationResult(success=False, error=NOT_AUTHORIZED)

            balance_after = repos.credits.try_debit(organization_id, amount)
            if balance_after is None:
                balance = repos.credits.get_balance(organization_id)
                if balance is None:
                    return CreditOperationResult(success=False, error=ORGANIZATION_NOT_FOUND)
                logger.info(
                    f"Insufficient credits for org {organization_id}: balance={balance}, requested={amount}"
                )
                return CreditOperationResult(success=False, error=INSUFFICIENT_CREDITS, balance=balance)

            transaction = repos.credits.add_transaction(
                organization_id=organization_id,
                user_id=user_id,
                type="consumption",
                credit_type=credit_type,
                amount=-amount,
                balance_before=balance_after + amount,
                balance_after=balance_after,
                related_entity_id=related_entity_id,
                description=description,
                metadata_=metadata,
                created_at=utcnow()
            )

        logger.info(
            f"Deducted {amount} {credit_type} credits from org {organization_id}: "
            f"{transaction.balance_before} -> {transaction.balance_after}"
        )
        self._track_consumption(user_id, organization_id, transaction, analytics_properties)
        return CreditOperationResult(success=True, transaction=transaction, balance=balance_after)

    def add_credits(
        self,
        organization_id: str,
        amount: int,
        transaction_type: str = "manual_grant",
        credit_type: str = "general",
        user_id: Optional[str] = None,
        related_entity_id: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> CreditOperationResult:
        """Grant or sell credits (subscription grants, purchases, manual top-ups)."""
        if not _valid_amount(amount):
            return CreditOperationResult(success=False, error=INVALID_AMOUNT)
        if transaction_type not in GRANT_TRANSACTION_TYPES:
            return CreditOperationResult(success=False, error=INVALID_TRANSACTION_TYPE)
        if credit_type not in CREDIT_TYPES:
            return CreditOperationResult(success=False, error=INVALID_CREDIT_TYPE)

        with search_uow(self.session_factory) as repos:
            balance_after = repos.credits.credit(organization_id, amount)
            if balance_after is None:
                return CreditOperationResult(success=False, error=ORGANIZATION_NOT_FOUND)
            transaction = repos.credits.add_transaction(
                organization_id=organization_id,
                user_id=user_id,
                type=transaction_type,
                credit_type=credit_type,
                amount=amount,
                balance_before=balance_after - amount,
                balance_after=balance_after,
                related_entity_id=related_entity_id,
                description=description,
                metadata_=metadata,
                created_at=utcnow()
            )

        logger.info(f"Added {amount} {credit_type} credits to org {organization_id} ({transaction_type})")
        return CreditOperationResult(success=True, transaction=transaction, balance=balance_after)

    def set_balance(
        self,
        organization_id: str,
        balance: int,
        user_id: Optional[str] = None,
        description: Optional[str] = None
    ) -> CreditOperationResult:
        """Overwrite the balance, recording the difference as a manual grant."""
        if not isinstance(balance, int) or balance < 0:
            return CreditOperationResult(success=False, error=INVALID_AMOUNT)

        with search_uow(self.session_factory) as repos:
            previous = repos.credits.set_balance(organization_id, balance)
            if previous is None:
                return CreditOperationResult(success=False, error=ORGANIZATION_NOT_FOUND)
            transaction = None
            if previous != balance:
                transaction = repos.credits.add_transaction(
                    organization_id=organization_id,
                    user_id=user_id,
                    type="manual_grant",
                    credit_type="general",
                    amount=balance - previous,
                    balance_before=previous,
                    balance_after=balance,
                    description=description or "Balance adjustment",
                    created_at=utcnow()
                )
        return CreditOperationResult(success=True, transaction=transaction, balance=balance)

    def get_balance(self, organization_id: str) -> int:
        with search_uow(self.session_factory) as repos:
            return repos.credits.get_balance(organization_id) or 0

    def get_history(
        self,
        organization_id: str,
        credit_type: Optional[str] = None,
        transaction_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[CreditTransaction]:
        with search_uow(self.session_factory) as repos:
            return repos.credits.get_history(
                organization_id,
                credit_type=credit_type,
                transaction_type=transaction_type,
                limit=limit,
                offset=offset
            )

    def get_stats(self, organization_id: str) -> CreditStats:
        with search_uow(self.session_factory) as repos:
            balance = repos.credits.get_balance(organization_id) or 0
            by_type = repos.credits.get_totals_by_credit_type(organization_id)
        return CreditStats(
            balance=balance,
            total_used=sum(t["used"] for t in by_type.values()),
            total_added=sum(t["added"] for t in by_type.values()),
            by_type=by_type
        )

    def get_usage_for_period(
        self,
        organization_id: str,
        start: datetime,
        end: datetime,
        credit_type: Optional[str] = None
    ) -> int:
        with search_uow(self.session_factory) as repos:
            return repos.credits.get_consumption_between(organization_id, start, end, credit_type)

    def consume_for_linkedin_open(
        self,
        organization_id: str,
        user_id: Optional[str],
        candidate_id: str,
        linkedin_url: str,
        cost: int = 1
    ) -> CreditOperationResult:
        """Charge for opening a candidate's LinkedIn profile."""
        return self.deduct_credits(
            organization_id=organization_id,
            user_id=user_id,
            amount=cost,
            credit_type="general",
            related_entity_id=candidate_id,
            description="Open LinkedIn profile",
            metadata={"linkedin_url": linkedin_url},
            analytics_properties={"candidate_id": candidate_id, "action": "linkedin_open"}
        )

    def _track_consumption(
        self,
        user_id: str,
        organization_id: str,
        transaction: CreditTransaction,
        extra: Optional[Dict[str, Any]]
    ) -> None:
        if not self.analytics:
            return
        try:
            self.analytics.track(
                user_id,
                "credits_consumed",
                {
                    "credit_transaction_id": transaction.id,
                    "credit_type": transaction.credit_type,
                    "amount": -transaction.amount,
                    "credits_before": transaction.balance_before,
                    "credits_after": transaction.balance_after,
                    "related_entity_id": transaction.related_entity_id,
                    **(extra or {}),
                },
                organization_id=organization_id
            )
        except Exception as e:
            # the debit is already committed
            logger.warning(f"Analytics tracking failed after deduction {transaction.id}: {e}")
