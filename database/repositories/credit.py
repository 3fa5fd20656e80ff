import logging
from datetime import datetime
from typing import List, Optional, Dict, Any

from sqlalchemy import select, update, func, case

from database.models import Organization, CreditTransaction
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class CreditRepository(BaseRepository):
    def get_balance(self, organization_id: str) -> Optional[int]:
        stmt = select(Organization.credits).where(Organization.id == organization_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def try_debit(self, organization_id: str, amount: int) -> Optional[int]:
        """
        Conditionally decrement the balance in one statement.

        Returns the new balance, or None when the balance was insufficient
        (or the organization does not exist). The row lock taken by the
        UPDATE serializes concurrent debits for the same organization.
        """
        stmt = (
            update(Organization)
            .where(Organization.id == organization_id, Organization.credits >= amount)
            .values(credits=Organization.credits - amount)
            .returning(Organization.credits)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def credit(self, organization_id: str, amount: int) -> Optional[int]:
        stmt = (
            update(Organization)
            .where(Organization.id == organization_id)
            .values(credits=Organization.credits + amount)
            .returning(Organization.credits)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def set_balance(self, organization_id: str, balance: int) -> Optional[int]:
        """Overwrite the balance; returns the previous balance."""
        previous = self.db.execute(
            select(Organization.credits)
            .where(Organization.id == organization_id)
            .with_for_update()
        ).scalar_one_or_none()
        if previous is None:
            return None
        self.db.execute(
            update(Organization)
            .where(Organization.id == organization_id)
            .values(credits=balance)
            .execution_options(synchronize_session=False)
        )
        return previous

    def add_transaction(self, **fields: Any) -> CreditTransaction:
        transaction = CreditTransaction(**fields)
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def get_history(
        self,
        organization_id: str,
        credit_type: Optional[str] = None,
        transaction_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[CreditTransaction]:
        stmt = select(CreditTransaction).where(CreditTransaction.organization_id == organization_id)
        if credit_type:
            stmt = stmt.where(CreditTransaction.credit_type == credit_type)
        if transaction_type:
            stmt = stmt.where(CreditTransaction.type == transaction_type)
        stmt = (
            stmt.order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_totals_by_credit_type(self, organization_id: str) -> Dict[str, Dict[str, int]]:
        """Used/added totals per credit type."""
        stmt = (
            select(
                CreditTransaction.credit_type,
                func.sum(case((CreditTransaction.amount < 0, -CreditTransaction.amount), else_=0)),
                func.sum(case((CreditTransaction.amount > 0, CreditTransaction.amount), else_=0)),
                func.count(CreditTransaction.id),
            )
            .where(CreditTransaction.organization_id == organization_id)
            .group_by(CreditTransaction.credit_type)
        )
        totals: Dict[str, Dict[str, int]] = {}
        for credit_type, used, added, count in self.db.execute(stmt).all():
            totals[credit_type] = {
                "used": int(used or 0),
                "added": int(added or 0),
                "transactions": int(count or 0),
            }
        return totals

    def get_consumption_between(
        self,
        organization_id: str,
        start: datetime,
        end: datetime,
        credit_type: Optional[str] = None
    ) -> int:
        """Credits consumed in [start, end)."""
        stmt = select(func.coalesce(func.sum(func.abs(CreditTransaction.amount)), 0)).where(
            CreditTransaction.organization_id == organization_id,
            CreditTransaction.type == "consumption",
            CreditTransaction.created_at >= start,
            CreditTransaction.created_at < end,
        )
        if credit_type:
            stmt = stmt.where(CreditTransaction.credit_type == credit_type)
        return int(self.db.execute(stmt).scalar_one())
