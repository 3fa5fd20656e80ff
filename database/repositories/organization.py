import logging
from typing import Optional

from sqlalchemy import select, update

from core.utils import utcnow
from database.models import Organization, Member, Subscription, OrganizationShareLink, AuthSession
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class OrganizationRepository(BaseRepository):
    def get_by_id(self, organization_id: str) -> Optional[Organization]:
        return self.db.get(Organization, organization_id)

    def get_member(self, organization_id: str, user_id: str) -> Optional[Member]:
        stmt = select(Member).where(
            Member.organization_id == organization_id,
            Member.user_id == user_id
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_first_membership(self, user_id: str) -> Optional[Member]:
        stmt = select(Member).where(Member.user_id == user_id).order_by(Member.created_at.asc())
        return self.db.execute(stmt).scalars().first()

    def get_subscription(self, organization_id: str) -> Optional[Subscription]:
        """Most recent subscription for the organization."""
        stmt = (
            select(Subscription)
            .where(Subscription.reference_id == organization_id)
            .order_by(Subscription.created_at.desc())
        )
        return self.db.execute(stmt).scalars().first()

    def get_session_by_token(self, token: str) -> Optional[AuthSession]:
        stmt = select(AuthSession).where(AuthSession.token == token)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_share_link_by_hash(self, token_hash: str) -> Optional[OrganizationShareLink]:
        stmt = select(OrganizationShareLink).where(OrganizationShareLink.token_hash == token_hash)
        return self.db.execute(stmt).scalar_one_or_none()

    def record_share_link_view(self, link_id: str) -> None:
        stmt = (
            update(OrganizationShareLink)
            .where(OrganizationShareLink.id == link_id)
            .values(
                view_count=OrganizationShareLink.view_count + 1,
                last_viewed_at=utcnow()
            )
        )
        self.db.execute(stmt)
