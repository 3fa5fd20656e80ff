"""
Caller identity and tenant access checks.

A caller is either an authenticated member (bearer session token) or an
anonymous share-link preview, which is read-only and scoped to the
organization that issued the link.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.errors import (
    NotAuthenticatedError,
    NotAuthorizedError,
    ReadOnlyAccessError,
    SearchNotFoundError,
    SubscriptionRequiredError,
)
from core.utils import utcnow, as_utc, hash_token
from database.models import Search, Subscription, OrganizationShareLink
from database.uow import Repositories

logger = logging.getLogger(__name__)

ACTIVE_SUBSCRIPTION_STATUSES = ("active", "trialing")
READ_ONLY_ROLES = ("viewer",)


@dataclass
class Identity:
    user_id: Optional[str]
    organization_id: Optional[str]
    role: Optional[str] = None
    is_preview: bool = False
    share_link_id: Optional[str] = None

    @property
    def is_read_only(self) -> bool:
        return self.is_preview or self.role in READ_ONLY_ROLES


def _share_link_usable(link: OrganizationShareLink, now: datetime) -> bool:
    if link.revoked_at is not None:
        return False
    if link.expires_at is not None and as_utc(link.expires_at) <= now:
        return False
    if link.max_views is not None and (link.view_count or 0) >= link.max_views:
        return False
    return True


def resolve_identity(
    repos: Repositories,
    session_token: Optional[str] = None,
    preview_token: Optional[str] = None
) -> Identity:
    """
    Resolve the caller from a session token, falling back to a preview token.

    Raises:
        NotAuthenticatedError: neither token identifies a valid caller
    """
    now = utcnow()

    if session_token:
        auth_session = repos.organizations.get_session_by_token(session_token)
        if auth_session is None or as_utc(auth_session.expires_at) <= now:
            raise NotAuthenticatedError()

        organization_id = auth_session.active_organization_id
        if organization_id is None:
            membership = repos.organizations.get_first_membership(auth_session.user_id)
            organization_id = membership.organization_id if membership else None

        role = None
        if organization_id is not None:
            member = repos.organizations.get_member(organization_id, auth_session.user_id)
            role = member.role if member else None

        return Identity(user_id=auth_session.user_id, organization_id=organization_id, role=role)

    if preview_token:
        link = repos.organizations.get_share_link_by_hash(hash_token(preview_token))
        if link is None or not _share_link_usable(link, now):
            raise NotAuthenticatedError("Preview link is invalid or expired")
        return Identity(
            user_id=None,
            organization_id=link.organization_id,
            role="viewer",
            is_preview=True,
            share_link_id=link.id
        )

    raise NotAuthenticatedError()


def record_preview_view(repos: Repositories, identity: Identity) -> None:
    if identity.is_preview and identity.share_link_id:
        repos.organizations.record_share_link_view(identity.share_link_id)


def require_search_read_access(repos: Repositories, identity: Optional[Identity], search_id: str) -> Search:
    """
    Load a search the caller may read.

    Order of checks: authentication (401), existence (404), membership (403).
    """
    if identity is None:
        raise NotAuthenticatedError()

    search = repos.search.get_by_id(search_id)
    if search is None:
        raise SearchNotFoundError()

    if identity.is_preview:
        if identity.organization_id != search.organization_id:
            raise NotAuthorizedError()
        return search

    if repos.organizations.get_member(search.organization_id, identity.user_id) is None:
        raise NotAuthorizedError()
    return search


def require_org_write_access(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise NotAuthenticatedError()
    if identity.is_read_only:
        raise ReadOnlyAccessError()
    if identity.organization_id is None or identity.role is None:
        raise NotAuthorizedError("No active organization")
    return identity


def is_subscription_active(subscription: Optional[Subscription], now: Optional[datetime] = None) -> bool:
    """Active or trialing; trial plans additionally need an unexpired period."""
    if subscription is None:
        return False
    if subscription.status not in ACTIVE_SUBSCRIPTION_STATUSES:
        return False
    if subscription.plan == "trial":
        now = now or utcnow()
        period_end = as_utc(subscription.period_end)
        return period_end is not None and period_end > now
    return True


def require_active_subscription(repos: Repositories, organization_id: str) -> Subscription:
    subscription = repos.organizations.get_subscription(organization_id)
    if not is_subscription_active(subscription):
        logger.info(f"Organization {organization_id} has no active subscription")
        raise SubscriptionRequiredError()
    return subscription
