#!/usr/bin/env python3
"""
Test suite configuration and utilities.

    # Run all tests (unit + DB if available)
    python -m pytest tests/ -v

    # Run only unit tests (no PostgreSQL required)
    python -m pytest tests/ -v -m "not db"

    # Run only DB tests
    python -m pytest tests/ -v -m "db"

Unit tests run against a temporary SQLite file through the same
SQLAlchemy models. DB tests start PostgreSQL with testcontainers, or use
TEST_DATABASE_URL when it is set.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional, Dict
from unittest.mock import MagicMock

from core.config_loader import AppConfig
from core.utils import utcnow, hash_token

# Database configuration
TEST_DB_URL = os.environ.get("TEST_DATABASE_URL")

# Check if we should force skip DB tests
SKIP_DB_TESTS = os.environ.get("SKIP_DB_TESTS", "false").lower() == "true"


def is_database_available(url: Optional[str] = None) -> bool:
    """Check if the PostgreSQL test database is accessible."""
    url = url or TEST_DB_URL
    if SKIP_DB_TESTS or not url:
        return False

    try:
        from sqlalchemy import create_engine, text

        engine = create_engine(url)
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        engine.dispose()
        return True
    except Exception:
        return False


@dataclass
class SeedData:
    """Ids and tokens of the fixture tenant."""
    organization_id: str
    owner_id: str
    viewer_id: str
    outsider_id: str
    owner_token: str = "owner-session-token"
    viewer_token: str = "viewer-session-token"
    outsider_token: str = "outsider-session-token"
    preview_token: str = "preview-share-token"
    other_organization_id: Optional[str] = None
    extra: Dict[str, str] = field(default_factory=dict)


def seed_tenant(
    session_factory,
    credits: int = 10,
    subscription_status: Optional[str] = "active",
    plan: str = "pro"
) -> SeedData:
    """
    Create an organization with an owner, a viewer, an outsider (member of
    another organization), sessions for each, a subscription and a share link.
    """
    from database.database import db_session_scope
    from database.models import (
        Organization, Member, User, AuthSession, Subscription, OrganizationShareLink
    )

    seed = SeedData(
        organization_id="org-1",
        owner_id="user-owner",
        viewer_id="user-viewer",
        outsider_id="user-outsider",
        other_organization_id="org-2"
    )
    expires = utcnow() + timedelta(days=1)

    with db_session_scope(session_factory) as db:
        db.add(Organization(id=seed.organization_id, name="Acme", slug="acme", credits=credits))
        db.add(Organization(id=seed.other_organization_id, name="Other", slug="other", credits=0))
        db.flush()
        for user_id, email in (
            (seed.owner_id, "owner@acme.test"),
            (seed.viewer_id, "viewer@acme.test"),
            (seed.outsider_id, "someone@other.test"),
        ):
            db.add(User(id=user_id, email=email, name=email.split("@")[0]))
        db.flush()

        db.add(Member(organization_id=seed.organization_id, user_id=seed.owner_id, role="owner"))
        db.add(Member(organization_id=seed.organization_id, user_id=seed.viewer_id, role="viewer"))
        db.add(Member(organization_id=seed.other_organization_id, user_id=seed.outsider_id, role="owner"))

        db.add(AuthSession(token=seed.owner_token, user_id=seed.owner_id,
                           active_organization_id=seed.organization_id, expires_at=expires))
        db.add(AuthSession(token=seed.viewer_token, user_id=seed.viewer_id,
                           active_organization_id=seed.organization_id, expires_at=expires))
        db.add(AuthSession(token=seed.outsider_token, user_id=seed.outsider_id,
                           active_organization_id=seed.other_organization_id, expires_at=expires))

        if subscription_status:
            db.add(Subscription(
                plan=plan,
                reference_id=seed.organization_id,
                status=subscription_status,
                period_start=utcnow() - timedelta(days=1),
                period_end=utcnow() + timedelta(days=30)
            ))

        db.add(OrganizationShareLink(
            organization_id=seed.organization_id,
            created_by_user_id=seed.owner_id,
            token_hash=hash_token(seed.preview_token),
            expires_at=expires,
            max_views=100
        ))

    return seed


def create_search(session_factory, seed: SeedData, query: str = "Senior Python engineer in Berlin", **fields) -> str:
    from database.uow import search_uow

    with search_uow(session_factory) as repos:
        search = repos.search.create(seed.organization_id, seed.owner_id, query)
        search_id = search.id
        if fields:
            repos.search.update_fields(search_id, **fields)
    return search_id


def build_test_context(
    session_factory,
    config: Optional[AppConfig] = None,
    coordinator=None,
    query_parser=None,
    scoring_service=None,
    scoring_model_client=None,
    analytics=None,
    publisher=None
):
    """AppContext wired with test doubles instead of real providers."""
    from core.app_context import AppContext
    from core.credits import CreditLedger
    from core.scoring_model import ScoringModelStep
    from core.search.lifecycle import SearchStateMachine
    from realtime import CompositePublisher, LocalEventBroker

    config = config or AppConfig()
    broker = LocalEventBroker()
    sinks = [broker.publish] + ([publisher] if publisher else [])
    analytics = analytics or MagicMock()

    return AppContext(
        config=config,
        session_factory=session_factory,
        state_machine=SearchStateMachine(session_factory, publisher=CompositePublisher(sinks)),
        coordinator=coordinator or MagicMock(),
        ledger=CreditLedger(session_factory, analytics),
        analytics=analytics,
        event_broker=broker,
        scoring_model_step=ScoringModelStep(session_factory, scoring_model_client),
        query_parser=query_parser,
        scoring_service=scoring_service
    )


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def preview_headers(token: str) -> Dict[str, str]:
    return {"X-Preview-Token": token}
