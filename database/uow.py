import contextlib
import logging

from sqlalchemy.orm import Session, sessionmaker

from database.repositories import (
    OrganizationRepository,
    SearchRepository,
    CandidateRepository,
    CreditRepository,
    SourcingStrategyRepository,
)

logger = logging.getLogger(__name__)


class Repositories:
    """All repositories bound to one Session."""

    def __init__(self, db: Session):
        self.db = db
        self.organizations = OrganizationRepository(db)
        self.search = SearchRepository(db)
        self.candidates = CandidateRepository(db)
        self.credits = CreditRepository(db)
        self.strategies = SourcingStrategyRepository(db)


@contextlib.contextmanager
def search_uow(session_factory: sessionmaker):
    """Per-unit-of-work transaction scope.

    Yields Repositories bound to a fresh Session. Commits on success,
    rolls back on exception, always closes.

    Usage:
        with search_uow(ctx.session_factory) as repos:
            search = repos.search.get_by_id(search_id)
            # perform operations...
        # commit happens automatically on successful exit
    """
    session = session_factory()
    try:
        repos = Repositories(session)
        yield repos
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
