import logging
from typing import List

from sqlalchemy import select

from core.sourcing.models import StrategyRun
from core.utils import utcnow
from database.models import SourcingStrategy
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class SourcingStrategyRepository(BaseRepository):
    def save_run(self, search_id: str, run: StrategyRun) -> SourcingStrategy:
        """Insert the strategy on first sight, then keep its row in step with the run."""
        strategy = self.db.get(SourcingStrategy, run.id)
        if strategy is None:
            strategy = SourcingStrategy(
                id=run.id,
                search_id=search_id,
                position=run.position,
                name=run.provider,
                query=run.query,
                created_at=utcnow()
            )
            self.db.add(strategy)

        strategy.status = run.status.value
        strategy.pages_fetched = run.pages_fetched
        strategy.candidates_found = run.candidates_found
        strategy.error = run.error
        strategy.updated_at = utcnow()
        self.db.flush()
        return strategy

    def list_for_search(self, search_id: str) -> List[SourcingStrategy]:
        stmt = (
            select(SourcingStrategy)
            .where(SourcingStrategy.search_id == search_id)
            .order_by(SourcingStrategy.position.asc(), SourcingStrategy.created_at.asc())
        )
        return list(self.db.execute(stmt).scalars().all())
