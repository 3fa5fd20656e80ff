import logging
from dataclasses import dataclass
from typing import List, Optional, Any, Dict

from sqlalchemy import select, update, func, case

from core.utils import utcnow
from database.models import Search, SearchCandidate
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


@dataclass
class ScoreCounts:
    total: int = 0
    scored: int = 0
    errors: int = 0
    excellent: int = 0
    good: int = 0
    fair: int = 0


class SearchRepository(BaseRepository):
    def create(
        self,
        organization_id: str,
        user_id: Optional[str],
        query: str,
        scoring_prompt: Optional[str] = None
    ) -> Search:
        search = Search(
            organization_id=organization_id,
            user_id=user_id,
            query=query,
            scoring_prompt=scoring_prompt,
            name="Untitled Search",
            status="pending",
            progress=0,
            created_at=utcnow()
        )
        self.db.add(search)
        self.db.flush()
        return search

    def get_by_id(self, search_id: str) -> Optional[Search]:
        return self.db.get(Search, search_id)

    def list_recent(self, organization_id: str, limit: int = 20) -> List[Search]:
        stmt = (
            select(Search)
            .where(Search.organization_id == organization_id)
            .order_by(Search.created_at.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def compare_and_set_status(
        self,
        search_id: str,
        expected: str,
        target: str,
        **values: Any
    ) -> bool:
        """
        Move a search from ``expected`` to ``target`` in a single UPDATE.

        Returns False when the row was not in ``expected`` (someone else moved it).
        """
        stmt = (
            update(Search)
            .where(Search.id == search_id, Search.status == expected)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return result.rowcount == 1

    def update_fields(self, search_id: str, **values: Any) -> None:
        stmt = (
            update(Search)
            .where(Search.id == search_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)

    def raise_progress(self, search_id: str, progress: int, message: Optional[str] = None) -> None:
        """Write progress without ever lowering the stored value."""
        values: Dict[str, Any] = {
            "progress": case((Search.progress < progress, progress), else_=Search.progress)
        }
        if message is not None:
            values["status_message"] = message
        self.update_fields(search_id, **values)

    def get_score_counts(self, search_id: str) -> ScoreCounts:
        score = SearchCandidate.match_score
        stmt = select(
            func.count(SearchCandidate.id),
            func.count(score),
            func.sum(case(((score.is_(None)) & (SearchCandidate.scoring_error.is_not(None)), 1), else_=0)),
            func.sum(case((score >= 80, 1), else_=0)),
            func.sum(case((score >= 70, 1), else_=0)),
            func.sum(case((score >= 50, 1), else_=0)),
        ).where(SearchCandidate.search_id == search_id)
        total, scored, errors, excellent, good, fair = self.db.execute(stmt).one()
        return ScoreCounts(
            total=total or 0,
            scored=scored or 0,
            errors=errors or 0,
            excellent=excellent or 0,
            good=good or 0,
            fair=fair or 0
        )
