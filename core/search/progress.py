"""
Progress snapshot of a search, built from persisted state.

The pull endpoint and the push channel both serialize this snapshot,
so at rest they cannot disagree.
"""
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

from core.search.states import SearchStatus
from database.models import Search
from database.uow import Repositories

EXCELLENT_SCORE = 80
GOOD_SCORE = 70
FAIR_SCORE = 50


@dataclass
class SearchProgress:
    search_id: str
    status: str
    progress: int
    message: Optional[str]
    total: int
    scored: int
    unscored: int
    errors: int
    excellent: int
    good: int
    fair: int
    is_scoring_complete: bool
    error: Optional[str] = None
    error_stage: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_progress(repos: Repositories, search: Search) -> SearchProgress:
    counts = repos.search.get_score_counts(search.id)
    unscored = max(counts.total - counts.scored - counts.errors, 0)
    status = SearchStatus(search.status)

    error = None
    if status == SearchStatus.ERROR:
        error = search.status_message

    return SearchProgress(
        search_id=search.id,
        status=status.value,
        progress=search.progress or 0,
        message=search.status_message,
        total=counts.total,
        scored=counts.scored,
        unscored=unscored,
        errors=counts.errors,
        excellent=counts.excellent,
        good=counts.good,
        fair=counts.fair,
        is_scoring_complete=status == SearchStatus.COMPLETED or (counts.total > 0 and unscored == 0),
        error=error,
        error_stage=search.error_stage
    )
