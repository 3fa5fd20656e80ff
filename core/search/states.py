"""
Search lifecycle.

pending -> parsing -> executing -> polling -> scoring -> completed,
with error reachable from any non-terminal state. Every status write
goes through ``check_transition``.
"""
from enum import Enum
from typing import Dict, FrozenSet

from core.errors import InvalidTransitionError


class SearchStatus(str, Enum):
    PENDING = "pending"
    PARSING = "parsing"
    EXECUTING = "executing"
    POLLING = "polling"
    SCORING = "scoring"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


class SearchStage(str, Enum):
    """Pipeline stage an error is tagged with."""
    PARSE = "parse"
    SOURCING = "sourcing"
    SCORING_MODEL = "scoring_model"
    SCORING = "scoring"


TERMINAL_STATES: FrozenSet[SearchStatus] = frozenset({SearchStatus.COMPLETED, SearchStatus.ERROR})

_FORWARD: Dict[SearchStatus, FrozenSet[SearchStatus]] = {
    SearchStatus.PENDING: frozenset({SearchStatus.PARSING}),
    SearchStatus.PARSING: frozenset({SearchStatus.EXECUTING}),
    # zero discovery results finish the search without entering polling
    SearchStatus.EXECUTING: frozenset({SearchStatus.POLLING, SearchStatus.COMPLETED}),
    SearchStatus.POLLING: frozenset({SearchStatus.SCORING}),
    SearchStatus.SCORING: frozenset({SearchStatus.COMPLETED}),
    SearchStatus.COMPLETED: frozenset(),
    SearchStatus.ERROR: frozenset(),
}

# Progress written on entering each status
STATUS_PROGRESS: Dict[SearchStatus, int] = {
    SearchStatus.PENDING: 0,
    SearchStatus.PARSING: 5,
    SearchStatus.EXECUTING: 15,
    SearchStatus.POLLING: 30,
    SearchStatus.SCORING: 70,
    SearchStatus.COMPLETED: 100,
}

STATUS_MESSAGES: Dict[SearchStatus, str] = {
    SearchStatus.PENDING: "Queued",
    SearchStatus.PARSING: "Parsing search query",
    SearchStatus.EXECUTING: "Searching for matching profiles",
    SearchStatus.POLLING: "Fetching candidate profiles",
    SearchStatus.SCORING: "Scoring candidates",
    SearchStatus.COMPLETED: "Search completed",
}


def can_transition(current: SearchStatus, target: SearchStatus) -> bool:
    if current in TERMINAL_STATES:
        return False
    if target == SearchStatus.ERROR:
        return True
    return target in _FORWARD[current]


def check_transition(current: SearchStatus, target: SearchStatus) -> None:
    if not can_transition(SearchStatus(current), SearchStatus(target)):
        raise InvalidTransitionError(
            f"Invalid search status transition: {SearchStatus(current).value} -> {SearchStatus(target).value}"
        )


def band_progress(start: int, end: int, done: int, total: int) -> int:
    """Linear progress inside a stage band, e.g. enrichment between 30 and 70."""
    if total <= 0:
        return start
    fraction = min(max(done / total, 0.0), 1.0)
    return start + int((end - start) * fraction)
