"""
SearchStateMachine - the single writer of search status and progress.

Status changes are compare-and-set UPDATEs against the expected current
status, so two runners racing on the same search id cannot both advance
it. After each commit the persisted snapshot is handed to the event
publisher.
"""
import logging
from typing import Optional, Callable, Dict, Any

from sqlalchemy.orm import sessionmaker

from core.errors import SearchNotFoundError
from core.search.progress import SearchProgress, build_progress
from core.search.states import (
    SearchStatus,
    SearchStage,
    STATUS_PROGRESS,
    STATUS_MESSAGES,
    check_transition,
)
from core.utils import utcnow, truncate_error
from database.uow import search_uow

logger = logging.getLogger(__name__)

EVENT_STATUS_UPDATED = "status.updated"
EVENT_PROGRESS_UPDATED = "progress.updated"
EVENT_SEARCH_COMPLETED = "search.completed"
EVENT_SEARCH_FAILED = "search.failed"

# (search_id, event, payload)
EventPublisher = Callable[[str, str, Dict[str, Any]], None]

_STAGE_ERROR_FIELDS = {
    SearchStage.PARSE: ("parse_error", "parse_updated_at"),
    SearchStage.SOURCING: ("sourcing_error", "sourcing_updated_at"),
    SearchStage.SCORING_MODEL: ("scoring_model_error", "scoring_model_updated_at"),
}


class SearchStateMachine:
    def __init__(
        self,
        session_factory: sessionmaker,
        publisher: Optional[EventPublisher] = None,
        max_error_length: int = 100
    ):
        self.session_factory = session_factory
        self.publisher = publisher
        self.max_error_length = max_error_length

    def claim(self, search_id: str) -> bool:
        """
        Take ownership of a pending search (pending -> parsing).

        Returns False if the search has already been started by another
        invocation, in which case the caller must not run any stage.
        """
        return self.advance(search_id, SearchStatus.PENDING, SearchStatus.PARSING)

    def advance(
        self,
        search_id: str,
        current: SearchStatus,
        target: SearchStatus,
        message: Optional[str] = None,
        **fields: Any
    ) -> bool:
        check_transition(current, target)

        values: Dict[str, Any] = dict(fields)
        values["status_message"] = message or STATUS_MESSAGES.get(target)
        if target == SearchStatus.COMPLETED:
            values["completed_at"] = utcnow()

        with search_uow(self.session_factory) as repos:
            moved = repos.search.compare_and_set_status(
                search_id, current.value, target.value, **values
            )
            if moved:
                repos.search.raise_progress(search_id, STATUS_PROGRESS[target])

        if not moved:
            logger.info(f"Search {search_id}: not in '{current.value}', skipping move to '{target.value}'")
            return False

        logger.info(f"Search {search_id}: {current.value} -> {target.value}")
        snapshot = self.snapshot(search_id)
        if target == SearchStatus.COMPLETED:
            self._publish(search_id, EVENT_SEARCH_COMPLETED, {
                **snapshot.to_dict(),
                "candidates_count": snapshot.total,
            })
        else:
            self._publish(search_id, EVENT_STATUS_UPDATED, snapshot.to_dict())
        return True

    def report_progress(self, search_id: str, progress: int, message: Optional[str] = None) -> None:
        """Raise progress within the current stage (never lowers it)."""
        with search_uow(self.session_factory) as repos:
            repos.search.raise_progress(search_id, min(progress, 99), message)
        self._publish(search_id, EVENT_PROGRESS_UPDATED, self.snapshot(search_id).to_dict())

    def fail(self, search_id: str, stage: SearchStage, error: Any) -> bool:
        """
        Move a non-terminal search to ``error`` with a stage-tagged message.

        Returns False when the search is already terminal.
        """
        message = truncate_error(error, self.max_error_length)
        with search_uow(self.session_factory) as repos:
            search = repos.search.get_by_id(search_id)
            if search is None:
                raise SearchNotFoundError()
            current = SearchStatus(search.status)
            if current.is_terminal:
                logger.warning(f"Search {search_id}: already {current.value}, ignoring {stage.value} error: {message}")
                return False
            check_transition(current, SearchStatus.ERROR)

            values: Dict[str, Any] = {
                "error_stage": stage.value,
                "status_message": f"{stage.value}: {message}",
            }
            error_fields = _STAGE_ERROR_FIELDS.get(stage)
            if error_fields:
                values[error_fields[0]] = message
                values[error_fields[1]] = utcnow()
            moved = repos.search.compare_and_set_status(
                search_id, current.value, SearchStatus.ERROR.value, **values
            )

        if not moved:
            # status changed under us; re-read and try once more from the new state
            return self.fail(search_id, stage, error)

        logger.error(f"Search {search_id}: failed at {stage.value}: {message}")
        snapshot = self.snapshot(search_id)
        self._publish(search_id, EVENT_SEARCH_FAILED, snapshot.to_dict())
        return True

    def snapshot(self, search_id: str) -> SearchProgress:
        with search_uow(self.session_factory) as repos:
            search = repos.search.get_by_id(search_id)
            if search is None:
                raise SearchNotFoundError()
            return build_progress(repos, search)

    def _publish(self, search_id: str, event: str, payload: Dict[str, Any]) -> None:
        if not self.publisher:
            return
        try:
            self.publisher(search_id, event, payload)
        except Exception as e:
            # push delivery is best-effort; the pull endpoint stays authoritative
            logger.warning(f"Failed to publish {event} for search {search_id}: {e}")
