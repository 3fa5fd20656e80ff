"""
Unit tests for SearchStateMachine against a SQLite database.

Covers compare-and-set status moves, monotonic progress, stage-tagged
errors and the events handed to the publisher.
"""
import pytest
from unittest.mock import MagicMock

from core.errors import InvalidTransitionError, SearchNotFoundError
from core.search.lifecycle import (
    SearchStateMachine,
    EVENT_STATUS_UPDATED,
    EVENT_PROGRESS_UPDATED,
    EVENT_SEARCH_COMPLETED,
    EVENT_SEARCH_FAILED,
)
from core.search.states import SearchStatus, SearchStage
from database.uow import search_uow
from tests import create_search


@pytest.fixture
def publisher():
    return MagicMock()


@pytest.fixture
def machine(session_factory, publisher):
    return SearchStateMachine(session_factory, publisher=publisher, max_error_length=40)


def _load(session_factory, search_id):
    with search_uow(session_factory) as repos:
        return repos.search.get_by_id(search_id)


class TestClaim:

    def test_claim_moves_pending_to_parsing(self, machine, session_factory, seed):
        search_id = create_search(session_factory, seed)

        assert machine.claim(search_id) is True

        search = _load(session_factory, search_id)
        assert search.status == "parsing"
        assert search.progress == 5
        assert search.status_message == "Parsing search query"

    def test_second_claim_is_rejected(self, machine, session_factory, seed):
        search_id = create_search(session_factory, seed)
        assert machine.claim(search_id) is True
        assert machine.claim(search_id) is False


class TestAdvance:

    def test_publishes_status_snapshot(self, machine, session_factory, seed, publisher):
        search_id = create_search(session_factory, seed)
        machine.claim(search_id)

        publisher.assert_called_once()
        called_id, event, payload = publisher.call_args[0]
        assert called_id == search_id
        assert event == EVENT_STATUS_UPDATED
        assert payload["status"] == "parsing"
        assert payload["progress"] == 5

    def test_stores_extra_fields(self, machine, session_factory, seed):
        search_id = create_search(session_factory, seed)
        machine.claim(search_id)
        machine.advance(search_id, SearchStatus.PARSING, SearchStatus.EXECUTING, name="Data Engineer")

        search = _load(session_factory, search_id)
        assert search.status == "executing"
        assert search.name == "Data Engineer"

    def test_invalid_transition_raises(self, machine, session_factory, seed):
        search_id = create_search(session_factory, seed)
        with pytest.raises(InvalidTransitionError):
            machine.advance(search_id, SearchStatus.PENDING, SearchStatus.SCORING)

    def test_stale_expected_status_is_a_no_op(self, machine, session_factory, seed, publisher):
        search_id = create_search(session_factory, seed)
        assert machine.advance(search_id, SearchStatus.PARSING, SearchStatus.EXECUTING) is False
        assert _load(session_factory, search_id).status == "pending"
        publisher.assert_not_called()

    def test_completion_sets_timestamp_and_event(self, machine, session_factory, seed, publisher):
        search_id = create_search(session_factory, seed)
        machine.claim(search_id)
        machine.advance(search_id, SearchStatus.PARSING, SearchStatus.EXECUTING)
        machine.advance(search_id, SearchStatus.EXECUTING, SearchStatus.COMPLETED, message="No matching profiles found")

        search = _load(session_factory, search_id)
        assert search.status == "completed"
        assert search.progress == 100
        assert search.completed_at is not None
        assert search.status_message == "No matching profiles found"

        event, payload = publisher.call_args[0][1:]
        assert event == EVENT_SEARCH_COMPLETED
        assert payload["candidates_count"] == 0


class TestReportProgress:

    def test_progress_never_decreases(self, machine, session_factory, seed, publisher):
        search_id = create_search(session_factory, seed)
        machine.claim(search_id)
        machine.advance(search_id, SearchStatus.PARSING, SearchStatus.EXECUTING)
        machine.advance(search_id, SearchStatus.EXECUTING, SearchStatus.POLLING)

        machine.report_progress(search_id, 50, "Fetched 2/4 profiles")
        machine.report_progress(search_id, 40, "late update")

        search = _load(session_factory, search_id)
        assert search.progress == 50
        assert search.status_message == "late update"
        assert publisher.call_args[0][1] == EVENT_PROGRESS_UPDATED

    def test_progress_capped_below_completion(self, machine, session_factory, seed):
        search_id = create_search(session_factory, seed)
        machine.claim(search_id)
        machine.report_progress(search_id, 150)
        assert _load(session_factory, search_id).progress == 99


class TestFail:

    def test_fail_tags_stage_and_truncates(self, machine, session_factory, seed, publisher):
        search_id = create_search(session_factory, seed)
        machine.claim(search_id)

        assert machine.fail(search_id, SearchStage.PARSE, "x" * 100) is True

        search = _load(session_factory, search_id)
        assert search.status == "error"
        assert search.error_stage == "parse"
        assert search.parse_error == "x" * 40
        assert search.parse_updated_at is not None
        assert search.status_message.startswith("parse: ")
        assert publisher.call_args[0][1] == EVENT_SEARCH_FAILED

    def test_fail_from_pending(self, machine, session_factory, seed):
        search_id = create_search(session_factory, seed)
        assert machine.fail(search_id, SearchStage.SOURCING, "boom") is True
        search = _load(session_factory, search_id)
        assert search.status == "error"
        assert search.sourcing_error == "boom"

    def test_fail_after_terminal_is_ignored(self, machine, session_factory, seed):
        search_id = create_search(session_factory, seed)
        machine.fail(search_id, SearchStage.PARSE, "first")
        assert machine.fail(search_id, SearchStage.SOURCING, "second") is False
        search = _load(session_factory, search_id)
        assert search.error_stage == "parse"
        assert search.sourcing_error is None

    def test_unknown_search(self, machine):
        with pytest.raises(SearchNotFoundError):
            machine.fail("missing", SearchStage.PARSE, "boom")


class TestSnapshot:

    def test_publisher_failure_does_not_break_transition(self, session_factory, seed):
        machine = SearchStateMachine(session_factory, publisher=MagicMock(side_effect=RuntimeError("down")))
        search_id = create_search(session_factory, seed)
        assert machine.claim(search_id) is True
        assert machine.snapshot(search_id).status == "parsing"

    def test_error_snapshot_exposes_message(self, machine, session_factory, seed):
        search_id = create_search(session_factory, seed)
        machine.fail(search_id, SearchStage.SOURCING, "serper: HTTP 401")
        snapshot = machine.snapshot(search_id)
        assert snapshot.status == "error"
        assert snapshot.error_stage == "sourcing"
        assert "serper" in snapshot.error
        assert snapshot.is_scoring_complete is False
