"""
Unit tests for the scoring-model step and its HTTP client.
"""
import pytest
import requests
from unittest.mock import MagicMock

from core.errors import (
    MissingParseResponseError,
    ProviderError,
    ScoringModelUnavailableError,
    SearchNotFoundError,
)
from core.scoring_model import ScoringModelClient, ScoringModelStep
from database.uow import search_uow
from tests import create_search

VALID_PARSE = {"job_title": "Backend Engineer", "location": "Berlin", "schema_version": 1}


def _load(session_factory, search_id):
    with search_uow(session_factory) as repos:
        return repos.search.get_by_id(search_id)


@pytest.fixture
def client():
    return MagicMock(spec=ScoringModelClient)


class TestScoringModelStep:

    def test_stores_model(self, session_factory, seed, client):
        search_id = create_search(session_factory, seed, parse_response=VALID_PARSE, parse_schema_version=1)
        client.calculate.return_value = {"version": 3, "weights": {"job_title": 0.5}}

        result = ScoringModelStep(session_factory, client).run(search_id)

        assert result.scoring_model_version == 3
        search = _load(session_factory, search_id)
        assert search.scoring_model == {"version": 3, "weights": {"job_title": 0.5}}
        assert search.scoring_model_id == result.scoring_model_id
        assert search.scoring_model_error is None
        sent = client.calculate.call_args[0][0]
        assert sent["job_title"] == "Backend Engineer"

    def test_rerun_keeps_model_id(self, session_factory, seed, client):
        search_id = create_search(session_factory, seed, parse_response=VALID_PARSE, parse_schema_version=1)
        client.calculate.return_value = {"version": "v2"}
        step = ScoringModelStep(session_factory, client)

        first = step.run(search_id)
        second = step.run(search_id)

        assert first.scoring_model_id == second.scoring_model_id
        assert second.scoring_model_version is None

    def test_missing_parse_cache(self, session_factory, seed, client):
        search_id = create_search(session_factory, seed)
        with pytest.raises(MissingParseResponseError):
            ScoringModelStep(session_factory, client).run(search_id)
        client.calculate.assert_not_called()

    def test_invalid_parse_cache_is_recorded(self, session_factory, seed, client):
        search_id = create_search(
            session_factory, seed,
            parse_response={"skills": {"values": ["Go"], "operator": "NOR"}},
            parse_schema_version=1
        )
        with pytest.raises(MissingParseResponseError):
            ScoringModelStep(session_factory, client).run(search_id)

        search = _load(session_factory, search_id)
        assert search.parse_error is not None
        assert search.parse_updated_at is not None
        client.calculate.assert_not_called()

    def test_stale_schema_version(self, session_factory, seed, client):
        search_id = create_search(session_factory, seed, parse_response=VALID_PARSE, parse_schema_version=0)
        with pytest.raises(MissingParseResponseError):
            ScoringModelStep(session_factory, client).run(search_id)

    def test_unconfigured_service(self, session_factory, seed):
        search_id = create_search(session_factory, seed, parse_response=VALID_PARSE, parse_schema_version=1)
        with pytest.raises(ScoringModelUnavailableError):
            ScoringModelStep(session_factory, None).run(search_id)

    def test_provider_failure_is_recorded_and_truncated(self, session_factory, seed, client):
        search_id = create_search(session_factory, seed, parse_response=VALID_PARSE, parse_schema_version=1)
        client.calculate.side_effect = ProviderError("scoring_model", "Calculation failed 500: " + "x" * 300, status_code=500)

        with pytest.raises(ProviderError):
            ScoringModelStep(session_factory, client, max_error_length=100).run(search_id)

        search = _load(session_factory, search_id)
        assert len(search.scoring_model_error) == 100
        assert search.scoring_model_error.startswith("scoring_model: Calculation failed 500")
        assert search.scoring_model is None

    def test_unknown_search(self, session_factory, client):
        with pytest.raises(SearchNotFoundError):
            ScoringModelStep(session_factory, client).run("missing")


class TestScoringModelClient:

    def test_calculate(self):
        session = MagicMock()
        session.post.return_value.json.return_value = {"version": 1}
        client = ScoringModelClient("http://calc/model", session=session)

        assert client.calculate(VALID_PARSE) == {"version": 1}
        assert session.post.call_args.kwargs["json"] == VALID_PARSE

    def test_http_error_body_is_truncated(self):
        response = MagicMock()
        response.status_code = 422
        response.text = "e" * 500
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
        session = MagicMock()
        session.post.return_value = response

        with pytest.raises(ProviderError) as exc_info:
            ScoringModelClient("http://calc/model", session=session).calculate(VALID_PARSE, max_error_length=20)

        assert exc_info.value.status_code == 422
        assert str(exc_info.value).endswith("Calculation failed 422: " + "e" * 20)

    def test_non_object_response(self):
        session = MagicMock()
        session.post.return_value.json.return_value = [1, 2]
        with pytest.raises(ProviderError):
            ScoringModelClient("http://calc/model", session=session).calculate(VALID_PARSE)
