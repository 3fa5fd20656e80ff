"""
Unit tests for the LLM query parser and parse-cache validation.
"""
import json

import httpx
import openai
import pytest
from unittest.mock import MagicMock

from core.errors import QueryParseError, ProviderError, MissingParseResponseError
from core.search.parser import QueryParser, validate_cached_parse
from core.search.query import PARSED_QUERY_SCHEMA_VERSION


@pytest.fixture
def llm():
    return MagicMock()


@pytest.fixture
def parser(llm):
    return QueryParser(llm, model="test-model", max_tokens=256)


class TestQueryParser:

    def test_parses_valid_completion(self, parser, llm):
        llm.complete.return_value = json.dumps({
            "job_title": "Software engineer",
            "location": "SF",
            "years_of_experience": "",
            "industry": "",
            "skills": {"values": ["React", "Vue"], "operator": "OR"},
            "company": "",
            "tags": [{"category": "job_title", "value": "Software engineer"}],
        })

        parsed = parser.parse("Software engineer in SF who knows React or Vue")

        assert parsed.job_title == "Software engineer"
        assert parsed.values_of("skills") == ["React", "Vue"]
        assert parsed.schema_version == PARSED_QUERY_SCHEMA_VERSION
        prompt = llm.complete.call_args[0][0]
        assert prompt.endswith("Software engineer in SF who knows React or Vue")
        assert llm.complete.call_args.kwargs["model"] == "test-model"

    def test_accepts_fenced_json(self, parser, llm):
        llm.complete.return_value = '```json\n{"job_title": "Nurse"}\n```'
        assert parser.parse("nurse").job_title == "Nurse"

    def test_empty_query_does_not_call_llm(self, parser, llm):
        with pytest.raises(QueryParseError):
            parser.parse("   ")
        llm.complete.assert_not_called()

    def test_non_json_completion(self, parser, llm):
        llm.complete.return_value = "Sorry, I cannot help with that."
        with pytest.raises(QueryParseError):
            parser.parse("anything")

    def test_schema_violation_names_the_field(self, parser, llm):
        llm.complete.return_value = json.dumps({"job_title": "Engineer", "skills": {"values": "Go", "operator": "MAYBE"}})
        with pytest.raises(QueryParseError) as exc_info:
            parser.parse("engineer")
        assert "skills" in str(exc_info.value)

    def test_no_criteria_is_a_parse_error(self, parser, llm):
        llm.complete.return_value = json.dumps({"job_title": "", "location": "", "tags": []})
        with pytest.raises(QueryParseError):
            parser.parse("hello")

    def test_provider_failure_becomes_provider_error(self, parser, llm):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        llm.complete.side_effect = openai.APIConnectionError(request=request)
        with pytest.raises(ProviderError) as exc_info:
            parser.parse("engineer")
        assert exc_info.value.provider == "llm"


class TestValidateCachedParse:

    def test_valid_cache(self):
        parsed = validate_cached_parse({"job_title": "Engineer", "schema_version": 1}, 1)
        assert parsed.job_title == "Engineer"

    def test_missing_cache(self):
        with pytest.raises(MissingParseResponseError):
            validate_cached_parse(None, None)
        with pytest.raises(MissingParseResponseError):
            validate_cached_parse({}, 1)

    def test_stale_schema_version(self):
        with pytest.raises(QueryParseError):
            validate_cached_parse({"job_title": "Engineer"}, PARSED_QUERY_SCHEMA_VERSION + 1)

    def test_invalid_content(self):
        with pytest.raises(QueryParseError):
            validate_cached_parse({"skills": {"values": ["Go"], "operator": "NOR"}}, 1)
