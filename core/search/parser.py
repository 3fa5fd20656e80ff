"""
Query parser - turns free-text recruiting queries into a ParsedQuery.

The natural-language step is delegated to the LLM provider; everything the
provider returns is validated before it is trusted.
"""
import logging
from typing import Any, Dict, Optional

import openai
from pydantic import ValidationError

from core.errors import QueryParseError, ProviderError, MissingParseResponseError
from core.llm.interfaces import LLMProvider
from core.llm.response_parsing import extract_json_object
from core.llm.system_prompts import QUERY_PARSER_PROMPT
from core.search.query import ParsedQuery, PARSED_QUERY_SCHEMA_VERSION

logger = logging.getLogger(__name__)


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ())) or "response"
    return f"Invalid parse response at {location}: {first.get('msg', str(exc))}"


def validate_parse_payload(payload: Dict[str, Any]) -> ParsedQuery:
    """
    Validate a parse payload (fresh from the LLM or read from cache).

    Raises:
        QueryParseError: payload does not conform to the current ParsedQuery schema
    """
    try:
        return ParsedQuery.model_validate(payload)
    except ValidationError as e:
        raise QueryParseError(_validation_message(e)) from e


def validate_cached_parse(
    payload: Optional[Dict[str, Any]],
    schema_version: Optional[int]
) -> ParsedQuery:
    """
    Re-validate a cached parse response before a downstream step uses it.

    Fails closed: an absent cache raises MissingParseResponseError, a cache
    from another schema version or with invalid content raises QueryParseError.
    """
    if not payload:
        raise MissingParseResponseError()
    if schema_version is not None and schema_version != PARSED_QUERY_SCHEMA_VERSION:
        raise QueryParseError(
            f"Cached parse response has schema version {schema_version}, expected {PARSED_QUERY_SCHEMA_VERSION}"
        )
    return validate_parse_payload(payload)


class QueryParser:
    def __init__(self, llm: LLMProvider, model: Optional[str] = None, max_tokens: int = 1024):
        self.llm = llm
        self.model = model
        self.max_tokens = max_tokens

    def parse(self, raw_text: str) -> ParsedQuery:
        """
        Parse free text into a validated ParsedQuery.

        Raises:
            QueryParseError: empty query, unparseable or invalid LLM output
            ProviderError: the LLM provider call failed
        """
        query = (raw_text or "").strip()
        if not query:
            raise QueryParseError("Search query is empty")

        logger.info(f"Parsing query with LLM: {query[:200]}")
        try:
            completion = self.llm.complete(
                f"{QUERY_PARSER_PROMPT}\n\n{query}",
                model=self.model,
                max_tokens=self.max_tokens
            )
        except openai.APIStatusError as e:
            raise ProviderError("llm", str(e), status_code=e.status_code) from e
        except openai.APIError as e:
            raise ProviderError("llm", str(e)) from e

        try:
            payload = extract_json_object(completion)
        except ValueError as e:
            raise QueryParseError(f"Could not read parse response: {e}") from e

        payload.setdefault("schema_version", PARSED_QUERY_SCHEMA_VERSION)
        parsed = validate_parse_payload(payload)
        if parsed.is_empty():
            raise QueryParseError("No search criteria could be extracted from the query")

        logger.info(f"Parsed query: {parsed.model_dump(exclude_defaults=True)}")
        return parsed
