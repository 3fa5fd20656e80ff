"""
Scoring-model step.

Turns a search's cached parse response into a scoring model by calling the
external calculation service. The cache is re-validated first and the step
refuses to run without it.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

import requests
from sqlalchemy.orm import sessionmaker

from core.errors import (
    ProviderError,
    QueryParseError,
    MissingParseResponseError,
    SearchNotFoundError,
    ScoringModelUnavailableError,
)
from core.search.parser import validate_cached_parse
from core.sourcing.http import provider_retry
from core.utils import generate_id, utcnow, truncate_error
from database.uow import search_uow

logger = logging.getLogger(__name__)


class ScoringModelClient:
    """HTTP client for the scoring calculation service."""
    name = "scoring_model"

    def __init__(
        self,
        calculation_url: str,
        request_timeout_seconds: int = 60,
        session: Optional[requests.Session] = None
    ):
        self.calculation_url = calculation_url
        self.request_timeout_seconds = request_timeout_seconds
        self.session = session or requests.Session()

    @provider_retry()
    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        response = self.session.post(
            self.calculation_url,
            json=payload,
            timeout=self.request_timeout_seconds
        )
        response.raise_for_status()
        return response

    def calculate(self, parse_payload: Dict[str, Any], max_error_length: int = 100) -> Dict[str, Any]:
        try:
            response = self._post(parse_payload)
            data = response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            body = e.response.text if e.response is not None else ""
            raise ProviderError(
                self.name,
                f"Calculation failed {status}: {body[:max_error_length]}",
                status_code=status
            ) from e
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(self.name, f"Calculation failed: {e}") from e

        if not isinstance(data, dict):
            raise ProviderError(self.name, "Calculation response is not a JSON object")
        return data


@dataclass
class ScoringModelResult:
    search_id: str
    scoring_model_id: str
    scoring_model_version: Optional[int]


class ScoringModelStep:
    def __init__(
        self,
        session_factory: sessionmaker,
        client: Optional[ScoringModelClient],
        max_error_length: int = 100
    ):
        self.session_factory = session_factory
        self.client = client
        self.max_error_length = max_error_length

    def run(self, search_id: str) -> ScoringModelResult:
        """
        Build and store the scoring model for a search.

        Raises:
            SearchNotFoundError: unknown search
            MissingParseResponseError: parse cache absent or invalid (recorded as parse_error)
            ScoringModelUnavailableError: no calculation service configured
            ProviderError: calculation call failed (recorded as scoring_model_error)
        """
        with search_uow(self.session_factory) as repos:
            search = repos.search.get_by_id(search_id)
            if search is None:
                raise SearchNotFoundError()
            payload = search.parse_response
            schema_version = search.parse_schema_version
            existing_model_id = search.scoring_model_id

        try:
            parsed = validate_cached_parse(payload, schema_version)
        except QueryParseError as e:
            message = truncate_error(e, self.max_error_length)
            with search_uow(self.session_factory) as repos:
                repos.search.update_fields(search_id, parse_error=message, parse_updated_at=utcnow())
            logger.warning(f"Search {search_id}: invalid parse cache: {message}")
            raise MissingParseResponseError(str(e)) from e

        if self.client is None:
            raise ScoringModelUnavailableError()

        logger.info(f"Search {search_id}: requesting scoring model")
        try:
            calculation = self.client.calculate(parsed.model_dump(), self.max_error_length)
        except ProviderError as e:
            message = truncate_error(e, self.max_error_length)
            with search_uow(self.session_factory) as repos:
                repos.search.update_fields(
                    search_id,
                    scoring_model_error=message,
                    scoring_model_updated_at=utcnow()
                )
            logger.error(f"Search {search_id}: scoring model failed: {message}")
            raise

        version = calculation.get("version")
        if not isinstance(version, int):
            version = None
        scoring_model_id = existing_model_id or generate_id()

        with search_uow(self.session_factory) as repos:
            repos.search.update_fields(
                search_id,
                scoring_model=calculation,
                scoring_model_version=version,
                scoring_model_id=scoring_model_id,
                scoring_model_error=None,
                scoring_model_updated_at=utcnow()
            )

        logger.info(f"Search {search_id}: stored scoring model {scoring_model_id} (version {version})")
        return ScoringModelResult(
            search_id=search_id,
            scoring_model_id=scoring_model_id,
            scoring_model_version=version
        )
