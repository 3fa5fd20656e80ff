"""Serper (Google search API) discovery client with connection reuse and retry logic."""

import logging
from typing import Optional, Dict, Any, List

import requests

from core.errors import ProviderError, ProviderConfigurationError
from core.sourcing.http import provider_retry
from core.sourcing.interfaces import DiscoveryProvider

logger = logging.getLogger(__name__)


class SerperClient(DiscoveryProvider):
    """
    Client for the Serper search API.

    Responsibilities:
    - Own a requests.Session for connection reuse
    - Fetch one page of organic results per call, retrying transient failures
    - Translate HTTP failures into ProviderError
    """
    name = "serper"

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = "https://google.serper.dev/search",
        results_per_page: int = 10,
        request_timeout_seconds: int = 30,
        session: Optional[requests.Session] = None
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.results_per_page = results_per_page
        self.request_timeout_seconds = request_timeout_seconds
        self.session = session or requests.Session()

    @provider_retry()
    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        response = self.session.post(
            self.api_url,
            json=payload,
            headers={
                "X-API-KEY": self.api_key,
                "Content-Type": "application/json",
            },
            timeout=self.request_timeout_seconds
        )
        response.raise_for_status()
        return response

    def search_page(self, query: str, page: int) -> List[Dict[str, Any]]:
        if not self.api_key:
            raise ProviderConfigurationError(self.name, "SERPER_API_KEY is not set")

        payload = {"q": query, "num": self.results_per_page, "page": page}
        logger.info(f"Serper request page {page}: {query}")
        try:
            response = self._post(payload)
            data = response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            body = e.response.text[:200] if e.response is not None else ""
            raise ProviderError(self.name, f"HTTP {status}: {body}", status_code=status) from e
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(self.name, str(e)) from e

        if not isinstance(data, dict):
            raise ProviderError(self.name, "Unexpected response shape")

        organic = data.get("organic") or []
        logger.info(f"Serper page {page}: {len(organic)} organic results")
        return [
            {
                "link": item.get("link"),
                "title": item.get("title"),
                "snippet": item.get("snippet"),
            }
            for item in organic
            if isinstance(item, dict)
        ]
