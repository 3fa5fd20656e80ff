"""LinkedIn profile enrichment via the Fresh LinkedIn Scraper API on RapidAPI."""

import logging
from typing import Optional, Dict, Any

import requests

from core.errors import ProviderError, ProviderConfigurationError
from core.sourcing.http import provider_retry
from core.sourcing.interfaces import EnrichmentProvider

logger = logging.getLogger(__name__)

PROFILE_SECTIONS = (
    "include_follower_and_connection",
    "include_experiences",
    "include_skills",
    "include_certifications",
    "include_publications",
    "include_educations",
    "include_volunteers",
    "include_honors",
    "include_interests",
    "include_bio",
)


class LinkedInScraperClient(EnrichmentProvider):
    name = "rapidapi_linkedin"

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = "https://fresh-linkedin-scraper-api.p.rapidapi.com/api/v1/user/profile",
        api_host: str = "fresh-linkedin-scraper-api.p.rapidapi.com",
        request_timeout_seconds: int = 30,
        session: Optional[requests.Session] = None
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.api_host = api_host
        self.request_timeout_seconds = request_timeout_seconds
        self.session = session or requests.Session()

    @provider_retry()
    def _get(self, params: Dict[str, str]) -> requests.Response:
        response = self.session.get(
            self.api_url,
            params=params,
            headers={
                "x-rapidapi-host": self.api_host,
                "x-rapidapi-key": self.api_key,
            },
            timeout=self.request_timeout_seconds
        )
        response.raise_for_status()
        return response

    def fetch_profile(self, identifier: str) -> Dict[str, Any]:
        if not self.api_key:
            raise ProviderConfigurationError(self.name, "RAPIDAPI_KEY is not set")
        if not identifier or not identifier.strip():
            raise ProviderError(self.name, "LinkedIn username is required")

        params = {"username": identifier}
        params.update({section: "true" for section in PROFILE_SECTIONS})

        try:
            response = self._get(params)
            body = response.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            text = e.response.text[:200] if e.response is not None else ""
            raise ProviderError(self.name, f"HTTP {status}: {text}", status_code=status) from e
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(self.name, str(e)) from e

        if not isinstance(body, dict) or not body.get("success") or not isinstance(body.get("data"), dict):
            message = body.get("message") if isinstance(body, dict) else None
            raise ProviderError(self.name, f"Unsuccessful response: {message or 'No data'}")

        return body["data"]
