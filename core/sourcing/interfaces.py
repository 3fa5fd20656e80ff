"""
Sourcing provider interfaces.

Discovery finds public profile URLs for a search expression; enrichment
fetches the full profile for one identifier.
"""
from abc import ABC, abstractmethod
from typing import List, Dict, Any


class DiscoveryProvider(ABC):
    name = "discovery"

    @abstractmethod
    def search_page(self, query: str, page: int) -> List[Dict[str, Any]]:
        """
        Fetch one page of organic results.

        Returns:
            Ordered list of {"link", "title", "snippet"} dicts; empty when exhausted.

        Raises:
            ProviderError: the request failed
        """
        pass


class EnrichmentProvider(ABC):
    name = "enrichment"

    @abstractmethod
    def fetch_profile(self, identifier: str) -> Dict[str, Any]:
        """
        Fetch the provider-specific profile payload for one identifier.

        Raises:
            ProviderError: the request failed or returned no profile
        """
        pass
