"""
Candidate sourcing coordinator.

Drives discovery (one strategy per search provider, page by page) and
enrichment (profile scraper, one identifier at a time with an explicit
pause between calls) and returns a structured partial result.
"""
import logging
import re
from typing import Callable, Dict, List, Optional, Sequence, Union

from core.cancellation import CancellationToken
from core.errors import ProviderError, ProviderConfigurationError
from core.search.query import ParsedQuery, MultiValueField, field_values
from core.sourcing.interfaces import DiscoveryProvider, EnrichmentProvider
from core.sourcing.mapper import map_profile, MalformedProfileError
from core.sourcing.models import (
    Candidate,
    DiscoveryResult,
    SourcingFailure,
    SourcingResult,
    StrategyRun,
    StrategyStatus,
)

logger = logging.getLogger(__name__)

# Criteria rendered into the discovery expression, in order
DISCOVERY_FIELDS = ("job_title", "skills", "company", "location", "industry")

# (done, total, candidate or None when the identifier failed)
ProgressCallback = Callable[[int, int, Optional[Candidate]], None]
StrategyCallback = Callable[[StrategyRun], None]


def _render_term(value) -> Optional[str]:
    values = field_values(value)
    if not values:
        return None
    quoted = [f'"{v}"' for v in values]
    if len(quoted) == 1:
        return quoted[0]
    if isinstance(value, MultiValueField) and value.operator == "AND":
        return " ".join(quoted)
    return f"({' OR '.join(quoted)})"


def build_discovery_query(parsed: ParsedQuery, site_pattern: str = "linkedin.com/in/") -> str:
    """
    Search expression scoped to the profile site.

    Empty fields are left out; OR fields become a parenthesized OR group.
    """
    terms = [t for t in (_render_term(getattr(parsed, name)) for name in DISCOVERY_FIELDS) if t]
    return " ".join([f"site:{site_pattern}", *terms])


def _notify(on_strategy: Optional[StrategyCallback], run: StrategyRun) -> None:
    if on_strategy:
        on_strategy(run)


def _finish(
    run: StrategyRun,
    status: StrategyStatus,
    on_strategy: Optional[StrategyCallback],
    error: Optional[str] = None
) -> None:
    run.status = status
    run.error = error
    _notify(on_strategy, run)


class SourcingCoordinator:
    def __init__(
        self,
        discovery: Union[DiscoveryProvider, Sequence[DiscoveryProvider]],
        enrichment: EnrichmentProvider,
        max_pages: int = 1,
        page_delay_seconds: float = 0.5,
        enrichment_delay_seconds: float = 0.5,
        site_pattern: str = "linkedin.com/in/"
    ):
        if isinstance(discovery, DiscoveryProvider):
            discovery = [discovery]
        self.discovery_providers: List[DiscoveryProvider] = list(discovery)
        if not self.discovery_providers:
            raise ValueError("At least one discovery provider is required")
        self.enrichment = enrichment
        self.max_pages = max_pages
        self.page_delay_seconds = page_delay_seconds
        self.enrichment_delay_seconds = enrichment_delay_seconds
        self.site_pattern = site_pattern
        self._identifier_pattern = re.compile(
            re.escape(site_pattern.rstrip("/")) + r"/([^/?#\s]+)", re.IGNORECASE
        )

    def extract_identifier(self, url: Optional[str]) -> Optional[str]:
        """Public profile identifier from a result URL, or None when it does not match."""
        if not url or not isinstance(url, str):
            return None
        match = self._identifier_pattern.search(url)
        return match.group(1) if match else None

    def discover(
        self,
        parsed: ParsedQuery,
        token: Optional[CancellationToken] = None,
        on_strategy: Optional[StrategyCallback] = None
    ) -> DiscoveryResult:
        """
        Collect unique profile identifiers from every discovery provider.

        Each provider runs as one strategy, in registration order. A strategy
        pages through results until ``max_pages``, the first empty page, or
        the first failed page (identifiers already collected are kept). A
        failing provider never stops the others; identifiers are deduplicated
        across providers and attributed to the first strategy that found them.

        ``on_strategy`` is called with a strategy whenever its status changes,
        starting with every strategy as pending.

        Raises:
            ProviderConfigurationError: no discovery provider is usable at all
            PipelineCancelledError: the token was cancelled
        """
        token = token or CancellationToken()
        query = build_discovery_query(parsed, self.site_pattern)
        result = DiscoveryResult(strategies=[
            StrategyRun(provider=provider.name, query=query, position=position)
            for position, provider in enumerate(self.discovery_providers)
        ])
        for run in result.strategies:
            _notify(on_strategy, run)

        configuration_errors: List[ProviderConfigurationError] = []
        try:
            for provider, run in zip(self.discovery_providers, result.strategies):
                try:
                    self._run_strategy(provider, run, result, token, on_strategy)
                except ProviderConfigurationError as e:
                    logger.warning(f"Discovery provider {provider.name} is not usable: {e}")
                    configuration_errors.append(e)
                    result.failed_pages.append(SourcingFailure(input=provider.name, reason=str(e)))
                    _finish(run, StrategyStatus.ERROR, on_strategy, error=str(e))
        except Exception as e:
            for run in result.strategies:
                if not run.is_finished:
                    _finish(run, StrategyStatus.ERROR, on_strategy, error=str(e))
            raise

        if len(configuration_errors) == len(self.discovery_providers):
            raise configuration_errors[0]

        result.identifiers = list(result.sources)
        logger.info(
            f"Discovery found {len(result.identifiers)} unique profiles "
            f"over {result.pages_fetched} page(s) from {len(result.strategies)} strategies"
        )
        return result

    def _run_strategy(
        self,
        provider: DiscoveryProvider,
        run: StrategyRun,
        result: DiscoveryResult,
        token: CancellationToken,
        on_strategy: Optional[StrategyCallback]
    ) -> None:
        run.status = StrategyStatus.EXECUTING
        _notify(on_strategy, run)
        found: Dict[str, None] = {}

        for page in range(1, self.max_pages + 1):
            token.raise_if_cancelled()
            try:
                items = provider.search_page(run.query, page)
            except ProviderConfigurationError:
                raise
            except ProviderError as e:
                logger.warning(f"{provider.name} page {page} failed, stopping pagination: {e}")
                result.failed_pages.append(SourcingFailure(input=f"{provider.name} page {page}", reason=str(e)))
                run.error = str(e)
                break

            run.pages_fetched += 1
            result.pages_fetched += 1
            if not items:
                logger.info(f"{provider.name} page {page} returned no results, stopping")
                break

            for item in items:
                identifier = self.extract_identifier(item.get("link"))
                if identifier is None:
                    logger.debug(f"Skipping non-profile URL: {item.get('link')}")
                    continue
                found.setdefault(identifier, None)
                result.sources.setdefault(identifier, run)

            if page < self.max_pages:
                token.wait(self.page_delay_seconds)

        run.candidates_found = len(found)
        status = StrategyStatus.COMPLETED if run.pages_fetched else StrategyStatus.ERROR
        _finish(run, status, on_strategy, error=run.error)
        logger.info(f"Strategy {provider.name}: {run.candidates_found} profiles over {run.pages_fetched} page(s)")

    def enrich(
        self,
        identifiers: List[str],
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> SourcingResult:
        """
        Enrich identifiers sequentially, pausing between calls.

        A failed or malformed profile is recorded in ``failed`` and the
        batch continues.
        """
        token = token or CancellationToken()
        result = SourcingResult()
        seen_profiles = set()
        total = len(identifiers)

        for index, identifier in enumerate(identifiers):
            token.raise_if_cancelled()
            candidate = None
            try:
                payload = self.enrichment.fetch_profile(identifier)
                candidate = map_profile(payload, identifier)
            except ProviderConfigurationError:
                raise
            except (ProviderError, MalformedProfileError) as e:
                logger.warning(f"Enrichment failed for {identifier}: {e}")
                result.failed.append(SourcingFailure(input=identifier, reason=str(e)))

            if candidate is not None:
                if candidate.public_identifier in seen_profiles:
                    logger.info(f"Duplicate profile {candidate.public_identifier} from {identifier}, skipping")
                    candidate = None
                else:
                    seen_profiles.add(candidate.public_identifier)
                    result.succeeded.append(candidate)

            if on_progress:
                on_progress(index + 1, total, candidate)

            if index < total - 1:
                token.wait(self.enrichment_delay_seconds)

        logger.info(f"Enrichment complete: {len(result.succeeded)} successful, {len(result.failed)} failed")
        return result

    def source(
        self,
        parsed: ParsedQuery,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_strategy: Optional[StrategyCallback] = None
    ) -> SourcingResult:
        discovery = self.discover(parsed, token, on_strategy)
        result = self.enrich(discovery.identifiers, token, on_progress)
        result.discovery = discovery
        return result
