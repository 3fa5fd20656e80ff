"""Search pipeline runner.

Drives one search through parse -> discovery -> enrichment -> scoring.
Every status change goes through the SearchStateMachine; this module only
decides what happens next. Used by the web task manager and by main.py.
"""

import time
import logging
from dataclasses import dataclass
from typing import Optional, Callable, List, Tuple

from core.app_context import AppContext
from core.cancellation import CancellationToken
from core.errors import TalentScoutError, ProviderConfigurationError, SearchNotFoundError
from core.search.query import ParsedQuery, PARSED_QUERY_SCHEMA_VERSION, generate_search_name
from core.search.states import SearchStatus, SearchStage, band_progress
from core.sourcing.models import Candidate, DiscoveryResult, SourcingResult, StrategyRun
from core.utils import utcnow
from database.models import Search
from database.repositories.candidate import row_to_profile
from database.uow import search_uow

logger = logging.getLogger(__name__)

POLLING_BAND = (30, 70)
SCORING_BAND = (70, 99)


@dataclass
class SearchPipelineResult:
    """Result of running the search pipeline."""
    success: bool
    search_id: str
    status: str
    candidates_count: int = 0
    scored_count: int = 0
    failed_enrichments: int = 0
    error: Optional[str] = None
    execution_time: float = 0.0


def run_search_pipeline(
    ctx: AppContext,
    search_id: str,
    token: Optional[CancellationToken] = None,
    status_callback: Optional[Callable[[str], None]] = None
) -> SearchPipelineResult:
    """Run a pending search to completion (or error).

    Idempotent per search id: a search that is no longer pending is left
    untouched and no provider is called.

    Args:
        ctx: Application context with providers and the state machine
        search_id: Search to run
        token: Cancellation token; a fresh one with the configured run
            deadline is used when omitted
        status_callback: Called with the stage name as the run advances

    Returns:
        SearchPipelineResult with the final status and counts
    """
    token = token or CancellationToken(timeout_seconds=ctx.config.pipeline.run_timeout_seconds)
    machine = ctx.state_machine
    pipeline_start = time.time()

    if not machine.claim(search_id):
        snapshot = machine.snapshot(search_id)
        logger.info(f"Search {search_id} already started ({snapshot.status}); not running again")
        return SearchPipelineResult(
            success=snapshot.status != SearchStatus.ERROR.value,
            search_id=search_id,
            status=snapshot.status,
            candidates_count=snapshot.total,
            scored_count=snapshot.scored,
            error=snapshot.error
        )

    logger.info("=" * 60)
    logger.info(f"STARTING SEARCH PIPELINE {search_id}")
    logger.info("=" * 60)

    stage = SearchStage.PARSE
    sourcing = SourcingResult()
    scored_count = 0

    def finish(success: bool, error: Optional[str] = None) -> SearchPipelineResult:
        snapshot = machine.snapshot(search_id)
        execution_time = time.time() - pipeline_start
        logger.info(f"SEARCH PIPELINE {search_id} finished as {snapshot.status} in {execution_time:.2f}s")
        return SearchPipelineResult(
            success=success,
            search_id=search_id,
            status=snapshot.status,
            candidates_count=snapshot.total,
            scored_count=scored_count,
            failed_enrichments=len(sourcing.failed),
            error=error,
            execution_time=execution_time
        )

    try:
        # Step 1: parse
        if status_callback:
            status_callback(stage.value)
        raw_query, scoring_prompt = _load_query(ctx, search_id)
        parsed = _parse(ctx, raw_query, token)
        parsed_payload = parsed.model_dump(mode="json")
        if not machine.advance(
            search_id,
            SearchStatus.PARSING,
            SearchStatus.EXECUTING,
            name=generate_search_name(parsed),
            params=parsed_payload,
            parse_response=parsed_payload,
            parse_schema_version=PARSED_QUERY_SCHEMA_VERSION,
            parse_error=None,
            parse_updated_at=utcnow()
        ):
            return finish(False, "Search was moved by another run")

        # Step 2: discovery
        stage = SearchStage.SOURCING
        if status_callback:
            status_callback(stage.value)
        step_start = time.time()
        discovery = ctx.coordinator.discover(parsed, token, on_strategy=_strategy_recorder(ctx, search_id))
        sourcing.discovery = discovery
        logger.info(f"Discovery completed in {time.time() - step_start:.2f}s")

        if not discovery.identifiers:
            if discovery.failed_pages and discovery.pages_fetched == 0:
                machine.fail(search_id, stage, discovery.failed_pages[0].reason)
                return finish(False, discovery.failed_pages[0].reason)
            machine.advance(
                search_id,
                SearchStatus.EXECUTING,
                SearchStatus.COMPLETED,
                message="No matching profiles found",
                candidates_found=0,
                sourcing_updated_at=utcnow()
            )
            return finish(True)

        # Step 3: enrichment, persisting each profile as it arrives
        if not machine.advance(search_id, SearchStatus.EXECUTING, SearchStatus.POLLING):
            return finish(False, "Search was moved by another run")

        step_start = time.time()
        sourcing = ctx.coordinator.enrich(
            discovery.identifiers,
            token,
            on_progress=_enrichment_progress(ctx, search_id, discovery)
        )
        sourcing.discovery = discovery
        logger.info(f"Enrichment completed in {time.time() - step_start:.2f}s")

        sourcing_error = None
        if sourcing.failed:
            sourcing_error = f"{len(sourcing.failed)} of {len(discovery.identifiers)} profiles could not be fetched"
        if not machine.advance(
            search_id,
            SearchStatus.POLLING,
            SearchStatus.SCORING,
            sourcing_error=sourcing_error,
            sourcing_updated_at=utcnow()
        ):
            return finish(False, "Search was moved by another run")

        # Step 4: scoring
        stage = SearchStage.SCORING
        if status_callback:
            status_callback(stage.value)
        if ctx.scoring_service is None:
            logger.info("=== SCORING: Skipped (not configured) ===")
            message = "Search completed (scoring skipped)"
        else:
            step_start = time.time()
            scored_count = _score_candidates(ctx, search_id, parsed, scoring_prompt, token)
            logger.info(f"Scoring completed in {time.time() - step_start:.2f}s")
            message = None

        machine.advance(search_id, SearchStatus.SCORING, SearchStatus.COMPLETED, message=message)
        return finish(True)

    except TalentScoutError as e:
        logger.warning(f"Search {search_id} stopped during {stage.value}: {e}")
        machine.fail(search_id, stage, e)
        return finish(False, str(e))
    except Exception as e:
        logger.exception(f"Unexpected error in search pipeline {search_id}")
        machine.fail(search_id, stage, e)
        return finish(False, str(e))


def _load_query(ctx: AppContext, search_id: str) -> Tuple[str, Optional[str]]:
    with search_uow(ctx.session_factory) as repos:
        search: Optional[Search] = repos.search.get_by_id(search_id)
        if search is None:
            raise SearchNotFoundError()
        return search.query, search.scoring_prompt


def _parse(ctx: AppContext, raw_query: str, token: CancellationToken) -> ParsedQuery:
    if ctx.query_parser is None:
        raise ProviderConfigurationError("llm", "LLM_API_KEY is not set")
    token.raise_if_cancelled()
    parsed = ctx.query_parser.parse(raw_query)
    token.raise_if_cancelled()
    return parsed


def _strategy_recorder(ctx: AppContext, search_id: str):
    def on_strategy(run: StrategyRun) -> None:
        with search_uow(ctx.session_factory) as repos:
            repos.strategies.save_run(search_id, run)

    return on_strategy


def _enrichment_progress(ctx: AppContext, search_id: str, discovery: DiscoveryResult):
    def on_progress(done: int, total: int, candidate: Optional[Candidate]) -> None:
        if candidate is not None:
            # done counts identifiers in discovery order
            run = discovery.sources.get(discovery.identifiers[done - 1])
            with search_uow(ctx.session_factory) as repos:
                row = repos.candidates.upsert(candidate)
                repos.candidates.link_to_search(
                    search_id,
                    row.id,
                    source_provider=run.provider if run else "serper",
                    sourcing_strategy_id=run.id if run else None
                )
                repos.search.update_fields(search_id, candidates_found=Search.candidates_found + 1)
        ctx.state_machine.report_progress(
            search_id,
            band_progress(*POLLING_BAND, done, total),
            f"Fetched {done}/{total} profiles"
        )

    return on_progress


def _score_candidates(
    ctx: AppContext,
    search_id: str,
    parsed: ParsedQuery,
    scoring_prompt: Optional[str],
    token: CancellationToken
) -> int:
    """Score every unscored candidate of the search; failures are stored per candidate."""
    with search_uow(ctx.session_factory) as repos:
        pending: List[Tuple[str, Candidate]] = [
            (link.id, row_to_profile(link.candidate))
            for link in repos.candidates.list_unscored(search_id)
        ]

    total = len(pending)
    scored = 0
    logger.info(f"Scoring {total} candidates for search {search_id}")

    for index, (link_id, profile) in enumerate(pending):
        token.raise_if_cancelled()
        result = ctx.scoring_service.score(profile, parsed, scoring_prompt)

        with search_uow(ctx.session_factory) as repos:
            if result.success:
                repos.candidates.save_score(link_id, result.score, result.pros, result.cons)
                scored += 1
            else:
                logger.warning(f"Scoring failed for {profile.public_identifier}: {result.error}")
                repos.candidates.save_scoring_error(link_id, result.error or "Scoring failed")

        ctx.state_machine.report_progress(
            search_id,
            band_progress(*SCORING_BAND, index + 1, total),
            f"Scored {index + 1}/{total} candidates"
        )

    return scored
