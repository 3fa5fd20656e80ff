#!/usr/bin/env python3
"""
Search service - search creation, reads, and background run management.
"""

import logging
import threading
from typing import List, Optional

from core.access import (
    Identity,
    record_preview_view,
    require_active_subscription,
    require_org_write_access,
    require_search_read_access,
)
from core.app_context import AppContext
from core.cancellation import CancellationToken
from core.errors import NotAuthenticatedError, NotAuthorizedError
from core.search.progress import build_progress
from database.models import Search, SearchCandidate, SourcingStrategy
from database.uow import search_uow
from pipeline.control import RunRegistry
from pipeline.runner import run_search_pipeline
from ..models.responses import (
    SearchCreatedResponse,
    SearchDetailResponse,
    SearchSummary,
    SearchProgressResponse,
    CandidateResult,
    CandidatesResponse,
    SourcingStrategyItem,
    SourcingStrategiesResponse,
)
from ..utils import safe_datetime_iso, safe_int

logger = logging.getLogger(__name__)


class SearchTaskManager:
    """Runs search pipelines in background threads, one run per search id."""

    def __init__(self):
        self._registry = RunRegistry()

    def start(self, ctx: AppContext, search_id: str) -> bool:
        """
        Start the pipeline for a search in the background.

        Returns False if a run for this search is already active in this process.
        """
        token = CancellationToken(timeout_seconds=ctx.config.pipeline.run_timeout_seconds)
        if not self._registry.register(search_id, token):
            return False

        thread = threading.Thread(
            target=self._run_pipeline_background,
            args=(ctx, search_id, token),
            daemon=True
        )
        thread.start()
        return True

    def stop(self, search_id: str) -> bool:
        return self._registry.cancel(search_id)

    def is_running(self, search_id: str) -> bool:
        return self._registry.is_running(search_id)

    def _run_pipeline_background(self, ctx: AppContext, search_id: str, token: CancellationToken):
        """Run the search pipeline in a background thread."""
        try:
            result = run_search_pipeline(ctx, search_id, token)
            logger.info(
                f"Search {search_id} run ended: status={result.status}, "
                f"candidates={result.candidates_count}, scored={result.scored_count}"
            )
        except Exception:
            logger.exception(f"Error in background search task {search_id}")
        finally:
            self._registry.release(search_id)


# Global search task manager
_search_manager = SearchTaskManager()


def get_search_manager() -> SearchTaskManager:
    """Get the global search task manager."""
    return _search_manager


def _detail(search: Search) -> SearchDetailResponse:
    return SearchDetailResponse(
        search_id=search.id,
        name=search.name,
        query=search.query,
        parsed_query=search.params,
        scoring_prompt=search.scoring_prompt,
        status=search.status,
        progress=safe_int(search.progress),
        status_message=search.status_message,
        error_stage=search.error_stage,
        parse_error=search.parse_error,
        scoring_model_error=search.scoring_model_error,
        sourcing_error=search.sourcing_error,
        candidates_found=safe_int(search.candidates_found),
        created_at=safe_datetime_iso(search.created_at),
        completed_at=safe_datetime_iso(search.completed_at)
    )


def _candidate_result(link: SearchCandidate) -> CandidateResult:
    candidate = link.candidate
    current = next((e for e in candidate.experiences or [] if e.get("is_current")), None)
    if current is None and candidate.experiences:
        current = candidate.experiences[0]
    return CandidateResult(
        search_candidate_id=link.id,
        candidate_id=candidate.id,
        public_identifier=candidate.public_identifier,
        linkedin_url=candidate.linkedin_url,
        full_name=candidate.full_name,
        headline=candidate.headline,
        location=candidate.location,
        photo_url=candidate.photo_url,
        current_title=current.get("title") if current else None,
        current_company=current.get("company") if current else None,
        skills=list(candidate.skills or []),
        match_score=link.match_score,
        pros=list(link.pros or []),
        cons=list(link.cons or []),
        scoring_error=link.scoring_error
    )


def _strategy_item(strategy: SourcingStrategy) -> SourcingStrategyItem:
    return SourcingStrategyItem(
        id=strategy.id,
        position=safe_int(strategy.position),
        name=strategy.name,
        query=strategy.query,
        status=strategy.status,
        pages_fetched=safe_int(strategy.pages_fetched),
        candidates_found=safe_int(strategy.candidates_found),
        error=strategy.error,
        created_at=safe_datetime_iso(strategy.created_at),
        updated_at=safe_datetime_iso(strategy.updated_at)
    )


class SearchService:
    """Service for search reads and writes on behalf of a caller."""

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    def create_search(
        self,
        identity: Optional[Identity],
        query: str,
        scoring_prompt: Optional[str] = None
    ) -> SearchCreatedResponse:
        """
        Create a pending search in the caller's active organization.

        Raises:
            NotAuthenticatedError, ReadOnlyAccessError, SubscriptionRequiredError
        """
        identity = require_org_write_access(identity)
        with search_uow(self.ctx.session_factory) as repos:
            require_active_subscription(repos, identity.organization_id)
            search = repos.search.create(
                organization_id=identity.organization_id,
                user_id=identity.user_id,
                query=query.strip(),
                scoring_prompt=scoring_prompt.strip() if scoring_prompt else None
            )
            search_id, status = search.id, search.status

        logger.info(f"Created search {search_id} for org {identity.organization_id}")
        return SearchCreatedResponse(
            search_id=search_id,
            status=status,
            message=f"Search started. Use /api/search/{search_id}/progress to check progress."
        )

    def get_detail(self, identity: Optional[Identity], search_id: str) -> SearchDetailResponse:
        with search_uow(self.ctx.session_factory) as repos:
            search = require_search_read_access(repos, identity, search_id)
            record_preview_view(repos, identity)
            return _detail(search)

    def get_progress(self, identity: Optional[Identity], search_id: str) -> SearchProgressResponse:
        with search_uow(self.ctx.session_factory) as repos:
            search = require_search_read_access(repos, identity, search_id)
            return SearchProgressResponse(**build_progress(repos, search).to_dict())

    def require_writable_search(self, identity: Optional[Identity], search_id: str) -> str:
        """Check the caller may act on the search; returns its status."""
        identity = require_org_write_access(identity)
        with search_uow(self.ctx.session_factory) as repos:
            search = require_search_read_access(repos, identity, search_id)
            return search.status

    def list_candidates(
        self,
        identity: Optional[Identity],
        search_id: str,
        page: int = 1,
        limit: int = 20,
        min_score: Optional[int] = None
    ) -> CandidatesResponse:
        with search_uow(self.ctx.session_factory) as repos:
            require_search_read_access(repos, identity, search_id)
            links, total = repos.candidates.paginate_for_search(search_id, page, limit, min_score)
            candidates = [_candidate_result(link) for link in links]

        return CandidatesResponse(
            candidates=candidates,
            total=total,
            page=page,
            limit=limit,
            has_more=page * limit < total
        )

    def list_strategies(self, identity: Optional[Identity], search_id: str) -> SourcingStrategiesResponse:
        with search_uow(self.ctx.session_factory) as repos:
            require_search_read_access(repos, identity, search_id)
            strategies = [_strategy_item(s) for s in repos.strategies.list_for_search(search_id)]
        return SourcingStrategiesResponse(search_id=search_id, strategies=strategies)

    def list_recent(self, identity: Optional[Identity], limit: int = 20) -> List[SearchSummary]:
        if identity is None:
            raise NotAuthenticatedError()
        if identity.organization_id is None:
            raise NotAuthorizedError("No active organization")

        with search_uow(self.ctx.session_factory) as repos:
            return [
                SearchSummary(
                    search_id=search.id,
                    name=search.name,
                    status=search.status,
                    progress=safe_int(search.progress),
                    candidates_found=safe_int(search.candidates_found),
                    created_at=safe_datetime_iso(search.created_at)
                )
                for search in repos.search.list_recent(identity.organization_id, limit)
            ]
