#!/usr/bin/env python3
"""
Search endpoints - create, run, monitor and read candidate searches.
"""

import json
import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse, JSONResponse
from starlette.concurrency import run_in_threadpool

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from core.access import Identity
from core.app_context import AppContext
from core.search.lifecycle import EVENT_SEARCH_COMPLETED, EVENT_SEARCH_FAILED
from core.search.states import SearchStatus, TERMINAL_STATES
from ..config import get_config
from ..dependencies import get_app_context, get_identity
from ..services.search_service import SearchService, SearchTaskManager, get_search_manager
from ..models.requests import CreateSearchRequest
from ..models.responses import (
    SearchCreatedResponse,
    SearchDetailResponse,
    SearchProgressResponse,
    SearchRunResponse,
    CandidatesResponse,
    RecentSearchesResponse,
    SourcingStrategiesResponse,
)

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/api/search", tags=["search"])

HEARTBEAT_SECONDS = 30.0
_TERMINAL_VALUES = {status.value for status in TERMINAL_STATES}


def add_rate_limit_handlers(app):
    """Add rate limit exception handlers to the FastAPI app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"success": False, "error": str(exc), "type": "RateLimitExceeded"}
    )


def _search_rate_limit() -> str:
    return get_config().web.search_rate_limit


def _sse(event: str, data: Dict[str, Any]) -> str:
    return f"data: {json.dumps({'event': event, 'data': data}, default=str)}\n\n"


@router.post("", response_model=SearchCreatedResponse, status_code=202)
@limiter.limit(_search_rate_limit)
def create_search(
    request: Request,
    body: CreateSearchRequest,
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context),
    manager: SearchTaskManager = Depends(get_search_manager)
):
    """
    Create a search and start it in the background.

    Requires a non-viewer member of the active organization with an active
    subscription. Returns immediately; follow progress with
    /api/search/{search_id}/progress or /api/search/{search_id}/events.
    """
    response = SearchService(ctx).create_search(identity, body.query, body.scoring_prompt)
    manager.start(ctx, response.search_id)
    return response


@router.get("/recent", response_model=RecentSearchesResponse)
def get_recent_searches(
    limit: int = Query(default=20, ge=1, le=100, description="Maximum searches to return"),
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context)
):
    """Most recent searches of the caller's active organization."""
    searches = SearchService(ctx).list_recent(identity, limit)
    return RecentSearchesResponse(searches=searches, count=len(searches))


@router.post("/{search_id}/run", response_model=SearchRunResponse)
def run_search(
    search_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context),
    manager: SearchTaskManager = Depends(get_search_manager)
):
    """
    Start a pending search. Safe to call repeatedly: a search that has
    already started is never restarted.
    """
    status = SearchService(ctx).require_writable_search(identity, search_id)
    if status != SearchStatus.PENDING.value:
        return SearchRunResponse(
            success=False,
            search_id=search_id,
            status=status,
            message="Search has already started."
        )

    started = manager.start(ctx, search_id)
    return SearchRunResponse(
        success=started,
        search_id=search_id,
        status=status,
        message="Search started." if started else "Search is already running."
    )


@router.post("/{search_id}/stop", response_model=SearchRunResponse)
def stop_search(
    search_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context),
    manager: SearchTaskManager = Depends(get_search_manager)
):
    """Request cancellation of the search's active run."""
    status = SearchService(ctx).require_writable_search(identity, search_id)
    stopped = manager.stop(search_id)
    return SearchRunResponse(
        success=stopped,
        search_id=search_id,
        status=status,
        message="Search cancellation requested." if stopped else "No active run for this search."
    )


@router.get("/{search_id}", response_model=SearchDetailResponse)
def get_search(
    search_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context)
):
    """Search detail: name, query, parsed criteria, status and stage errors."""
    return SearchService(ctx).get_detail(identity, search_id)


@router.get("/{search_id}/progress", response_model=SearchProgressResponse)
def get_search_progress(
    search_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context)
):
    """
    Pull the progress of a search.

    Status codes:
    - 401: not authenticated
    - 403: not a member of the search's organization
    - 404: search does not exist
    - 500: anything else
    """
    return SearchService(ctx).get_progress(identity, search_id)


@router.get("/{search_id}/candidates", response_model=CandidatesResponse)
def get_search_candidates(
    search_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    min_score: Optional[int] = Query(default=None, ge=0, le=100, description="Minimum match score filter"),
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context)
):
    """Candidates of a search, best score first (unscored last)."""
    return SearchService(ctx).list_candidates(identity, search_id, page, limit, min_score)


@router.get("/{search_id}/strategies", response_model=SourcingStrategiesResponse)
def get_search_strategies(
    search_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context)
):
    """
    Discovery strategies run for a search, in the order they ran.

    Status codes:
    - 401: not authenticated
    - 403: not a member of the search's organization
    - 404: search does not exist
    - 500: anything else
    """
    return SearchService(ctx).list_strategies(identity, search_id)


@router.get("/{search_id}/events")
async def search_events(
    search_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    ctx: AppContext = Depends(get_app_context)
):
    """
    Server-Sent Events endpoint for real-time search progress.

    The first message is the persisted snapshot; heartbeats re-read it, so
    the stream always converges on what the progress endpoint reports.
    Database reads run in the threadpool, never on the event loop.
    """
    service = SearchService(ctx)
    broker = ctx.event_broker

    queue = broker.subscribe(search_id)
    try:
        initial = await run_in_threadpool(service.get_progress, identity, search_id)
    except Exception:
        broker.unsubscribe(search_id, queue)
        raise

    async def event_generator():
        try:
            yield _sse("snapshot", initial.model_dump())
            if initial.status in _TERMINAL_VALUES:
                return

            while True:
                try:
                    message = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                    yield _sse(message["event"], message["data"])
                    if message["event"] in (EVENT_SEARCH_COMPLETED, EVENT_SEARCH_FAILED):
                        break
                except asyncio.TimeoutError:
                    snapshot = await run_in_threadpool(service.get_progress, identity, search_id)
                    yield _sse("heartbeat", snapshot.model_dump())
                    if snapshot.status in _TERMINAL_VALUES:
                        break
        except asyncio.CancelledError:
            logger.info(f"SSE connection cancelled for search {search_id}")
        finally:
            broker.unsubscribe(search_id, queue)
            logger.info(f"SSE connection closed for search {search_id}")

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        }
    )
