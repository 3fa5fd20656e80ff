#!/usr/bin/env python3
"""
FastAPI dependencies for dependency injection.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from core.access import Identity, resolve_identity
from core.app_context import AppContext
from database.uow import search_uow
from .config import get_config
from .utils import bearer_token


@lru_cache()
def get_app_context() -> AppContext:
    """
    Process-wide application context (providers, ledger, state machine).

    Usage:
        @router.get("/endpoint")
        def my_endpoint(ctx: AppContext = Depends(get_app_context)):
            ...
    """
    return AppContext.build(get_config())


def get_identity(
    authorization: Optional[str] = Header(default=None),
    x_preview_token: Optional[str] = Header(default=None),
    ctx: AppContext = Depends(get_app_context)
) -> Optional[Identity]:
    """
    Resolve the caller, or None when no credentials were sent.

    Invalid credentials raise NotAuthenticatedError (401); missing ones are
    left to the access checks of each route.
    """
    session_token = bearer_token(authorization)
    if not session_token and not x_preview_token:
        return None

    with search_uow(ctx.session_factory) as repos:
        return resolve_identity(repos, session_token=session_token, preview_token=x_preview_token)
