#!/usr/bin/env python3
"""
Error handlers for the web application.

Domain errors raised anywhere below a route are mapped to HTTP status
codes here; routes do not translate them one by one.
"""

import logging
from typing import Dict, Type
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

from core.errors import (
    TalentScoutError,
    NotAuthenticatedError,
    NotAuthorizedError,
    SearchNotFoundError,
    SubscriptionRequiredError,
    InsufficientCreditsError,
    MissingParseResponseError,
    InvalidTransitionError,
    ScoringModelUnavailableError,
    QueryParseError,
    ProviderError,
    PipelineCancelledError,
)

logger = logging.getLogger(__name__)

# Most specific classes first; ReadOnlyAccessError falls under NotAuthorizedError
STATUS_CODES: Dict[Type[TalentScoutError], int] = {
    NotAuthenticatedError: 401,
    NotAuthorizedError: 403,
    SearchNotFoundError: 404,
    SubscriptionRequiredError: 402,
    InsufficientCreditsError: 402,
    MissingParseResponseError: 409,
    InvalidTransitionError: 409,
    PipelineCancelledError: 409,
    QueryParseError: 422,
    ProviderError: 502,
    ScoringModelUnavailableError: 503,
}


def status_code_for(exc: TalentScoutError) -> int:
    for exc_type, status_code in STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def domain_exception_handler(
    request: Request,
    exc: TalentScoutError
) -> JSONResponse:
    """
    Handle domain exceptions.

    Args:
        request: The FastAPI request.
        exc: The domain exception.

    Returns:
        JSONResponse with error details.
    """
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"Service error in {request.url.path}: {exc}", exc_info=True)
    else:
        logger.info(f"{request.url.path} -> {status_code}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": str(exc),
            "type": exc.__class__.__name__
        }
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """
    Handle FastAPI HTTP exceptions with consistent format.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "type": "HTTPException"
        }
    )


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.
    """
    logger.exception(f"Unexpected error in {request.url.path}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "type": "InternalError"
        }
    )
