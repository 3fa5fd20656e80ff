"""API route handlers."""

from .search import router as search_router
from .scoring import router as scoring_router
from .credits import router as credits_router
