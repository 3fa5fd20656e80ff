"""Business logic services."""

from .search_service import SearchService, SearchTaskManager, get_search_manager
from .credit_service import CreditService
