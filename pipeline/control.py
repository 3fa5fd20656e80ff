"""
Run control for search pipelines executing in this process.

Each search id has at most one registered run; its CancellationToken is
how a stop request reaches the worker.
"""
import logging
from threading import Lock
from typing import Dict, Optional

from core.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class RunRegistry:
    def __init__(self):
        self._runs: Dict[str, CancellationToken] = {}
        self._lock = Lock()

    def register(self, search_id: str, token: CancellationToken) -> bool:
        """
        Register a run. Returns False if one is already active for this search.
        """
        with self._lock:
            if search_id in self._runs:
                return False
            self._runs[search_id] = token
            return True

    def release(self, search_id: str) -> None:
        with self._lock:
            self._runs.pop(search_id, None)

    def get(self, search_id: str) -> Optional[CancellationToken]:
        with self._lock:
            return self._runs.get(search_id)

    def is_running(self, search_id: str) -> bool:
        with self._lock:
            return search_id in self._runs

    def cancel(self, search_id: str) -> bool:
        """Request a stop. Returns False when no run is active for the search."""
        token = self.get(search_id)
        if token is None:
            return False
        logger.info(f"Cancellation requested for search {search_id}")
        token.cancel()
        return True


__all__ = ['CancellationToken', 'RunRegistry']
