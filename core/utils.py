import hashlib
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def hash_token(token: str) -> str:
    """SHA256 hex digest used to store share-link tokens."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def truncate_error(message: Any, max_length: int = 100) -> str:
    text = str(message)
    if len(text) <= max_length:
        return text
    return text[:max_length]


def normalize_location(location: Any) -> Optional[str]:
    """
    Normalize location data which can be a dict, string, or list.

    Dicts are rendered as "City, Country" using whichever parts are present.
    """
    if isinstance(location, dict):
        parts = []
        for key in ('city', 'state', 'country'):
            value = location.get(key)
            if isinstance(value, list):  # Handle ["japan", "jp"]
                value = value[0] if value else None
            if value:
                parts.append(str(value))
        return ", ".join(parts) if parts else None
    if isinstance(location, str):
        return location.strip() or None
    return None
