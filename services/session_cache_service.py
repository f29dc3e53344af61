"""
In-memory mapping sessions keyed by project id.

An upload stays here for the TTL whether or not it was persisted, so
"local-<ms>" sessions keep working without storage. Single process only.
"""
from datetime import datetime, timedelta
from typing import Any, Optional

DEFAULT_TTL_MINUTES = 60

# session id -> (expires_at, data)
_cache: dict[str, tuple[datetime, Any]] = {}


def store_session(session_id: str, data: Any, ttl_minutes: int = DEFAULT_TTL_MINUTES) -> str:
    """Store data under session_id, replacing any earlier entry."""
    _drop_expired(datetime.now())
    _cache[session_id] = (datetime.now() + timedelta(minutes=ttl_minutes), data)
    return session_id


def retrieve_session(session_id: str) -> Optional[Any]:
    """Session data, or None when unknown or expired."""
    entry = _cache.get(session_id)
    if entry is None:
        return None

    expires_at, data = entry
    if datetime.now() > expires_at:
        _cache.pop(session_id, None)
        return None
    return data


def delete_session(session_id: str) -> None:
    _cache.pop(session_id, None)


def clear_sessions() -> None:
    _cache.clear()


def _drop_expired(now: datetime) -> None:
    for session_id in [k for k, (expires_at, _) in _cache.items() if now > expires_at]:
        del _cache[session_id]
