"""
Unit tests for the in-memory session cache.

Run: pytest tests/unit/test_session_cache_service.py -v
"""

from datetime import datetime, timedelta
from unittest.mock import patch

from services import session_cache_service
from services.session_cache_service import delete_session, retrieve_session, store_session


class TestSessionCache:
    """Tests for store/retrieve/delete."""

    def test_store_and_retrieve(self):
        """Should return stored data by id."""
        store_session("local-1", {"records": []})

        assert retrieve_session("local-1") == {"records": []}

    def test_unknown_id(self):
        assert retrieve_session("missing") is None

    def test_store_replaces(self):
        """Should keep only the latest data for an id."""
        store_session("p-1", "first")
        store_session("p-1", "second")

        assert retrieve_session("p-1") == "second"

    def test_expired_entry_is_dropped(self):
        """Should return None and evict once the TTL has passed."""
        store_session("p-1", "data", ttl_minutes=1)
        later = datetime.now() + timedelta(minutes=2)

        with patch.object(session_cache_service, "datetime") as mock_datetime:
            mock_datetime.now.return_value = later
            assert retrieve_session("p-1") is None

        assert "p-1" not in session_cache_service._cache

    def test_delete(self):
        store_session("p-1", "data")

        delete_session("p-1")
        delete_session("p-1")

        assert retrieve_session("p-1") is None
