"""
Supabase client for the persistence services.

Storage is optional. Without SUPABASE_URL / SUPABASE_KEY every caller gets
ConnectionError and the upload flow keeps its session in memory.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


# Tables reported by the health check
HEALTH_TABLES = ("target_fields", "projects")


class DatabaseError(Exception):
    """Storage is unusable (not an API error; routes translate it)."""
    pass


class ConnectionError(DatabaseError):
    """Storage not configured or unreachable."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Connect once and reuse the client.

    The target catalog table is probed so a wrong URL or key fails here
    and not in the middle of an upload.

    Raises:
        ConnectionError: Missing credentials or failed probe
    """
    if not settings.persistence_configured:
        logger.warning("supabase_not_configured")
        raise ConnectionError("Supabase is not configured (SUPABASE_URL / SUPABASE_KEY)")

    logger.info("connecting_to_supabase", url=settings.supabase_url[:30] + "...")

    try:
        client = create_client(settings.supabase_url, settings.supabase_key)
        client.table("target_fields").select("id").limit(1).execute()
    except Exception as e:
        logger.error("supabase_connection_failed", error=str(e), error_type=type(e).__name__)
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e

    logger.info("supabase_connected")
    return client


def check_connection() -> dict:
    """
    Storage state for /health and startup logging.

    Returns:
        {"status": "healthy", "<table>_count": n, ...},
        {"status": "not_configured", ...} or {"status": "unhealthy", "error": ...}
    """
    if not settings.persistence_configured:
        return {
            "status": "not_configured",
            "error": "Supabase credentials missing; results are kept in memory"
        }

    status = {"status": "healthy"}
    try:
        client = get_supabase_client()
        for table in HEALTH_TABLES:
            result = client.table(table).select("id", count="exact").execute()
            status[f"{table}_count"] = result.count
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}

    return status
