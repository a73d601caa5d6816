"""
Database connection management.

Creates the Supabase client used by SupabaseProductStore.
"""

from supabase import create_client, Client
from typing import Optional
import structlog

from config.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


class ConnectionError(Exception):
    """Failed to connect to database."""
    pass


def get_supabase_client(settings: Optional[Settings] = None) -> Client:
    """
    Create a Supabase client from settings.

    Called once by create_app(); the client lives on the product store.

    Returns:
        Client: Supabase client

    Raises:
        ConnectionError: If credentials are missing or the client fails
    """
    settings = settings or get_settings()
    if not settings.supabase_configured:
        raise ConnectionError("Supabase credentials are not configured")

    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )
        client = create_client(settings.supabase_url, settings.supabase_key)
        logger.info("supabase_connected", status="success")
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


def check_connection(client: Client, table: str = "products") -> dict:
    """
    Check database connection health.

    Returns:
        dict: Connection status with details
    """
    try:
        products = client.table(table).select("id", count="exact").limit(1).execute()
        return {
            "status": "healthy",
            "products_count": products.count,
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e)
        }
