"""
Configuration module.

Exports:
    Settings: Application settings model
    get_settings: Cached settings (for dependency injection)
    get_supabase_client: Build a Supabase client from settings
    check_connection: Health check function
"""

from config.settings import get_settings, Settings
from config.database import (
    get_supabase_client,
    check_connection,
    ConnectionError
)

__all__ = [
    # Settings
    "get_settings",
    "Settings",

    # Database
    "get_supabase_client",
    "check_connection",
    "ConnectionError",
]
