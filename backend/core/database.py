"""
core/database.py
────────────────
Supabase client factory with a module-level singleton.

Only the Supabase model store talks to the database, and it receives the
client by injection.  Build it here so credentials are read from one place.

Usage
-----
    from core.database import get_supabase_client

    client = get_supabase_client()
"""

import logging
from functools import lru_cache

from supabase import Client, create_client

from core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """
    Return the process-wide Supabase client.

    The client is initialised lazily on first call and reused for all
    subsequent calls in the same process.

    Returns:
        Authenticated Supabase ``Client`` ready for table queries.

    Raises:
        ValueError: If ``SUPABASE_URL`` or ``SUPABASE_KEY`` are empty.
    """
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    logger.info("Supabase client initialised (url=%s)", settings.SUPABASE_URL)
    return client
