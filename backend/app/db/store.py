"""
Store Factory
=============
Returns the configured ChatStore. Routers call get_store() per request
(tests patch it), the conversation session holds on to the same instance.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from app.config import get_settings
from app.db.base import ChatStore

logger = logging.getLogger(__name__)


@lru_cache
def get_store() -> ChatStore:
    settings = get_settings()

    if settings.store_backend == "supabase":
        from app.db.supabase import SupabaseStore

        logger.info("Using Supabase store at %s", settings.supabase_url)
        return SupabaseStore()

    from app.db.sqlite import SQLiteStore

    logger.info("Using SQLite store at %s", settings.database_path)
    return SQLiteStore(settings.database_path)
