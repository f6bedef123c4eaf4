"""Supabase Auth client.

Login and registration hand the password to Supabase Auth
(sign_in_with_password / sign_up); the API never stores it and, once
Supabase accepts it, issues its own session token (see auth.sessions).
"""

import logging
from functools import lru_cache

from supabase import Client, create_client

from toiletcheck_api.config.env import get_supabase_publishable_key, get_supabase_url

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Build the publishable-key client once per process.

    Raises:
        RuntimeError: If SUPABASE_URL or the publishable key is missing
    """
    url = get_supabase_url()
    client = create_client(url, get_supabase_publishable_key())
    logger.info("Supabase auth client initialized", extra={"event": "supabase.client.init", "supabase_url": url})
    return client
