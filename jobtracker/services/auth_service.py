"""
Authentication service for JobTracker
Resolves a bearer token to the id of the user who owns the session
"""

import os
import logging
from typing import Dict, Optional
from supabase import create_client, Client

from jobtracker.errors import Unauthorized

logger = logging.getLogger(__name__)


class SupabaseAuth:
    """Validates Supabase access tokens (JWTs) against the project's auth server"""

    def __init__(self, supabase_url: Optional[str] = None, supabase_key: Optional[str] = None):
        self.supabase_url = supabase_url or os.getenv("SUPABASE_URL")
        self.supabase_key = supabase_key or os.getenv("SUPABASE_ANON_KEY")
        if not self.supabase_url or not self.supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set for Supabase authentication")
        self.client: Client = create_client(self.supabase_url, self.supabase_key)

    async def get_user_id(self, token: Optional[str]) -> str:
        if not token:
            raise Unauthorized()
        try:
            response = self.client.auth.get_user(token)
        except Exception as e:
            logger.info(f"Rejected session token: {str(e)}")
            raise Unauthorized() from e

        user = getattr(response, "user", None)
        if not user or not getattr(user, "id", None):
            raise Unauthorized()
        return str(user.id)


class StaticTokenAuth:
    """Fixed token → user id table, for local development and tests"""

    def __init__(self, tokens: Optional[Dict[str, str]] = None):
        self.tokens = dict(tokens) if tokens is not None else self.parse_tokens(os.getenv("API_TOKENS", ""))

    @staticmethod
    def parse_tokens(raw: str) -> Dict[str, str]:
        """Parse 'token:user_id,token2:user_id2'; malformed pairs are ignored."""
        tokens = {}
        for pair in raw.split(","):
            token, sep, user_id = pair.strip().partition(":")
            if sep and token.strip() and user_id.strip():
                tokens[token.strip()] = user_id.strip()
            elif pair.strip():
                logger.warning("Ignoring malformed API_TOKENS entry")
        return tokens

    async def get_user_id(self, token: Optional[str]) -> str:
        user_id = self.tokens.get(token or "")
        if not user_id:
            raise Unauthorized()
        return user_id
