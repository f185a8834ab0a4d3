"""
FastAPI dependencies for JobTracker
Builds collaborators from the environment and hands them to route handlers
"""

import os
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from jobtracker.services.auth_service import StaticTokenAuth, SupabaseAuth
from jobtracker.services.job_service import JobService
from jobtracker.services.memory_store import InMemoryStore
from jobtracker.services.openai_service import OpenAIService
from jobtracker.services.scraper_service import ScraperService
from jobtracker.services.store import JobStore
from jobtracker.services.supabase_service import SupabaseService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# =====================
# Construction at startup
# =====================
def build_store() -> JobStore:
    if os.getenv("JOB_STORE", "").lower() == "memory":
        logger.warning("Using in-memory job store; data is lost on restart")
        return InMemoryStore()
    # raises ValueError when neither Supabase nor DATABASE_URL is configured
    return SupabaseService()


def build_auth():
    if os.getenv("SUPABASE_URL") and os.getenv("SUPABASE_ANON_KEY"):
        logger.info("Authenticating with Supabase sessions")
        return SupabaseAuth()
    logger.info("Authenticating with static API_TOKENS")
    return StaticTokenAuth()


def build_ai() -> Optional[OpenAIService]:
    if not os.getenv("OPENAI_API_KEY"):
        logger.info("OPENAI_API_KEY not set, job extraction uses the HTML parser")
        return None
    return OpenAIService()


# =====================
# Per-request providers
# =====================
async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Resolve the caller; raises Unauthorized before any data is touched."""
    token = credentials.credentials if credentials else None
    return await request.app.state.auth.get_user_id(token)


def get_job_service(request: Request) -> JobService:
    return JobService(request.app.state.store, clock=getattr(request.app.state, "clock", None))


def get_scraper(request: Request) -> ScraperService:
    return request.app.state.scraper


def get_ai(request: Request) -> Optional[OpenAIService]:
    return request.app.state.ai
