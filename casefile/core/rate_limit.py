"""Rate limiting for public endpoints, per client IP and per intake link."""

import logging
import os

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from casefile.core.config import settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")


def _storage_uri() -> str:
    if IS_TESTING or not settings.REDIS_URL:
        return "memory://"
    try:
        import redis

        redis.from_url(settings.REDIS_URL, socket_connect_timeout=1).ping()
        return settings.REDIS_URL
    except Exception as e:
        logging.warning(f"Redis unavailable for rate limiting, using in-memory: {e}")
        return "memory://"


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_storage_uri(),
    enabled=not IS_TESTING,
)


def intake_token_key(request: Request) -> str:
    """Rate limit key shared by every client submitting through one intake link."""
    return f"intake:{request.path_params['token']}"


def intake_submission_limit() -> str:
    # Evaluated per request, not at import
    return (
        f"{settings.INTAKE_SUBMISSIONS_PER_WINDOW} per "
        f"{settings.INTAKE_SUBMISSION_WINDOW_SECONDS} seconds"
    )
