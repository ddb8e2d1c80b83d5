"""Rate limiting configuration for the TaskFlow API."""

import logging
import os

from limits import parse
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address

from taskflow.core.config import settings

# Redis backs the limiter for multi-worker deployments.
# Falls back to in-memory if Redis is not configured or not reachable.
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)


def _storage_uri() -> str:
    if IS_TESTING or not settings.REDIS_URL:
        return "memory://"
    try:
        import redis

        r = redis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        r.ping()
    except Exception as e:
        logging.warning(f"Redis unavailable for rate limiting, using in-memory: {e}")
        return "memory://"
    return settings.REDIS_URL


STORAGE_URI = _storage_uri()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=STORAGE_URI,
    default_limits=DEFAULT_LIMITS,
    enabled=not IS_TESTING,
)

# Bridge events all come from one address, so they are counted per owner.
OWNER_LIMITS_ENABLED = not IS_TESTING
_owner_limiter = FixedWindowRateLimiter(storage_from_string(STORAGE_URI))


def auth_limit() -> str:
    return f"{settings.RATE_LIMIT_AUTH}/minute"


def webhook_limit() -> str:
    return f"{settings.RATE_LIMIT_WEBHOOK}/minute"


def owner_event_allowed(owner_id) -> bool:
    """Count one bridge event against the owner's webhook budget."""
    if not OWNER_LIMITS_ENABLED:
        return True
    return _owner_limiter.hit(parse(webhook_limit()), "bridge-events", str(owner_id))
