"""Rate limiter configuration.

The SlowAPI limiter lives in its own module so routers can import it
without circular imports. Limits are applied explicitly per endpoint:
every ``/api`` endpoint shares one per-client budget, and register and
login carry a stricter limit on top of it.
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from gifshare.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Replaced by configure_limiter() when an app is created
_settings: Settings = get_settings()


def client_address(request: Request) -> str:
    """Rate limit key: first X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def api_limit() -> str:
    return _settings.rate_limit_default


def auth_limit() -> str:
    return _settings.rate_limit_auth


def get_limiter_storage() -> str | None:
    """Redis URL for shared counters, or None for in-memory storage."""
    url = _settings.rate_limit_storage_url
    if not url:
        return None
    if not url.startswith(("redis://", "rediss://", "memory://")):
        logger.warning(f"Invalid RATE_LIMIT_STORAGE_URL {url!r}, using in-memory storage")
        return None
    return url


def create_limiter() -> Limiter:
    """Create the SlowAPI limiter.

    The storage backend is chosen once, when this module is imported.
    """
    storage_uri = get_limiter_storage()
    if storage_uri:
        logger.info(f"Using {storage_uri} for rate limiting")
        return Limiter(
            key_func=client_address,
            default_limits=[],  # Applied per endpoint, see api_rate_limit
            storage_uri=storage_uri,
            enabled=_settings.rate_limit_enabled,
            headers_enabled=True,
        )
    return Limiter(
        key_func=client_address,
        default_limits=[],  # Applied per endpoint, see api_rate_limit
        enabled=_settings.rate_limit_enabled,
        headers_enabled=True,
    )


limiter = create_limiter()

# One budget per client across every /api endpoint
api_rate_limit = limiter.shared_limit(api_limit, scope="api")
auth_rate_limit = limiter.limit(auth_limit)


def configure_limiter(settings: Settings) -> Limiter:
    """Point the shared limiter at an app's settings.

    Limit strings are read on every request, so the values given here
    take effect for endpoints that were decorated at import time.
    """
    global _settings
    _settings = settings
    limiter.enabled = settings.rate_limit_enabled
    return limiter
