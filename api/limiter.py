"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in the route modules
(to apply per-route limits with @limiter.limit()).

Using a single shared instance ensures all routes share the same in-memory
counter store. If this were instantiated in each module separately, each
module would get its own isolated counter and rate limits would never trigger.

Two tiers, both per client IP and both configurable via Settings:
  GENERAL_RATE_LIMIT  default for every route (health is exempt)
  AUTH_RATE_LIMIT     stricter limit for credential-handling routes

Decorator order on a route matters: @router.post(...) goes on top and
@limiter.limit(auth_limit) directly below it, so the router registers the
rate-limited wrapper.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings


def auth_limit() -> str:
    """Current auth-route limit, resolved per request from Settings."""
    return get_settings().auth_rate_limit


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[get_settings().general_rate_limit],
    storage_uri="memory://",
)
