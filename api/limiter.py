"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in api/main.py (to mount as middleware) and in
api/routes/v1/auth.py (to apply per-route limits with @limiter.limit()).

A single shared instance means every route counts against the same in-memory
store. Instantiated per module, each would get its own counters and the
limits would never trigger.

Two layers of limits:
  application_limits -- one budget per client IP shared by every route except
      /api/health (Settings.api_rate_limit), enforced by SlowAPIMiddleware.
  @limiter.limit()   -- stricter per-route limits on login and register, checked
      by the decorator on top of the shared budget.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    application_limits=[lambda: get_settings().api_rate_limit],
)
