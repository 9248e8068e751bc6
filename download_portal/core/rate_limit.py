"""Rate limiting configuration.

Only the login endpoint is limited: it is the one unauthenticated endpoint
that checks a secret. Limits are keyed by client IP.

Format: "X/period" where period is: second, minute, hour, day.
Multiple limits can be combined: "10/minute;100/hour"
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from download_portal.core.config import settings

# IP-based limiter (for unauthenticated endpoints)
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


class RateLimits:
    """Centralized rate limit strings."""

    AUTH_LOGIN = settings.LOGIN_RATE_LIMIT
