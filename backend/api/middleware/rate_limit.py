"""
Rate limiting using slowapi.

Limits are keyed by client IP. Storage is Redis when REDIS_URL is set,
otherwise per-process memory.

Rate Limits:
- Google sign-in: 10 per minute
- Token refresh: 30 per minute
- Invitation creation: 20 per hour
- Feedback: 5 per hour
- Default: 100 requests per minute
"""

import ipaddress
import logging
import re

from starlette.requests import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

# Simple pattern to quickly reject obviously invalid IPs before parsing
_IP_LIKE = re.compile(r"^[\d.:a-fA-F]+$")


def _is_valid_ip(value: str) -> bool:
    """Return True if *value* looks like a valid IPv4 or IPv6 address."""
    if not _IP_LIKE.match(value):
        return False
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def _is_private_ip(value: str) -> bool:
    """Return True if *value* is a private, loopback, or link-local address.

    Private values in X-Forwarded-For are not trusted.
    """
    try:
        addr = ipaddress.ip_address(value)
        return addr.is_private or addr.is_loopback or addr.is_link_local
    except ValueError:
        return False


def _get_real_ip(request: Request) -> str:
    """Extract real client IP from proxy headers, falling back to remote address.

    Only public, well-formed addresses from X-Forwarded-For or X-Real-IP are
    used; anything else falls back to the connection IP.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # X-Forwarded-For can be a comma-separated list; first entry is the client
        candidate = forwarded.split(",")[0].strip()
        if _is_valid_ip(candidate) and not _is_private_ip(candidate):
            return candidate
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        candidate = real_ip.strip()
        if _is_valid_ip(candidate) and not _is_private_ip(candidate):
            return candidate
    return get_remote_address(request)

# Rate limit configurations
# Format: "count/period" where period can be: second, minute, hour, day
RATE_LIMITS = {
    "google_auth": "10/minute",
    "refresh": "30/minute",
    "invitation": "20/hour",
    "feedback": "5/hour",
    "default": "100/minute",
}

# Per-endpoint @limiter.limit decorators override the global default.
_storage_uri = settings.redis_url if settings.redis_url else "memory://"

# In-memory storage is per process
if not settings.redis_url:
    logger.warning(
        "Rate limiter using in-memory storage; limits are not shared across workers"
    )
    if settings.is_production:
        logger.critical(
            "Rate limiter has no Redis in production; limits are per process. "
            "Set REDIS_URL in environment variables."
        )

limiter = Limiter(
    key_func=_get_real_ip,
    storage_uri=_storage_uri,
    default_limits=[RATE_LIMITS["default"]],
    enabled=settings.rate_limit_enabled,
)


def get_rate_limit(endpoint: str) -> str:
    """
    Get rate limit configuration for a specific endpoint.

    Args:
        endpoint: The endpoint identifier (e.g. "google_auth", "feedback")

    Returns:
        str: Rate limit string in format "count/period"

    Example:
        >>> get_rate_limit("feedback")
        "5/hour"
        >>> get_rate_limit("unknown")
        "100/minute"
    """
    return RATE_LIMITS.get(endpoint, RATE_LIMITS["default"])
