"""
Rate Limiting - Protect the extraction endpoints from abuse.

Each upload or resume can trigger many paid extraction calls, so those
routes carry a per-client limit.
"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..core.config import RATE_LIMIT_ENABLED, RATE_LIMIT_PER_MINUTE
from ..core.logging_config import get_logger

logger = get_logger(__name__)


def get_rate_limit_key(request: Request) -> str:
    """
    Get rate limit key for request.

    Uses the X-API-Key header when present, the client IP otherwise.
    """
    api_key = request.headers.get("X-API-Key")
    if api_key:
        return f"api_key:{api_key}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    enabled=RATE_LIMIT_ENABLED
)

# Rate limit decorator
rate_limit_per_minute = limiter.limit(f"{RATE_LIMIT_PER_MINUTE}/minute")
