"""Per-caller fixed-window rate limit for trading endpoints.

Redis INCR + EXPIRE on "ratelimit:{caller_id}:trade"; the first hit in a
window sets the expiry. Exceeding the limit raises RateLimitError (9001).
"""

import logging

import redis.asyncio as aioredis
from fastapi import Depends

from config.settings import settings
from src.pm_common.errors import RateLimitError
from src.pm_common.redis_client import get_redis
from src.pm_gateway.auth.dependencies import get_caller_id

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


async def check_rate_limit(
    redis: aioredis.Redis, key: str, limit: int, window: int = WINDOW_SECONDS
) -> int:
    count = int(await redis.incr(key))
    if count == 1:
        await redis.expire(key, window)
    if count > limit:
        logger.warning("Rate limit hit: key=%s count=%d limit=%d", key, count, limit)
        raise RateLimitError()
    return count


async def trade_rate_limit(
    caller_id: str = Depends(get_caller_id),
    redis: aioredis.Redis = Depends(get_redis),
) -> str:
    """Dependency for buy/sell: enforces the limit, then yields the caller id."""
    await check_rate_limit(
        redis, f"ratelimit:{caller_id}:trade", settings.RATE_LIMIT_TRADES_PER_MINUTE
    )
    return caller_id
