"""Per-user token bucket rate limiter backed by Redis.

Each bucket is a Redis hash updated atomically by a Lua script. Authenticated
endpoints draw from the caller's read bucket (feed, profile, inbox) or write
bucket (submit, verify, vote, comment); public endpoints are not limited.

Key format: rl:{user_id}:{bucket_type}
Bucket types: "read" or "write"
"""
import math
import time
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException

from groceryindex.config import Settings, settings
from groceryindex.dependencies import CurrentUser, RedisClient
from groceryindex.models.user import User

# KEYS[1] = bucket key
# ARGV[1] = capacity, ARGV[2] = refill rate (tokens/s), ARGV[3] = now (unix s)
#
# Returns {allowed (1|0), tokens left as a string}
TOKEN_BUCKET_LUA = """
local key = KEYS[1]
local capacity = tonumber(ARGV[1])
local rate = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local state = redis.call('HMGET', key, 'tokens', 'ts')
local tokens = tonumber(state[1]) or capacity
local ts = tonumber(state[2]) or now

tokens = math.min(capacity, tokens + math.max(0, now - ts) * rate)

local allowed = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
end

redis.call('HSET', key, 'tokens', tokens, 'ts', now)
redis.call('EXPIRE', key, math.ceil(capacity / rate) * 2)

return {allowed, tostring(tokens)}
"""


def bucket_capacity(bucket_type: str, app_settings: Settings) -> int:
    if bucket_type == "read":
        return app_settings.rate_limit_read_per_minute
    return app_settings.rate_limit_write_per_minute


def retry_after_seconds(tokens_left: float, refill_rate: float) -> int:
    """Whole seconds until one token is available again (at least 1)."""
    return max(1, math.ceil((1 - tokens_left) / refill_rate))


async def check_rate_limit(
    user: User,
    redis_client: aioredis.Redis,
    bucket_type: str,
    app_settings: Settings,
) -> None:
    """Consume one token from the user's bucket or raise 429 with Retry-After."""
    capacity = bucket_capacity(bucket_type, app_settings)
    # Bucket refills fully in 60 seconds
    refill_rate = capacity / 60.0

    allowed, tokens_left = await redis_client.eval(
        TOKEN_BUCKET_LUA,
        1,
        f"rl:{user.id}:{bucket_type}",
        capacity,
        refill_rate,
        time.time(),
    )

    if not int(allowed):
        raise HTTPException(
            status_code=429,
            detail="Rate limit exceeded",
            headers={"Retry-After": str(retry_after_seconds(float(tokens_left), refill_rate))},
        )


async def read_rate_limit(user: CurrentUser, redis_client: RedisClient) -> None:
    await check_rate_limit(user, redis_client, "read", settings)


async def write_rate_limit(user: CurrentUser, redis_client: RedisClient) -> None:
    await check_rate_limit(user, redis_client, "write", settings)


# Module-level so tests can swap them out through app.dependency_overrides
ReadRateLimit = Annotated[None, Depends(read_rate_limit)]
WriteRateLimit = Annotated[None, Depends(write_rate_limit)]
