"""
Storage Clients - Upstash Redis

Provides the async Upstash Redis client used by the Redis cart store.
Clients are created per session from Settings; nothing is cached
process-wide.
"""

from upstash_redis.asyncio import Redis as AsyncRedis

from rocketcart.config import Settings
from rocketcart.errors import ConfigurationError


def get_redis(settings: Settings) -> AsyncRedis:
    """
    Create an async Upstash Redis client.

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN

    Raises:
        ConfigurationError: If the REST URL or token is not configured
    """
    if not settings.upstash_redis_rest_url or not settings.upstash_redis_rest_token:
        raise ConfigurationError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
    return AsyncRedis(url=settings.upstash_redis_rest_url, token=settings.upstash_redis_rest_token)


__all__ = ["get_redis"]
