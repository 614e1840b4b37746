"""
Redis Client Utility Module

Creates the asyncio Redis client used to relay realtime events between
server processes. Redis is optional: without ``REDIS_URL`` nothing is created.
"""

from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from educentral.common.logger import app_logger

logger = app_logger.getChild("redis")


async def create_redis_client(redis_url: Optional[str]) -> Optional[Redis]:
    """
    Connect to Redis and verify the connection.

    Args:
        redis_url: Connection URL, or None to disable Redis

    Returns:
        A connected client, or None when Redis is disabled or unreachable
    """
    if not redis_url:
        return None

    client = Redis.from_url(redis_url)
    try:
        await client.ping()
    except RedisError as e:
        logger.error(f"Failed to connect to Redis: {e}")
        await client.aclose()
        return None

    logger.info("Connected to Redis for realtime event relay")
    return client
