"""Infrastructure: storage connection factories."""

from civic_core_lib.infrastructure.redis_setup import (
    RedisConfig,
    build_redis_client,
    get_redis_client,
    parse_sentinel_hosts,
)

__all__ = [
    "RedisConfig",
    "build_redis_client",
    "get_redis_client",
    "parse_sentinel_hosts",
]
