"""Redis connection factory for the complaint store.

Supports standalone Redis (development, single-node deployments) and Redis
Sentinel (HA deployments) selected by configuration.

Environment Variables:
    REDIS_MODE: "standalone" (default) or "sentinel"
    REDIS_HOST / REDIS_PORT: Standalone address (default: localhost:6379)
    REDIS_DB: Database index (default: 0)
    REDIS_PASSWORD: Password (optional)
    REDIS_SENTINEL_HOSTS: Comma-separated "host:port" sentinel list
    REDIS_MASTER_SET: Sentinel master set name (default: "mymaster")
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from redis.asyncio import Redis
from redis.asyncio.sentinel import Sentinel

from civic_core_lib.utils import service_startup_retry

logger = logging.getLogger(__name__)

DEFAULT_SENTINEL_PORT = 26379


@dataclass
class RedisConfig:
    """Connection settings for the complaint store."""

    mode: str = "standalone"
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    sentinels: List[Tuple[str, int]] = field(default_factory=list)
    master_set: str = "mymaster"

    @classmethod
    def from_env(cls) -> "RedisConfig":
        return cls(
            mode=os.getenv("REDIS_MODE", "standalone").lower(),
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", "6379")),
            db=int(os.getenv("REDIS_DB", "0")),
            password=os.getenv("REDIS_PASSWORD") or None,
            sentinels=parse_sentinel_hosts(os.getenv("REDIS_SENTINEL_HOSTS", "")),
            master_set=os.getenv("REDIS_MASTER_SET", "mymaster"),
        )


def parse_sentinel_hosts(hosts_str: str) -> List[Tuple[str, int]]:
    """Parse comma-separated sentinel host:port string.

    Example:
        >>> parse_sentinel_hosts("sentinel1:26379,sentinel2")
        [('sentinel1', 26379), ('sentinel2', 26379)]
    """
    sentinels = []
    for entry in hosts_str.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if ":" in entry:
            host, port_str = entry.rsplit(":", 1)
            sentinels.append((host, int(port_str)))
        else:
            sentinels.append((entry, DEFAULT_SENTINEL_PORT))
    return sentinels


@service_startup_retry
async def _verify_redis_connection(client: Redis) -> None:
    await client.ping()
    logger.info("Redis connection verified")


def build_redis_client(config: RedisConfig) -> Redis:
    """Create (but do not verify) a client for the configured mode.

    Raises:
        ValueError: If Sentinel mode is configured without sentinel hosts
    """
    if config.mode == "sentinel":
        if not config.sentinels:
            raise ValueError("REDIS_SENTINEL_HOSTS is required for Sentinel mode")
        logger.info(
            f"Connecting to Redis Sentinel: master={config.master_set}, sentinels={config.sentinels}"
        )
        sentinel = Sentinel(
            config.sentinels,
            sentinel_kwargs={"password": config.password} if config.password else {},
            socket_keepalive=True,
        )
        return sentinel.master_for(
            config.master_set,
            db=config.db,
            password=config.password,
            decode_responses=True,
        )

    logger.info(f"Connecting to standalone Redis: {config.host}:{config.port}/{config.db}")
    return Redis(
        host=config.host,
        port=config.port,
        db=config.db,
        password=config.password,
        decode_responses=True,
        socket_keepalive=True,
        socket_connect_timeout=5,
    )


async def get_redis_client(config: Optional[RedisConfig] = None) -> Redis:
    """Create a client from config (or the environment) and verify it with retry.

    Raises:
        ValueError: If Sentinel mode is configured without sentinel hosts
        ConnectionError: If Redis is unreachable after retries
    """
    config = config or RedisConfig.from_env()
    client = build_redis_client(config)
    await _verify_redis_connection(client)
    return client
