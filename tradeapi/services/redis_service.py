"""
Redis cache service with graceful error handling.
- Never raises exceptions (returns None/False on failure)
- Lazy connection with health checks
- Automatic JSON serialization/deserialization
- Disabled entirely when REDIS_HOST is empty
"""

from typing import Optional, Any
import json
import logging

import redis

from tradeapi.config import Settings

logger = logging.getLogger(__name__)


class RedisService:
    def __init__(self, settings: Settings):
        self._settings = settings
        self._client: Optional[redis.Redis] = None

    @property
    def enabled(self) -> bool:
        return bool(self._settings.REDIS_HOST)

    def _get_client(self) -> Optional[redis.Redis]:
        """Lazy connection with health check"""
        if not self.enabled:
            return None
        if self._client is None:
            try:
                redis_kwargs = {
                    "host": self._settings.REDIS_HOST,
                    "port": self._settings.REDIS_PORT,
                    "db": self._settings.REDIS_DB,
                    "decode_responses": True,
                    "socket_connect_timeout": 5,
                    "socket_timeout": 5,
                    "health_check_interval": 30,
                }

                # Only add password if it's set
                if self._settings.REDIS_PASSWORD:
                    redis_kwargs["password"] = self._settings.REDIS_PASSWORD

                client = redis.Redis(**redis_kwargs)
                client.ping()
                self._client = client
            except redis.RedisError as e:
                logger.warning(f"Redis connection failed: {e}")
                self._client = None
        return self._client

    def get(self, key: str) -> Optional[Any]:
        """Get cached value, returns None if not found or error"""
        client = self._get_client()
        if client is None:
            return None
        try:
            value = client.get(key)
            return json.loads(value) if value else None
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Redis GET failed for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Set cache with TTL, returns success status"""
        client = self._get_client()
        if client is None:
            return False
        try:
            client.setex(key, ttl_seconds, json.dumps(value))
            return True
        except (redis.RedisError, TypeError) as e:
            logger.warning(f"Redis SET failed for {key}: {e}")
            return False

    def delete(self, *keys: str) -> int:
        client = self._get_client()
        if client is None or not keys:
            return 0
        try:
            return int(client.delete(*keys))
        except redis.RedisError as e:
            logger.warning(f"Redis DELETE failed for {keys}: {e}")
            return 0

    def close(self) -> None:
        """Close connection pool on app shutdown"""
        if self._client:
            self._client.close()
            self._client = None
