"""
Redis adapter for expiring key-value operations.
Tracks connection liveness so health checks report the live state of the link.
"""

import logging
from typing import Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

logger = logging.getLogger(__name__)

CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


class RedisAdapter:
    """Redis adapter for get / set-with-ttl / delete operations"""

    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None):
        if client is None and not url:
            raise ValueError("Redis URL required when no client is supplied")

        self.url = url
        self.client = client or redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            health_check_interval=30,
        )
        self._connected = False
        self._connect()

    def _connect(self) -> None:
        """Perform the initial handshake; failure leaves the adapter marked down."""
        try:
            self.client.ping()
            self._mark_connected()
        except CONNECTION_ERRORS as e:
            self._mark_disconnected(e)

    def _mark_connected(self) -> None:
        if not self._connected:
            logger.info("Connected to Redis server")
        self._connected = True

    def _mark_disconnected(self, error: Exception) -> None:
        if self._connected:
            logger.error(f"Redis connection error: {error}")
        else:
            logger.warning(f"Redis unavailable: {error}")
        self._connected = False

    def is_alive(self) -> bool:
        """Check the connection by pinging the server and report the result"""
        try:
            self.client.ping()
            self._mark_connected()
        except CONNECTION_ERRORS as e:
            self._mark_disconnected(e)
        return self._connected

    def get(self, key: str) -> Optional[str]:
        """Get the value stored at ``key``, or None when absent or unreachable"""
        try:
            value = self.client.get(key)
            self._mark_connected()
        except CONNECTION_ERRORS as e:
            self._mark_disconnected(e)
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value, ttl_seconds: Optional[int] = None) -> bool:
        """Store ``value`` at ``key``, expiring after ``ttl_seconds`` when given"""
        try:
            if ttl_seconds:
                acknowledged = self.client.setex(key, ttl_seconds, value)
            else:
                acknowledged = self.client.set(key, value)
            self._mark_connected()
            return bool(acknowledged)
        except CONNECTION_ERRORS as e:
            self._mark_disconnected(e)
            return False

    def delete(self, key: str) -> int:
        """Delete ``key`` and return the number of keys removed (0 or 1)"""
        try:
            deleted = self.client.delete(key)
            self._mark_connected()
            return int(deleted)
        except CONNECTION_ERRORS as e:
            self._mark_disconnected(e)
            return 0

    def ttl(self, key: str) -> Optional[int]:
        """Remaining lifetime of ``key`` in seconds, None when it has no expiry or is absent"""
        try:
            remaining = self.client.ttl(key)
            self._mark_connected()
        except CONNECTION_ERRORS as e:
            self._mark_disconnected(e)
            return None
        return remaining if remaining is not None and remaining >= 0 else None

    def close(self) -> None:
        """Close Redis connection"""
        self.client.close()
        self._connected = False
        logger.info("Redis connection closed")
