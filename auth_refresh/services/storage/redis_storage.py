from loguru import logger
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from auth_refresh.core.config import Settings, settings
from auth_refresh.core.exceptions.token_exceptions import TokenStorageError
from auth_refresh.services.storage.base import BaseTokenStorage

# Global shared Redis connection pool
_redis_pool: ConnectionPool | None = None


def get_redis_pool(config: Settings = settings) -> ConnectionPool:
    """
    Get or create the shared Redis connection pool.

    Args:
        config (Settings): Settings holding the Redis connection details

    Returns:
        ConnectionPool: Shared Redis connection pool instance
    """
    global _redis_pool

    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            config.redis_url.human_repr(),
            encoding="utf-8",
            decode_responses=True,
            max_connections=config.redis_max_pool_connections,
            retry_on_timeout=True,
            socket_connect_timeout=config.redis_socket_connect_timeout,
            socket_timeout=config.redis_socket_timeout,
        )
        logger.info(
            f"Redis connection pool created with max_connections={config.redis_max_pool_connections}"
        )
    return _redis_pool


class RedisTokenStorage(BaseTokenStorage):
    """
    Credential store backed by a single Redis key.

    The whole record is written with one SET, so readers never observe a
    partially written pair.
    """

    def __init__(
        self,
        storage_key: str,
        redis_client: Redis | None = None,
        config: Settings = settings,
    ):
        super().__init__(storage_key)
        self._redis_client = redis_client
        self._config = config

    @property
    def redis_client(self) -> Redis:
        """
        Get the Redis client instance, connecting through the shared pool on first use

        Returns:
            Redis: Redis client
        """
        if self._redis_client is None:
            self._redis_client = Redis(connection_pool=get_redis_pool(self._config))
            logger.debug(f"Redis client initialized for {self.__class__.__name__} using shared pool")

        return self._redis_client

    @redis_client.setter
    def redis_client(self, client: Redis | None) -> None:
        self._redis_client = client

    async def get_raw(self) -> str | None:
        try:
            value = await self.redis_client.get(self.storage_key)
        except RedisError as e:
            logger.error(f"Redis get failed for key {self.storage_key}: {e}")
            raise TokenStorageError("Failed to read auth tokens", e)

        if isinstance(value, bytes):
            return value.decode("utf-8")

        return value

    async def set_raw(self, value: str) -> None:
        try:
            result = await self.redis_client.set(self.storage_key, value)
        except RedisError as e:
            logger.error(f"Redis set failed for key {self.storage_key}: {e}")
            raise TokenStorageError("Failed to store auth tokens", e)

        if not result:
            raise TokenStorageError("Failed to store auth tokens")

    async def clear_raw(self) -> None:
        try:
            await self.redis_client.delete(self.storage_key)
        except RedisError as e:
            logger.error(f"Redis delete failed for key {self.storage_key}: {e}")
            raise TokenStorageError("Failed to clear auth tokens", e)

    async def health_check(self) -> bool:
        """
        Check Redis connection health by pinging the server.

        Returns:
            bool: True if Redis is healthy and responsive, False otherwise
        """
        try:
            await self.redis_client.ping()
            return True
        except RedisError as e:
            logger.error(f"Redis health check failed for {self.__class__.__name__}: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connection gracefully"""
        if self._redis_client is None:
            return

        try:
            await self._redis_client.aclose()
            logger.info(f"Redis connection closed for {self.__class__.__name__}")
        except RedisError as e:
            logger.error(f"Error closing Redis connection for {self.__class__.__name__}: {e}")
