import redis
from mindcare.core.config import settings
import logging

logger = logging.getLogger(__name__)


class RedisClient:
    """Singleton Redis Client Wrapper"""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(RedisClient, cls).__new__(cls)
            cls._instance.client = redis.Redis(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                db=settings.REDIS_DB,
                password=settings.REDIS_PASSWORD,
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
                socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
                decode_responses=True  # Automatically decode bytes to strings
            )
        return cls._instance

    def get_client(self) -> redis.Redis:
        return self.client

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping error: {e}")
            return False
