import os
import pathlib
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


# Project root (config.py lives in mindcare/core/)
BASE_DIR = pathlib.Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    # App
    APP_NAME: str = Field(default='MindCare API', description='Application name')
    APP_VERSION: str = Field(default='1.0.0', description='Application version')
    ENVIRONMENT: Literal['development', 'staging', 'production', 'testing'] = Field(
        default='development', description='Runtime environment'
    )
    DEBUG: bool = Field(default=False, description='Debug mode, also exposes error debug messages')

    # Server
    HOST: str = Field(default='0.0.0.0', description='Server host')
    PORT: int = Field(default=8000, description='Server port')

    # Database
    DATABASE_URL: str = Field(default='sqlite:///./mindcare.db', description='Database URL')
    DATABASE_POOL_SIZE: int = Field(default=20, description='Connection pool size')
    DATABASE_MAX_OVERFLOW: int = Field(default=10, description='Connection pool overflow')
    DATABASE_POOL_TIMEOUT: int = Field(default=30, description='Seconds to wait for a pooled connection')

    # JWT
    SECRET_KEY: str = Field(default="your-secret-key-change-in-production", description='JWT secret')
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day
    API_V1_PREFIX: str = Field("/api/v1", description="API path prefix")

    # Redis
    REDIS_HOST: str = Field(default='localhost')
    REDIS_PORT: int = Field(default=6379)
    REDIS_DB: int = Field(default=0)
    REDIS_PASSWORD: Optional[str] = Field(default=None)
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, description='Redis socket timeout in seconds')

    # Notifications
    NOTIFICATION_DISPATCH_MODE: Literal['inline', 'queue'] = Field(
        default='inline', description='inline: write notifications in the request, queue: push to Redis'
    )
    NOTIFICATION_QUEUE_KEY: str = Field(default='notifications:pending')
    NOTIFICATION_DRAIN_INTERVAL_SECONDS: int = Field(default=5)
    NOTIFICATION_DRAIN_BATCH_SIZE: int = Field(default=100)

    # Logging
    BASE_DIR: pathlib.Path = BASE_DIR
    LOG_DIR: str = Field(default='logs')
    LOG_LEVEL: str = Field(default='INFO')
    LOG_JSON_FORMAT: bool = Field(default=False)
    LOG_TO_FILE: bool = Field(default=True)
    LOG_MAX_BYTES: int = Field(default=10 * 1024 * 1024)
    LOG_BACKUP_COUNT: int = Field(default=5)

    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', case_sensitive=True, extra='ignore')

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == 'development'


# Pick the env file for the current environment
@lru_cache
def get_settings() -> Settings:
    env = os.getenv('ENVIRONMENT', 'development')

    env_file_map = {
        'development': BASE_DIR / '.env.dev',
        'staging': BASE_DIR / '.env.staging',
        'production': BASE_DIR / '.env.prod',
        'testing': BASE_DIR / '.env.test',
    }
    env_file = env_file_map.get(env, BASE_DIR / '.env')

    return Settings(_env_file=env_file)


settings = get_settings()
