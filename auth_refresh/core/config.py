import logging
from enum import StrEnum
from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL


class Environment(StrEnum):
    LOCAL = "local"
    TEST = "test"
    DEV = "dev"
    STG = "stg"
    PRD = "prd"


class StorageBackend(StrEnum):
    MEMORY = "memory"
    FILE = "file"
    REDIS = "redis"


class Settings(BaseSettings):
    """
    Client settings.

    These parameters can be configured
    with environment variables prefixed with AUTH_REFRESH_.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="AUTH_REFRESH_",
        env_ignore_empty=False,
        extra="ignore",
    )

    # Application identity, used to namespace stored credentials
    app_name: str = "auth-refresh"

    # Current working environment
    current_environment: Environment = Environment.LOCAL
    log_level: int = logging.INFO
    log_to_file: bool = False
    log_file: Path = Path("logs") / "auth_refresh.log"

    # Header written on authenticated requests
    header_name: str = "Authorization"
    header_value_prefix: str = "Bearer "

    # Credential storage
    storage_backend: StorageBackend = StorageBackend.FILE
    persist_access_token: bool = False  # Keep the access token next to the refresh token
    token_dir: Path = Path(".auth_tokens")

    # Variables for Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_user: str | None = None
    redis_pass: str | None = None
    redis_base: int | None = None
    redis_max_pool_connections: int = 10  # Maximum number of connections in the Redis pool
    redis_socket_connect_timeout: int = 5  # Socket connect timeout in seconds
    redis_socket_timeout: int = 5  # Socket timeout in seconds

    @computed_field
    @property
    def storage_key(self) -> str:
        """
        Storage key for the credential record, unique per app and environment.
        """
        return f"{self.app_name}-refresh-token-{self.current_environment.value}"

    @computed_field
    @property
    def redis_url(self) -> URL:
        """
        Assemble REDIS URL from settings.
        """
        path = ""

        if self.redis_base is not None:
            path = f"/{self.redis_base}"

        return URL.build(
            scheme="redis",
            host=self.redis_host,
            port=self.redis_port,
            user=self.redis_user,
            password=self.redis_pass,
            path=path,
        )


settings = Settings()  # type: ignore
