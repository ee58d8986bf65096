from .client import AuthRefreshClient
from .core.auth import get_expires_in, is_token_expired
from .core.exceptions.token_exceptions import (
    InvalidRefreshResultError,
    NoTokensStoredError,
    RefreshTokenInvalidError,
    TokenError,
    TokenParseError,
    TokenRefreshError,
    TokenStorageError,
)
from .core.logger import configure_httpx_logging, setup_logger, shutdown_logger
from .schemas import AuthTokens
from .services.interceptor import (
    AuthTokenInterceptor,
    AuthTokenInterceptorConfig,
    apply_auth_token_interceptor,
)
from .services.refresh_coordinator import RefreshCoordinator
from .services.token_manager import TokenManager, build_token_manager

__version__ = "0.1.0"

__all__ = [
    "AuthRefreshClient",
    "AuthTokenInterceptor",
    "AuthTokenInterceptorConfig",
    "AuthTokens",
    "InvalidRefreshResultError",
    "NoTokensStoredError",
    "RefreshCoordinator",
    "RefreshTokenInvalidError",
    "TokenError",
    "TokenManager",
    "TokenParseError",
    "TokenRefreshError",
    "TokenStorageError",
    "apply_auth_token_interceptor",
    "build_token_manager",
    "configure_httpx_logging",
    "get_expires_in",
    "is_token_expired",
    "setup_logger",
    "shutdown_logger",
]
