from typing import Any

import httpx
from loguru import logger

from auth_refresh.core.config import Settings, settings
from auth_refresh.core.types import TokenRefreshRequest
from auth_refresh.schemas import AuthTokens
from auth_refresh.services.interceptor import (
    AuthTokenInterceptorConfig,
    apply_auth_token_interceptor,
)
from auth_refresh.services.refresh_coordinator import RefreshCoordinator
from auth_refresh.services.token_manager import TokenManager, build_token_manager


class AuthRefreshClient:
    """
    httpx.AsyncClient wired with token storage, refresh coordination and the auth interceptor.

    Example usage:
        async with AuthRefreshClient(request_refresh, base_url="https://api.example.com") as client:
            await client.login(AuthTokens(access_token=..., refresh_token=...))
            response = await client.http.get("/me")
    """

    def __init__(
        self,
        request_refresh: TokenRefreshRequest,
        config: Settings = settings,
        token_manager: TokenManager | None = None,
        **client_kwargs: Any,
    ):
        """
        Args:
            request_refresh: Async callable exchanging a refresh token for a new access token or pair
            config (Settings): Settings selecting header names and the credential store
            token_manager (TokenManager | None): Token manager to use instead of one built from config
            client_kwargs: Keyword arguments passed to httpx.AsyncClient
        """
        self.token_manager = token_manager or build_token_manager(config)
        self.coordinator = RefreshCoordinator(self.token_manager)
        self.http = httpx.AsyncClient(**client_kwargs)
        self.interceptor = apply_auth_token_interceptor(
            self.http,
            AuthTokenInterceptorConfig(
                request_refresh=request_refresh,
                header=config.header_name,
                header_prefix=config.header_value_prefix,
            ),
            self.coordinator,
        )

    async def __aenter__(self) -> "AuthRefreshClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def login(self, tokens: AuthTokens) -> None:
        """Store the token pair obtained at login"""
        await self.token_manager.set_auth_tokens(tokens)
        logger.info("Logged in")

    async def logout(self) -> None:
        """Forget both tokens"""
        await self.token_manager.clear_auth_tokens()
        logger.info("Logged out")

    async def is_logged_in(self) -> bool:
        return await self.token_manager.is_logged_in()

    async def close(self) -> None:
        await self.http.aclose()
        await self.token_manager.close()
