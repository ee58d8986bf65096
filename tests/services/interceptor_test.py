import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from auth_refresh.core.exceptions.token_exceptions import (
    RefreshTokenInvalidError,
    TokenRefreshError,
)
from auth_refresh.core.logger import request_id_var
from auth_refresh.schemas import AuthTokens
from auth_refresh.services.interceptor import (
    AuthTokenInterceptor,
    AuthTokenInterceptorConfig,
    apply_auth_token_interceptor,
)
from auth_refresh.services.refresh_coordinator import RefreshCoordinator
from auth_refresh.services.token_manager import TokenManager
from tests.utils import BlockingRefresh, http_status_error, wait_for_waiters

API_URL = "https://api.example.com/me"


def make_request() -> httpx.Request:
    return httpx.Request("GET", API_URL)


def make_interceptor(
    coordinator: RefreshCoordinator, request_refresh, header="Auth", header_prefix="Prefix "
) -> AuthTokenInterceptor:
    return AuthTokenInterceptor(
        coordinator,
        AuthTokenInterceptorConfig(
            request_refresh=request_refresh, header=header, header_prefix=header_prefix
        ),
    )


class TestAuthTokenInterceptorConfig:
    def test_defaults(self):
        config = AuthTokenInterceptorConfig(request_refresh=AsyncMock())

        assert config.header == "Authorization"
        assert config.header_prefix == "Bearer "


class TestAuthTokenInterceptor:
    """Tests for authenticating a single request."""

    @pytest.mark.anyio
    async def test_logged_out_passes_through(self, coordinator: RefreshCoordinator):
        request_refresh = AsyncMock()
        interceptor = make_interceptor(coordinator, request_refresh)
        request = make_request()

        result = await interceptor(request)

        assert result is request
        assert "Auth" not in result.headers
        request_refresh.assert_not_called()

    @pytest.mark.anyio
    async def test_sets_header_with_valid_token(
        self,
        coordinator: RefreshCoordinator,
        token_manager: TokenManager,
        valid_token: str,
        refresh_token: str,
    ):
        await token_manager.set_auth_tokens(
            AuthTokens(access_token=valid_token, refresh_token=refresh_token)
        )
        request_refresh = AsyncMock()
        interceptor = make_interceptor(coordinator, request_refresh)

        result = await interceptor(make_request())

        assert result.headers["Auth"] == f"Prefix {valid_token}"
        request_refresh.assert_not_called()

    @pytest.mark.anyio
    async def test_refreshes_expired_token(
        self,
        coordinator: RefreshCoordinator,
        token_manager: TokenManager,
        expired_tokens: AuthTokens,
        valid_token: str,
    ):
        await token_manager.set_auth_tokens(expired_tokens)
        request_refresh = AsyncMock(return_value=valid_token)
        interceptor = make_interceptor(coordinator, request_refresh)

        result = await interceptor(make_request())

        assert result.headers["Auth"] == f"Prefix {valid_token}"
        request_refresh.assert_called_once_with(expired_tokens.refresh_token)
        assert await token_manager.get_access_token() == valid_token

    @pytest.mark.anyio
    async def test_refresh_error_is_wrapped(
        self,
        coordinator: RefreshCoordinator,
        token_manager: TokenManager,
        expired_tokens: AuthTokens,
    ):
        error = ValueError("Example error")
        await token_manager.set_auth_tokens(expired_tokens)
        interceptor = make_interceptor(coordinator, AsyncMock(side_effect=error))

        with pytest.raises(TokenRefreshError) as exc_info:
            await interceptor(make_request())

        assert exc_info.value.message == (
            "Unable to refresh access token for request due to token refresh error: Example error"
        )
        assert exc_info.value.exception is error
        assert exc_info.value.__cause__ is error

    @pytest.mark.anyio
    async def test_invalid_refresh_token_message(
        self,
        coordinator: RefreshCoordinator,
        token_manager: TokenManager,
        expired_tokens: AuthTokens,
    ):
        await token_manager.set_auth_tokens(expired_tokens)
        interceptor = make_interceptor(coordinator, AsyncMock(side_effect=http_status_error(401)))

        with pytest.raises(TokenRefreshError) as exc_info:
            await interceptor(make_request())

        assert exc_info.value.message == (
            "Unable to refresh access token for request due to token refresh error: "
            "Got 401 on token refresh; clearing both auth tokens"
        )
        assert isinstance(exc_info.value.exception, RefreshTokenInvalidError)
        assert await token_manager.is_logged_in() is False

    @pytest.mark.anyio
    async def test_request_id_is_reset(
        self, coordinator: RefreshCoordinator, token_manager: TokenManager, valid_token: str
    ):
        await token_manager.set_auth_tokens(
            AuthTokens(access_token=valid_token, refresh_token="refreshtoken")
        )
        interceptor = make_interceptor(coordinator, AsyncMock())

        await interceptor(make_request())

        assert request_id_var.get() is None


class TestConcurrentRequests:
    """Tests for requests arriving while a refresh is running."""

    @pytest.mark.anyio
    async def test_queued_requests_share_refresh(
        self,
        coordinator: RefreshCoordinator,
        token_manager: TokenManager,
        expired_tokens: AuthTokens,
        valid_token: str,
    ):
        await token_manager.set_auth_tokens(expired_tokens)
        request_refresh = BlockingRefresh(result=valid_token)
        interceptor = make_interceptor(coordinator, request_refresh)

        tasks = [asyncio.create_task(interceptor(make_request())) for _ in range(3)]
        await wait_for_waiters(coordinator, 2)
        request_refresh.release.set()
        requests = await asyncio.gather(*tasks)

        assert [request.headers["Auth"] for request in requests] == [f"Prefix {valid_token}"] * 3
        assert len(request_refresh.calls) == 1

    @pytest.mark.anyio
    async def test_queued_requests_declined(
        self,
        coordinator: RefreshCoordinator,
        token_manager: TokenManager,
        expired_tokens: AuthTokens,
    ):
        await token_manager.set_auth_tokens(expired_tokens)
        request_refresh = BlockingRefresh(error=ValueError("Network Error"))
        interceptor = make_interceptor(coordinator, request_refresh)

        tasks = [asyncio.create_task(interceptor(make_request())) for _ in range(3)]
        await wait_for_waiters(coordinator, 2)
        request_refresh.release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert [result.message for result in results] == [
            "Unable to refresh access token for request due to token refresh error: Network Error"
        ] * 3
        assert len(request_refresh.calls) == 1


class TestApplyAuthTokenInterceptor:
    """Tests for registering the interceptor on an httpx client."""

    def test_rejects_non_httpx_client(self, coordinator: RefreshCoordinator):
        config = AuthTokenInterceptorConfig(request_refresh=AsyncMock())

        with pytest.raises(TypeError) as exc_info:
            apply_auth_token_interceptor(object(), config, coordinator)

        assert str(exc_info.value).startswith("invalid httpx client")

    def test_rejects_sync_client(self, coordinator: RefreshCoordinator):
        config = AuthTokenInterceptorConfig(request_refresh=AsyncMock())

        with httpx.Client() as client:
            with pytest.raises(TypeError):
                apply_auth_token_interceptor(client, config, coordinator)

    @pytest.mark.anyio
    async def test_registers_request_hook(self, coordinator: RefreshCoordinator):
        config = AuthTokenInterceptorConfig(request_refresh=AsyncMock())

        async with httpx.AsyncClient() as client:
            interceptor = apply_auth_token_interceptor(client, config, coordinator)

            assert client.event_hooks["request"] == [interceptor]
            assert interceptor.coordinator is coordinator

    @pytest.mark.anyio
    async def test_keeps_existing_hooks(self, coordinator: RefreshCoordinator):
        config = AuthTokenInterceptorConfig(request_refresh=AsyncMock())

        async def log_request(request):
            pass

        async def log_response(response):
            pass

        async with httpx.AsyncClient(
            event_hooks={"request": [log_request], "response": [log_response]}
        ) as client:
            interceptor = apply_auth_token_interceptor(client, config, coordinator)

            assert client.event_hooks["request"] == [log_request, interceptor]
            assert client.event_hooks["response"] == [log_response]

    @pytest.mark.anyio
    async def test_authenticates_sent_requests(
        self,
        coordinator: RefreshCoordinator,
        token_manager: TokenManager,
        expired_tokens: AuthTokens,
        valid_token: str,
    ):
        seen_headers: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen_headers.append(request.headers.get("Authorization"))
            return httpx.Response(200, json={"id": "user-123"})

        await token_manager.set_auth_tokens(expired_tokens)
        request_refresh = AsyncMock(return_value=valid_token)
        config = AuthTokenInterceptorConfig(request_refresh=request_refresh)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            apply_auth_token_interceptor(client, config, coordinator)

            responses = await asyncio.gather(*(client.get(API_URL) for _ in range(3)))

        assert [response.status_code for response in responses] == [200] * 3
        assert seen_headers == [f"Bearer {valid_token}"] * 3
        request_refresh.assert_called_once()

    @pytest.mark.anyio
    async def test_failed_refresh_blocks_request(
        self,
        coordinator: RefreshCoordinator,
        token_manager: TokenManager,
        expired_tokens: AuthTokens,
    ):
        handler = AsyncMock(return_value=httpx.Response(200))
        await token_manager.set_auth_tokens(expired_tokens)
        config = AuthTokenInterceptorConfig(
            request_refresh=AsyncMock(side_effect=ValueError("Network Error"))
        )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            apply_auth_token_interceptor(client, config, coordinator)

            with pytest.raises(TokenRefreshError):
                await client.get(API_URL)

        handler.assert_not_called()


class TestCancelledRefresh:
    @pytest.mark.anyio
    async def test_queued_requests_fail_when_refresh_is_cancelled(
        self,
        coordinator: RefreshCoordinator,
        token_manager: TokenManager,
        expired_tokens: AuthTokens,
        valid_token: str,
    ):
        await token_manager.set_auth_tokens(expired_tokens)
        request_refresh = BlockingRefresh(result=valid_token)
        interceptor = make_interceptor(coordinator, request_refresh)

        refreshing = asyncio.create_task(interceptor(make_request()))
        queued = [asyncio.create_task(interceptor(make_request())) for _ in range(2)]
        await wait_for_waiters(coordinator, 2)

        refreshing.cancel()
        results = await asyncio.gather(*queued, return_exceptions=True)

        assert refreshing.cancelled()
        assert [result.message for result in results] == [
            "Unable to refresh access token for request due to token refresh error: "
            "Token refresh was cancelled"
        ] * 2
