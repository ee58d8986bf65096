from dataclasses import dataclass, field
from typing import Any, MutableMapping, Protocol, TypeVar

import httpx
from loguru import logger

from auth_refresh.core.config import settings
from auth_refresh.core.exceptions.base import CustomException
from auth_refresh.core.exceptions.token_exceptions import TokenRefreshError
from auth_refresh.core.logger import new_request_id, request_id_var
from auth_refresh.core.types import TokenRefreshRequest
from auth_refresh.services.refresh_coordinator import RefreshCoordinator


class SupportsHeaders(Protocol):
    headers: MutableMapping[str, str]


RequestT = TypeVar("RequestT", bound=SupportsHeaders)


@dataclass
class AuthTokenInterceptorConfig:
    """
    Configuration for the auth token interceptor.

    Args:
        request_refresh: Async callable exchanging the refresh token for a new
            access token (str) or a new token pair
        header: Name of the header the access token is written to
        header_prefix: Text written before the access token in the header
    """

    request_refresh: TokenRefreshRequest
    header: str = field(default_factory=lambda: settings.header_name)
    header_prefix: str = field(default_factory=lambda: settings.header_value_prefix)


def _error_message(error: BaseException) -> str:
    if isinstance(error, CustomException):
        return error.message

    return str(error)


class AuthTokenInterceptor:
    """
    Request hook that authenticates outgoing requests.

    - Requests pass through untouched when no refresh token is stored
    - Otherwise the access token is refreshed if needed and written to the configured header
    - Requests arriving during a refresh wait for it and reuse its outcome

    Only the request headers are mutated; tokens are changed exclusively by the coordinator.
    """

    def __init__(self, coordinator: RefreshCoordinator, config: AuthTokenInterceptorConfig):
        self.coordinator = coordinator
        self.config = config

    async def __call__(self, request: RequestT) -> RequestT:
        """
        Authenticate a single request

        Args:
            request: httpx.Request, or any request object with a mutable headers mapping

        Returns:
            The same request, with the auth header set when logged in

        Raises:
            TokenRefreshError: If the access token could not be refreshed; the request must not be sent
        """
        context_token = request_id_var.set(new_request_id())

        try:
            # A refresh token is needed to do any authenticated request
            if not await self.coordinator.token_manager.get_refresh_token():
                logger.debug("No refresh token stored, sending request unauthenticated")
                return request

            try:
                access_token = await self.coordinator.ensure_valid_access_token(
                    self.config.request_refresh
                )
            except Exception as e:
                logger.error(f"Unable to refresh access token for request: {_error_message(e)}")
                raise TokenRefreshError(
                    "Unable to refresh access token for request due to token refresh error: "
                    f"{_error_message(e)}",
                    e,
                ) from e

            if access_token:
                request.headers[self.config.header] = f"{self.config.header_prefix}{access_token}"

            return request
        finally:
            request_id_var.reset(context_token)


def apply_auth_token_interceptor(
    client: httpx.AsyncClient,
    config: AuthTokenInterceptorConfig,
    coordinator: RefreshCoordinator,
) -> AuthTokenInterceptor:
    """
    Register the auth token interceptor as a request event hook on an httpx client

    Args:
        client (httpx.AsyncClient): Client to apply the interceptor to
        config (AuthTokenInterceptorConfig): Configuration for the interceptor
        coordinator (RefreshCoordinator): Coordinator shared by all requests of the client

    Returns:
        AuthTokenInterceptor: The registered interceptor

    Raises:
        TypeError: If client is not an httpx.AsyncClient
    """
    if not isinstance(client, httpx.AsyncClient):
        raise TypeError(f"invalid httpx client: {client!r}")

    interceptor = AuthTokenInterceptor(coordinator, config)

    event_hooks: dict[str, list[Any]] = {
        name: list(hooks) for name, hooks in client.event_hooks.items()
    }
    event_hooks["request"] = [*event_hooks.get("request", []), interceptor]
    client.event_hooks = event_hooks

    return interceptor
