import asyncio
from collections import deque
from collections.abc import Mapping

import aiohttp
import httpx
from loguru import logger
from pydantic import ValidationError

from auth_refresh.core.auth import is_token_expired
from auth_refresh.core.constants import INVALID_REFRESH_TOKEN_STATUSES, TokenField
from auth_refresh.core.exceptions.token_exceptions import (
    InvalidRefreshResultError,
    RefreshTokenInvalidError,
    TokenRefreshError,
)
from auth_refresh.core.types import RefreshResult, TokenRefreshRequest
from auth_refresh.schemas import AuthTokens
from auth_refresh.services.token_manager import TokenManager


def parse_refresh_result(result: RefreshResult) -> str | AuthTokens:
    """
    Normalize what a refresh request returned into one of its two variants

    Args:
        result: Value returned by the caller-supplied refresh request

    Returns:
        str | AuthTokens: A new access token only, or a full token pair

    Raises:
        InvalidRefreshResultError: If the result is neither a token nor a token pair
    """
    if isinstance(result, AuthTokens):
        return result

    if isinstance(result, str) and result:
        return result

    if isinstance(result, Mapping) and result.get(TokenField.ACCESS):
        try:
            return AuthTokens.model_validate(dict(result))
        except ValidationError as e:
            raise InvalidRefreshResultError(exception=e)

    raise InvalidRefreshResultError()


def get_error_status_code(error: BaseException) -> int | None:
    """
    HTTP status carried by a transport error, if any

    Args:
        error: Exception raised by a refresh request

    Returns:
        int | None: Response status code, or None for errors without a response
    """
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code

    if isinstance(error, aiohttp.ClientResponseError):
        return error.status

    return None


class RefreshCoordinator:
    """
    Single-flight access token refresh with a FIFO queue of waiting callers.

    At most one refresh request runs at a time. Callers that find the access
    token expired while a refresh is running are parked on a future and get
    the outcome of that refresh, success or failure, in the order they arrived.

    All state is per instance and only touched from the event loop thread;
    the refreshing flag is checked and set without an await in between.

    There is no timeout on the refresh request: a refresh request that never
    completes keeps every queued caller waiting. Wrap the refresh request in
    ``asyncio.timeout`` to bound it.
    """

    def __init__(self, token_manager: TokenManager):
        self.token_manager = token_manager
        self._is_refreshing = False
        self._waiters: deque[asyncio.Future[str]] = deque()

    def get_is_refreshing(self) -> bool:
        """
        Check if tokens are currently being refreshed

        Returns:
            bool: True if a refresh is in progress
        """
        return self._is_refreshing

    def set_is_refreshing(self, value: bool) -> None:
        """
        Update the refresh state

        Args:
            value (bool): New refreshing state
        """
        self._is_refreshing = value

    @property
    def pending_waiters(self) -> int:
        return len(self._waiters)

    async def ensure_valid_access_token(self, request_refresh: TokenRefreshRequest) -> str | None:
        """
        Get the current access token, refreshing it first if it has expired.

        Args:
            request_refresh: Async callable exchanging a refresh token for a new
                access token or a new token pair

        Returns:
            str | None: A valid access token, or None if no refresh token is stored

        Raises:
            InvalidRefreshResultError: If request_refresh returned an unusable value
            RefreshTokenInvalidError: If the renewal endpoint rejected the refresh token
                with 401/422; both tokens are cleared before raising
            Exception: Any other error raised by request_refresh, unchanged
            TokenRefreshError: If this caller was queued behind a refresh whose task was cancelled
        """
        refresh_token = await self.token_manager.get_refresh_token()
        if not refresh_token:
            return None

        access_token = await self.token_manager.get_access_token()
        if access_token and not is_token_expired(access_token):
            return access_token

        if self._is_refreshing:
            waiter: asyncio.Future[str] = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            logger.debug(f"Token refresh in progress, queued request ({len(self._waiters)} waiting)")
            return await waiter

        self._is_refreshing = True
        logger.info("Access token expired, refreshing")

        try:
            new_access_token = await self._refresh(refresh_token, request_refresh)
        except asyncio.CancelledError:
            self._is_refreshing = False
            self._decline_queue(TokenRefreshError("Token refresh was cancelled"))
            raise
        except Exception as e:
            self._is_refreshing = False
            self._decline_queue(e)
            raise

        self._is_refreshing = False
        self._resolve_queue(new_access_token)

        return new_access_token

    async def _refresh(self, refresh_token: str, request_refresh: TokenRefreshRequest) -> str:
        """
        Run the refresh request once and store its result

        Returns:
            str: The new access token
        """
        try:
            result = await request_refresh(refresh_token)
        except Exception as e:
            status_code = get_error_status_code(e)
            if status_code not in INVALID_REFRESH_TOKEN_STATUSES:
                logger.warning(f"Token refresh failed: {e}")
                raise

            logger.warning(f"Got {status_code} on token refresh; clearing both auth tokens")
            await self.token_manager.clear_auth_tokens()
            raise RefreshTokenInvalidError(status_code, e) from e

        renewal = parse_refresh_result(result)

        if isinstance(renewal, AuthTokens):
            await self.token_manager.set_auth_tokens(renewal)
            logger.info("Token refresh succeeded with a new token pair")
            return renewal.access_token

        await self.token_manager.set_access_token(renewal)
        logger.info("Token refresh succeeded")
        return renewal

    def _resolve_queue(self, token: str) -> None:
        """Release every queued caller with the new access token"""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(token)

    def _decline_queue(self, error: BaseException) -> None:
        """Release every queued caller with the refresh error"""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_exception(error)
