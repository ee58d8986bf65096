from loguru import logger

from auth_refresh.core.config import Settings, settings
from auth_refresh.core.exceptions.token_exceptions import NoTokensStoredError
from auth_refresh.schemas import AuthTokens, StoredTokens
from auth_refresh.services.storage import BaseTokenStorage, build_token_storage


class TokenManager:
    """
    Public credential API over a single credential store.

    Two variants are supported:

    - ``persist_access_token=False`` (default): only the refresh token is
      stored; the access token lives in process memory and is lost on restart
      or whenever the tokens are cleared.
    - ``persist_access_token=True``: the access token is stored next to the
      refresh token in the same record, so it survives restarts at the cost of
      a larger exposure surface in storage.

    Only login/logout and the RefreshCoordinator are expected to mutate tokens.
    """

    def __init__(self, storage: BaseTokenStorage, persist_access_token: bool = False):
        self.storage = storage
        self.persist_access_token = persist_access_token
        self._access_token: str | None = None

    async def is_logged_in(self) -> bool:
        """
        Check if a refresh token is stored

        Returns:
            bool: Whether the user is logged in
        """
        return bool(await self.get_refresh_token())

    async def set_auth_tokens(self, tokens: AuthTokens) -> None:
        """
        Store a new access and refresh token pair

        Args:
            tokens (AuthTokens): Access and refresh tokens

        Raises:
            TokenStorageError: If the store could not persist the tokens
        """
        if self.persist_access_token:
            await self.storage.set(
                StoredTokens(refresh_token=tokens.refresh_token, access_token=tokens.access_token)
            )
            return

        await self.storage.set(StoredTokens(refresh_token=tokens.refresh_token))
        self._access_token = tokens.access_token

    async def set_access_token(self, token: str) -> None:
        """
        Replace the access token, keeping the current refresh token

        Args:
            token (str): New access token

        Raises:
            NoTokensStoredError: If there is no stored token pair to update
        """
        stored = await self.storage.get()

        if self.persist_access_token:
            if stored is None or not stored.access_token:
                raise NoTokensStoredError()

            await self.storage.set(StoredTokens(refresh_token=stored.refresh_token, access_token=token))
            return

        # The in-memory access token does not survive restarts, so the stored
        # refresh token alone is enough to attach a new access token to
        if stored is None:
            raise NoTokensStoredError()

        self._access_token = token

    async def clear_auth_tokens(self) -> None:
        """
        Clear both tokens

        Raises:
            TokenStorageError: If the store could not clear the tokens
        """
        self._access_token = None
        await self.storage.clear()
        logger.info("Auth tokens cleared")

    async def get_refresh_token(self) -> str | None:
        """
        Get the stored refresh token

        Returns:
            str | None: Refresh token, or None if not logged in

        Raises:
            TokenParseError: If the stored record is corrupted
        """
        stored = await self.storage.get()
        return stored.refresh_token if stored else None

    async def get_access_token(self) -> str | None:
        """
        Get the current access token, which may be expired

        Returns:
            str | None: Access token, or None if there is none
        """
        if not self.persist_access_token:
            return self._access_token

        stored = await self.storage.get()
        return stored.access_token if stored else None

    async def close(self) -> None:
        """Release the underlying store"""
        await self.storage.close()


def build_token_manager(config: Settings = settings) -> TokenManager:
    """
    Create a TokenManager with the store and variant selected by the settings

    Args:
        config (Settings): Client settings

    Returns:
        TokenManager: Token manager instance
    """
    return TokenManager(
        storage=build_token_storage(config),
        persist_access_token=config.persist_access_token,
    )
