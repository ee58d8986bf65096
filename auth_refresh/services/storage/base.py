from abc import ABC, abstractmethod

from loguru import logger
from pydantic import ValidationError

from auth_refresh.core.exceptions.token_exceptions import TokenParseError
from auth_refresh.schemas import StoredTokens


class BaseTokenStorage(ABC):
    """
    Abstract base class for credential stores.

    Backends only move raw strings in and out of a key-value facility
    (get_raw/set_raw/clear_raw). Parsing and serialization of the credential
    record live here, so every backend reports a corrupted record the same way.

    A whole record is written per call, never individual fields, so a reader
    sees either the previous pair or the new one.
    """

    def __init__(self, storage_key: str):
        self.storage_key = storage_key

    @abstractmethod
    async def get_raw(self) -> str | None:
        """
        Read the raw record

        Returns:
            str | None: Stored record, or None if nothing is stored
        """

    @abstractmethod
    async def set_raw(self, value: str) -> None:
        """
        Replace the raw record

        Raises:
            TokenStorageError: If the record could not be stored
        """

    @abstractmethod
    async def clear_raw(self) -> None:
        """
        Remove the record. Clearing an empty store succeeds.

        Raises:
            TokenStorageError: If the record could not be removed
        """

    async def get(self) -> StoredTokens | None:
        """
        Get the stored credential record

        Returns:
            StoredTokens | None: Stored tokens, or None if nothing is stored

        Raises:
            TokenParseError: If a record is stored but is not well-formed
        """
        raw = await self.get_raw()
        if raw is None:
            return None

        try:
            return StoredTokens.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Stored auth tokens under {self.storage_key} are corrupted")
            raise TokenParseError(f"Failed to parse auth tokens: {raw}", e)

    async def set(self, tokens: StoredTokens) -> None:
        """
        Store the credential record, replacing any previous one

        Args:
            tokens (StoredTokens): Tokens to store
        """
        await self.set_raw(tokens.model_dump_json(exclude_none=True))
        logger.debug(f"Auth tokens stored under {self.storage_key}")

    async def clear(self) -> None:
        """Remove the credential record"""
        await self.clear_raw()
        logger.debug(f"Auth tokens cleared under {self.storage_key}")

    async def close(self) -> None:
        """Release backend resources, if any"""
