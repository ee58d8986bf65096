import asyncio
import os
import uuid
from pathlib import Path

import aiofiles
import aiofiles.os
from loguru import logger

from auth_refresh.core.exceptions.token_exceptions import TokenStorageError
from auth_refresh.services.storage.base import BaseTokenStorage


def _owner_only_opener(path: str, flags: int) -> int:
    return os.open(path, flags, 0o600)


class FileTokenStorage(BaseTokenStorage):
    """
    Credential store backed by one JSON file per storage key.

    Writes go to a uniquely named temporary sibling file that is renamed over
    the target, so the file on disk always holds either the previous record or
    the new one. Writes and clears of one instance are serialized.
    """

    def __init__(self, storage_key: str, directory: Path | str):
        super().__init__(storage_key)
        self.directory = Path(directory)
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self.directory / f"{self.storage_key}.json"

    def _tmp_path(self) -> Path:
        return self.directory / f".{self.storage_key}.{os.getpid()}.{uuid.uuid4().hex}.tmp"

    async def get_raw(self) -> str | None:
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as file:
                return await file.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Failed to read auth tokens from {self.path}: {e}")
            raise TokenStorageError("Failed to read auth tokens", e)

    async def set_raw(self, value: str) -> None:
        tmp_path = self._tmp_path()

        async with self._write_lock:
            try:
                await aiofiles.os.makedirs(self.directory, exist_ok=True)

                async with aiofiles.open(
                    tmp_path, "x", encoding="utf-8", opener=_owner_only_opener
                ) as file:
                    await file.write(value)
                    await file.flush()

                await aiofiles.os.replace(tmp_path, self.path)
            except OSError as e:
                logger.error(f"Failed to write auth tokens to {self.path}: {e}")
                if await aiofiles.os.path.exists(tmp_path):
                    await aiofiles.os.remove(tmp_path)
                raise TokenStorageError("Failed to store auth tokens", e)

    async def clear_raw(self) -> None:
        async with self._write_lock:
            try:
                await aiofiles.os.remove(self.path)
            except FileNotFoundError:
                return
            except OSError as e:
                logger.error(f"Failed to remove auth tokens file {self.path}: {e}")
                raise TokenStorageError("Failed to clear auth tokens", e)
