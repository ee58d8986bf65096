from auth_refresh.services.storage.base import BaseTokenStorage


class MemoryTokenStorage(BaseTokenStorage):
    """
    Process-local credential store.

    Nothing survives a restart; useful for tests and short-lived scripts.
    """

    def __init__(self, storage_key: str):
        super().__init__(storage_key)
        self._records: dict[str, str] = {}

    async def get_raw(self) -> str | None:
        return self._records.get(self.storage_key)

    async def set_raw(self, value: str) -> None:
        self._records[self.storage_key] = value

    async def clear_raw(self) -> None:
        self._records.pop(self.storage_key, None)
