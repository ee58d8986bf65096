from auth_refresh.core.config import Settings, StorageBackend, settings

from .base import BaseTokenStorage
from .file_storage import FileTokenStorage
from .memory_storage import MemoryTokenStorage
from .redis_storage import RedisTokenStorage, get_redis_pool


def build_token_storage(config: Settings = settings) -> BaseTokenStorage:
    """
    Create the credential store selected by the settings

    Args:
        config (Settings): Settings with storage_backend and backend details

    Returns:
        BaseTokenStorage: Storage bound to the configured storage key
    """
    if config.storage_backend == StorageBackend.MEMORY:
        return MemoryTokenStorage(config.storage_key)

    if config.storage_backend == StorageBackend.REDIS:
        return RedisTokenStorage(config.storage_key, config=config)

    return FileTokenStorage(config.storage_key, config.token_dir)


__all__ = [
    "BaseTokenStorage",
    "FileTokenStorage",
    "MemoryTokenStorage",
    "RedisTokenStorage",
    "build_token_storage",
    "get_redis_pool",
]
