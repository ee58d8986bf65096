from unittest.mock import AsyncMock

import pytest
from faker import Faker
from redis.asyncio import Redis

from auth_refresh.schemas import AuthTokens
from auth_refresh.services.refresh_coordinator import RefreshCoordinator
from auth_refresh.services.storage import MemoryTokenStorage
from auth_refresh.services.token_manager import TokenManager
from tests.utils import make_token

STORAGE_KEY = "auth-refresh-refresh-token-test"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def faker_instance() -> Faker:
    """Create a Faker instance for test data generation."""
    return Faker()


@pytest.fixture
def storage_key() -> str:
    return STORAGE_KEY


@pytest.fixture
def memory_storage(storage_key: str) -> MemoryTokenStorage:
    """Create an empty in-memory credential store."""
    return MemoryTokenStorage(storage_key)


@pytest.fixture(params=[False, True], ids=["access-in-memory", "access-persisted"])
def token_manager(request, memory_storage: MemoryTokenStorage) -> TokenManager:
    """Create a token manager for both credential store variants."""
    return TokenManager(memory_storage, persist_access_token=request.param)


@pytest.fixture
def coordinator(token_manager: TokenManager) -> RefreshCoordinator:
    """Create an independent refresh coordinator."""
    return RefreshCoordinator(token_manager)


@pytest.fixture
def valid_token() -> str:
    """Access token that expires in 5 minutes."""
    return make_token(expires_in=5 * 60)


@pytest.fixture
def expired_token() -> str:
    """Access token that expired an hour ago."""
    return make_token(expires_in=-60 * 60)


@pytest.fixture
def refresh_token(faker_instance: Faker) -> str:
    return faker_instance.sha256()


@pytest.fixture
def expired_tokens(expired_token: str, refresh_token: str) -> AuthTokens:
    return AuthTokens(access_token=expired_token, refresh_token=refresh_token)


@pytest.fixture
def mock_redis_client() -> AsyncMock:
    """Create a mock Redis client."""
    mock_redis = AsyncMock(spec=Redis)
    mock_redis.ping = AsyncMock(return_value=True)
    mock_redis.get = AsyncMock(return_value=None)
    mock_redis.set = AsyncMock(return_value=True)
    mock_redis.delete = AsyncMock(return_value=1)
    mock_redis.aclose = AsyncMock()
    return mock_redis
