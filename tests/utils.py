import asyncio
from datetime import UTC, datetime

import httpx
from jose import jwt

TEST_SECRET = "secret"
REFRESH_URL = "https://api.example.com/auth/refresh"


def make_token(expires_in: float | None, **claims) -> str:
    """
    Mint a signed JWT for tests
    Args:
        expires_in: Seconds from now until the exp claim, or None for no exp claim
        claims: Extra claims

    Returns:
        Encoded JWT
    """
    payload = {"sub": "user-123", "data": "foobar", **claims}

    if expires_in is not None:
        payload["exp"] = int(datetime.now(UTC).timestamp() + expires_in)

    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


def http_status_error(status_code: int) -> httpx.HTTPStatusError:
    """Error raised by httpx for a failed refresh call with the given status"""
    request = httpx.Request("POST", REFRESH_URL)
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"{status_code} error", request=request, response=response)


async def wait_for_waiters(coordinator, count: int) -> None:
    """Yield to the event loop until the given number of callers are queued"""
    for _ in range(100):
        if coordinator.pending_waiters == count:
            return
        await asyncio.sleep(0)

    raise AssertionError(f"expected {count} waiters, got {coordinator.pending_waiters}")


class BlockingRefresh:
    """Refresh request that only completes once released"""

    def __init__(self, result=None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.release = asyncio.Event()
        self.calls: list[str] = []

    async def __call__(self, refresh_token: str):
        self.calls.append(refresh_token)
        await self.release.wait()

        if self.error:
            raise self.error

        return self.result
