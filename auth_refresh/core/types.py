from typing import Awaitable, Callable, Mapping, TypeAlias, TypedDict

from auth_refresh.schemas import AuthTokens


class JWTPayloadDict(TypedDict, total=False):
    """Unverified JWT claims read by the expiry evaluator."""

    sub: str  # Subject (user ID)
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp


# A renewal either yields a new access token only, or a full (possibly rotated) pair
RefreshResult: TypeAlias = str | AuthTokens | Mapping[str, str]

TokenRefreshRequest: TypeAlias = Callable[[str], Awaitable[RefreshResult]]
