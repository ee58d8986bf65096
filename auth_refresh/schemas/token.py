from pydantic import ConfigDict, Field

from auth_refresh.schemas.base import BaseSchema


class AuthTokens(BaseSchema):
    """Access and refresh token pair"""

    # Renewal endpoints commonly return extra fields (expires_in, token_type, ...)
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)

    def __str__(self):
        return f"AuthTokens(access_token={self.access_token[:8]}..., refresh_token=***)"


class StoredTokens(BaseSchema):
    """Credential record held by a token storage backend"""

    refresh_token: str = Field(min_length=1)
    access_token: str | None = None
