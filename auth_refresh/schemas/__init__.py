from .base import BaseSchema
from .token import AuthTokens, StoredTokens

__all__ = [
    "BaseSchema",
    "AuthTokens",
    "StoredTokens",
]
