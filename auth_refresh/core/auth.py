from datetime import UTC, datetime

from jose import jwt
from jose.exceptions import JWTError
from loguru import logger

from auth_refresh.core.constants import EXPIRE_FUDGE
from auth_refresh.core.types import JWTPayloadDict


def get_token_claims(token: str) -> JWTPayloadDict:
    """
    Read the claims of a JWT without verifying its signature
    Args:
        token: Encoded JWT

    Returns:
        Decoded claims

    Raises:
        JWTError: If the token is not a decodable JWT
    """
    return jwt.get_unverified_claims(token)  # type: ignore[return-value]


def get_timestamp_from_token(token: str) -> float | None:
    """
    Get the expiry unix timestamp (exp claim) of an access token
    Args:
        token: Access token

    Returns:
        Expiry timestamp, or None if the token is malformed or carries no numeric exp claim
    """
    try:
        claims = get_token_claims(token)
    except JWTError as e:
        logger.debug(f"Unable to decode access token claims: {e}")
        return None

    expiration = claims.get("exp")

    # bool is an int subclass but never a valid timestamp
    if isinstance(expiration, bool) or not isinstance(expiration, (int, float)):
        return None

    return expiration


def get_expires_in(token: str) -> float:
    """
    Number of seconds before the access token expires
    Args:
        token: Access token

    Returns:
        Seconds until expiry, or -1 if the expiry cannot be read
    """
    expiration = get_timestamp_from_token(token)

    if not expiration:
        return -1

    return expiration - datetime.now(UTC).timestamp()


def is_token_expired(token: str | None) -> bool:
    """
    Check if the token is missing, has expired or is about to expire
    Args:
        token: Access token

    Returns:
        Whether the token is missing, expired, or expires within EXPIRE_FUDGE seconds
    """
    if not token:
        return True

    return get_expires_in(token) <= EXPIRE_FUDGE
