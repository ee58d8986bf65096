# Seconds before the real expiry at which an access token is already treated as expired
EXPIRE_FUDGE = 10

# Renewal response statuses meaning the refresh token itself is no longer accepted
INVALID_REFRESH_TOKEN_STATUSES = frozenset({401, 422})


class TokenField:
    """
    Field names of the serialized credential record and of mapping refresh results.

    Example:
        ```python
        from auth_refresh.core.constants import TokenField

        if TokenField.ACCESS in result:
            ...
        ```
    """

    ACCESS = "access_token"
    REFRESH = "refresh_token"
