from auth_refresh.core.exceptions.base import CustomException


class TokenError(CustomException):
    """
    Base exception for auth token handling
    """

    def __init__(self, message, exception: BaseException | None = None):
        super().__init__(message, exception)


class TokenStorageError(TokenError):
    """
    The credential store could not persist or clear the tokens
    """

    def __init__(self, message, exception: BaseException | None = None):
        super().__init__(message, exception)


class TokenParseError(TokenError):
    """
    The stored credential record is not well-formed
    """

    def __init__(self, message, exception: BaseException | None = None):
        super().__init__(message, exception)


class NoTokensStoredError(TokenError):
    """
    An operation needs an existing token pair but none is stored
    """

    def __init__(
        self,
        message="Unable to update access token since there are not tokens currently stored",
        exception: BaseException | None = None,
    ):
        super().__init__(message, exception)


class InvalidRefreshResultError(TokenError):
    """
    The refresh request returned something that is neither a token nor a token pair
    """

    def __init__(
        self,
        message="request_refresh must either return a string or an object with an access_token",
        exception: BaseException | None = None,
    ):
        super().__init__(message, exception)


class RefreshTokenInvalidError(TokenError):
    """
    The renewal endpoint rejected the refresh token itself (401/422)
    """

    def __init__(self, status_code: int, exception: BaseException | None = None):
        self.status_code = status_code
        super().__init__(
            f"Got {status_code} on token refresh; clearing both auth tokens", exception
        )


class TokenRefreshError(TokenError):
    """
    A request could not be authenticated because refreshing its access token failed
    """

    def __init__(self, message, exception: BaseException | None = None):
        super().__init__(message, exception)
