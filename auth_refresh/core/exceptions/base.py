class CustomException(Exception):
    """
    Base for all custom exceptions
    """

    def __init__(self, message, exception: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.exception = exception

    def __str__(self):
        if self.exception:
            return f"{self.message}\nException: {self.exception}"

        return self.message
