"""Exceptions raised by clients of external services."""


class AuthServiceError(Exception):
    """The auth/subscription backend failed or answered unexpectedly.

    ``status_code`` is 0 when no response was received.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code
