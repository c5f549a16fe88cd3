"""Custom exceptions for listing source adapters."""


class AdapterError(Exception):
    """Base exception for all adapter errors.

    A fetch never lets these escape: the adapter catches them, stops paging
    and returns what it already collected.
    """

    pass


class AdapterHTTPError(AdapterError):
    """The listing API answered with a 4xx/5xx status or the connection failed.

    ``status_code`` is 0 when no response was received.
    """

    def __init__(self, message: str, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class AdapterTimeoutError(AdapterError):
    """The listing API did not answer within the request timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class AdapterResponseError(AdapterError):
    """The response body was not valid JSON or not the expected shape."""

    pass


class AdapterConfigurationError(AdapterError):
    """Invalid adapter configuration (unknown source type, bad timeout...)."""

    pass
