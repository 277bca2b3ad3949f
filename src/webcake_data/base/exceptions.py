# src/webcake_data/base/exceptions.py

from typing import Optional


class WebcakeDataError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(WebcakeDataError, ValueError):
    """Exception raised when a query directive or connection setting is incomplete."""

    def __init__(self, message: str = "Invalid configuration."):
        super().__init__(message)


class TransportError(WebcakeDataError):
    """Exception raised when a request fails or the response envelope reports failure."""

    def __init__(
        self,
        message: str = "The request to the collection API failed.",
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UnsupportedValueError(WebcakeDataError, ValueError):
    """Exception raised when a value cannot be encoded for the collection API."""

    def __init__(self, message: str = "Value type is not supported."):
        super().__init__(message)


class QueryAlreadyExecutedError(WebcakeDataError, RuntimeError):
    def __init__(self, message: str = "The query has already been executed."):
        super().__init__(message)
