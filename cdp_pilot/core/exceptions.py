"""
Exceptions module for CDP Pilot.
Contains custom exceptions for CDP-related errors.
"""


class CDPError(Exception):
    """Base exception for all CDP-related errors."""
    pass


class CDPConnectionError(CDPError):
    """Exception raised for CDP connection errors."""
    pass


class CDPProtocolError(CDPError):
    """Exception raised when CDP answers a command with an error."""

    def __init__(self, message: str, code: int = -1):
        super().__init__(message)
        self.code = code


class DeadlineExceeded(CDPError, TimeoutError):
    """Exception raised when an operation does not settle within its deadline."""

    def __init__(self, timeout: float):
        super().__init__(f"Operation did not complete within {timeout} seconds")
        self.timeout = timeout
