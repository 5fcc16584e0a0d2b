"""
Exception hierarchy for wacz-preparator.

Components raise these; the controller decides which ones end a run.
"""

from typing import List, Optional


class PreparatorError(Exception):
    """Base class for all wacz-preparator errors."""


class ConfigError(PreparatorError):
    """
    Raised when the provided options cannot produce a valid configuration.

    Carries every failing field, not just the first one found.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid configuration: " + "; ".join(self.errors))


class NetworkError(PreparatorError):
    """Non-success HTTP status or transport failure."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class AuthError(NetworkError):
    """The Archive-It API refused the credentials."""


class IntegrityError(PreparatorError):
    """Local file checksum does not match the remote reference."""

    def __init__(self, filename: str, expected: Optional[str], actual: Optional[str]):
        self.filename = filename
        self.expected = expected
        self.actual = actual
        super().__init__(f"{filename}: remote and local SHA-1 hash mismatch ({expected} != {actual})")


class DataError(PreparatorError):
    """Remote record that cannot be turned into usable output."""


class StorageError(PreparatorError):
    """Working directory or capture file could not be accessed or written."""


class ContainerError(PreparatorError):
    """The container writer did not produce a WACZ file."""
