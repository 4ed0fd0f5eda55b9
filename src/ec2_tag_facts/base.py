"""Shared base types: the error hierarchy and the logging collaborator."""

from __future__ import annotations

from typing import Any, Protocol


class FactLogger(Protocol):
    """Anything with ``info`` and ``error`` methods, e.g. a ``logging.Logger``."""

    def info(self, msg: str, *args: Any) -> None: ...

    def error(self, msg: str, *args: Any) -> None: ...


class Ec2TagFactsError(Exception):
    """Base class for every fatal error raised while resolving tag facts."""


class FetchError(Ec2TagFactsError):
    """Raised when the tag query keeps failing after every retry."""

    def __init__(self, reason: str, attempts: int) -> None:
        self.reason = reason
        self.attempts = attempts
        super().__init__(f"describe-tags failed after {attempts} attempt(s): {reason}")


class ParseError(Ec2TagFactsError):
    """Raised when the API response (live or cached) is not valid JSON."""


class SchemaError(Ec2TagFactsError):
    """Raised when the API response does not have the expected shape."""


class CacheError(Ec2TagFactsError):
    """Raised when the cached API response cannot be read."""


class MetadataError(Ec2TagFactsError):
    """Raised when the instance id or region cannot be determined."""


class BackendUnavailableError(Ec2TagFactsError):
    """Raised when an optional query backend's SDK is not installed."""
