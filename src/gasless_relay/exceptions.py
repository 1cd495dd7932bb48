"""Exceptions raised by the gasless relay pipeline.

Every error aborts the current run. Nothing in this package retries.
"""

from typing import Any


class GaslessRelayError(Exception):
    """Base exception for all gasless relay errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(GaslessRelayError, ValueError):
    """A required address or configuration value is missing or invalid."""
    pass


class SigningError(GaslessRelayError):
    """The signing key is empty or malformed."""
    pass


class RecoveryError(GaslessRelayError):
    """A signature could not be decoded or recovered."""
    pass


class IntegrityFault(GaslessRelayError):
    """The recovered signer does not match the request sender.

    Fatal: a request whose signature does not recover to ``from`` can never
    be accepted by the forwarder, so it must not be submitted.
    """

    def __init__(self, expected: str, recovered: str) -> None:
        super().__init__(
            f"Signature recovers to {recovered}, expected {expected}",
            {"expected": expected, "recovered": recovered},
        )
        self.expected = expected
        self.recovered = recovered


class RelayError(GaslessRelayError):
    """The relay rejected the request or returned a malformed response."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any = None,
    ) -> None:
        super().__init__(message, {"status_code": status_code, "response": response})
        self.status_code = status_code
        self.response = response
