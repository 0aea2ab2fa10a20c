"""Structural errors raised to the caller of a policy manager session.

Content problems in a request (bad purpose vector, malformed obligation)
never surface here; they are dropped and logged by the validators.
"""

from __future__ import annotations


class PolicyManagerError(Exception):
    """Base class for policy manager errors."""


class MissingArgumentError(PolicyManagerError, TypeError):
    """A required top-level argument was not supplied."""

    def __init__(self, argument: str) -> None:
        self.argument = argument
        super().__init__(f"Missing argument: {argument}")


class BadArgumentTypeError(PolicyManagerError, TypeError):
    """A top-level argument has the wrong type."""

    def __init__(self, argument: str, expected: str, value: object) -> None:
        self.argument = argument
        self.expected = expected
        super().__init__(
            f"Bad type argument: {argument} must be {expected}, got {type(value).__name__}"
        )


class PolicyLoadError(PolicyManagerError):
    """The policy source could not be read or is not well formed."""


class RequestBuildError(PolicyManagerError):
    """The request builder was asked to build before all parts were set."""
