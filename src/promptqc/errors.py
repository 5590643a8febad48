"""PromptQC Error Hierarchy.

Structured exception types raised by the test harness.
"""

from __future__ import annotations


class PromptQCError(Exception):
    """Base error for all PromptQC exceptions."""

    code = "PROMPTQC_ERROR"

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Registration Errors
class ConfigValidationError(PromptQCError):
    """A unit configuration was rejected at registration time."""

    code = "CONFIG_VALIDATION"
    stage = "ConfigValidation"

    def __init__(self, message: str, field: str = None):
        super().__init__(message, {"field": field, "stage": self.stage})
        self.field = field


# Fixture Errors
class FixtureError(PromptQCError):
    """Base error for fixture file problems."""

    code = "FIXTURE_ERROR"

    def __init__(self, message: str, path: str = None):
        super().__init__(f"{path}: {message}" if path else message, {"path": path})
        self.path = path


class FixtureReadError(FixtureError):
    """Fixture file could not be read."""

    code = "FIXTURE_READ"


class EmptyFixtureError(FixtureError):
    """Fixture file has no content."""

    code = "FIXTURE_EMPTY"


class FixtureParseError(FixtureError):
    """Fixture file content is not valid JSON/YAML."""

    code = "FIXTURE_PARSE"


class InvalidFixtureError(FixtureError):
    """Fixture file parsed but is not a map of group name to prompt list."""

    code = "FIXTURE_INVALID"


# Assertion Errors
class AssertionInfrastructureError(PromptQCError):
    """An assertion primitive could not be evaluated.

    Raised when an assertion is misused (e.g. ``assert_includes`` on a value
    with no membership check) or when comparing the operands raised. This is
    distinct from an assertion that evaluates to ``False``.
    """

    code = "ASSERTION_INFRASTRUCTURE"

    def __init__(self, message: str, cause: BaseException = None):
        details = {}
        if cause is not None:
            details["cause"] = f"{type(cause).__name__}: {cause}"
        super().__init__(message, details)
        self.cause = cause
