"""Exception hierarchy for Library Ranker."""

from __future__ import annotations


class RankerError(Exception):
    """Base exception with an optional suggestion for the caller."""

    label = "Error"

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[{self.label}] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class ConfigurationError(RankerError):
    """Error raised for invalid or missing configuration."""

    label = "Configuration Error"


class NotFoundError(RankerError):
    """A referenced item or system state does not exist."""

    label = "Not Found"

    def __init__(self, kind: str, key: str, suggestion: str | None = None) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} '{key}' not found", suggestion)


class SystemNotInitializedError(NotFoundError):
    """Rating system state is missing for a scope."""

    def __init__(self, scope: str) -> None:
        super().__init__(
            "System state",
            scope,
            "Run `library-ranker init` to create the rating system first.",
        )


class InvalidArgumentError(RankerError):
    """An argument is outside the accepted domain."""

    label = "Invalid Argument"

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        super().__init__(f"Invalid value for '{field}'", reason)


class StoreFailureError(RankerError):
    """The underlying item store failed to complete an operation."""

    label = "Store Failure"

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"Store operation '{operation}' failed{detail}",
            "The operation can be retried.",
        )
