"""
Custom exceptions for the order lifecycle engine.

Domain errors are raised to the caller unchanged; the calling layer maps
them to user-facing responses. Promo code invalidity is deliberately not
represented here: an unusable promo code yields a zero discount.
"""

from typing import Any


class OrderEngineError(Exception):
    """Base exception for all order lifecycle engine errors."""

    pass


class ValidationError(OrderEngineError):
    """Exception raised when a request is malformed or incomplete."""

    def __init__(
        self,
        message: str,
        field_errors: list[dict[str, str]] | None = None,
    ):
        self.field_errors = field_errors or []

        if self.field_errors:
            details = "; ".join(
                f"{error['field']}: {error['message']}" for error in self.field_errors
            )
            message = f"{message} ({details})"

        super().__init__(message)

    @classmethod
    def from_pydantic(cls, error: Any, message: str = "Validation failed"):
        """Build from a pydantic ``ValidationError`` keeping per-field messages."""
        field_errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())) or "request",
                "message": err.get("msg", "invalid value"),
            }
            for err in error.errors()
        ]
        return cls(message, field_errors=field_errors)


class NotFoundError(OrderEngineError):
    """Exception raised when a referenced record does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id

        super().__init__(f"{entity} not found: {entity_id}")


class InvalidTransitionError(OrderEngineError):
    """Exception raised when a status change is not legal from the current state."""

    def __init__(
        self,
        current_status: str,
        requested_status: str,
        reason: str | None = None,
    ):
        self.current_status = current_status
        self.requested_status = requested_status
        self.reason = reason

        message = (
            f"Cannot transition order from {current_status} to {requested_status}"
        )
        if reason:
            message = f"{message}: {reason}"

        super().__init__(message)


class ConsistencyError(OrderEngineError):
    """Exception raised when the store fails to commit a transaction."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        original_error: Exception | None = None,
    ):
        self.operation = operation
        self.original_error = original_error

        if operation:
            message = f"{operation}: {message}"

        if original_error:
            message = f"{message} (Original error: {original_error})"

        super().__init__(message)
