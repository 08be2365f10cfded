"""Error classes for the token subsystem.

WHY CUSTOM ERROR CLASSES:
- Callers get a machine-readable code alongside the message
- Validation failures carry per-field details
- Storage failures are decoupled from the underlying driver

Lookup failures and expired tokens are NOT exceptions. The protocol services
fold them into a plain False/None result so callers cannot tell an unknown
identifier from a wrong token.
"""


class WardenError(Exception):
    """Base class for token subsystem errors.

    Attributes:
        code: Machine-readable error code (e.g., "VALIDATION_ERROR").
        message: Human-readable error message.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(WardenError):
    """A record violates its field invariants.

    Raised by validated commits (missing token or realm, unknown kind,
    uniqueness violation, broken activation state). Each entry in
    ``details`` has ``field`` and ``message`` keys.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            details=details,
        )

    @property
    def fields(self) -> set[str]:
        """Names of the fields that failed validation."""
        return {d["field"] for d in self.details or []}


class PersistenceError(WardenError):
    """A write did not reach storage.

    Raised when an atomic column update affects no row, or when the
    database driver fails underneath a store.
    """

    def __init__(self, message: str = "Failed to persist record") -> None:
        super().__init__(
            code="PERSISTENCE_ERROR",
            message=message,
        )
