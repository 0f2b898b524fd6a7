"""Error taxonomy shared by services and the API layer.

Every error carries a human-readable ``message``, a stable ``code`` and the
HTTP status the API boundary should answer with. Services raise them; the
exception handler in ``craguard.main`` renders them as
``{"success": false, "message": ...}``.
"""


class AppError(Exception):
    """Base class for expected, user-visible failures."""

    code = "APP_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class FormatError(AppError):
    """Raised when an SBOM document is not valid JSON or matches no supported schema."""

    code = "FORMAT_ERROR"
    status_code = 422


class ValidationError(AppError):
    """Raised for malformed input parameters."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidTransitionError(ValidationError):
    """Raised when a requested status change is not allowed by the remediation workflow."""

    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move vulnerability from {current} to {requested}.")


class AuthenticationError(AppError):
    """Raised when the caller identity or shared secret is missing or wrong."""

    code = "AUTH_ERROR"
    status_code = 401

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    """Raised when a singular lookup finds nothing."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"{resource} not found")


class ConflictError(AppError):
    """Raised when a write loses against a concurrent one (unique constraint)."""

    code = "CONFLICT"
    status_code = 409


class ScanningError(AppError):
    """Raised when an external vulnerability database call fails.

    Callers catch it at the per-call or per-batch boundary and degrade to
    "no findings" instead of aborting the surrounding operation.
    """

    code = "SCANNING_ERROR"
    status_code = 502

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.upstream_status = status_code
        super().__init__(message)
