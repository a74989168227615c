"""
Error taxonomy raised by the service layer.

Services raise these; the application factory maps each one to a JSON
response using its ``status_code``.  Every error carries the offending
field name and value (when there is one) so the caller can render a
precise message.
"""

from typing import Any


class AssetTrackError(Exception):
    """Base class for all domain errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        """Serialize for a JSON error body."""
        payload: dict[str, Any] = {"message": self.message}
        if self.field is not None:
            payload["field"] = self.field
        if self.value is not None:
            payload["value"] = self.value if _is_json_scalar(self.value) else str(self.value)
        return payload


class ValidationError(AssetTrackError):
    """Malformed or missing input, coercion failure, duplicate name."""

    status_code = 400


class NotFoundError(AssetTrackError):
    """A referenced row does not exist (or is not visible to the tenant)."""

    status_code = 404


class ConflictError(AssetTrackError):
    """The requested change collides with existing state."""

    status_code = 409


class IntegrityError(AssetTrackError):
    """
    A structural invariant was violated.

    Never expected from well-formed callers; treated as a defect.
    """

    status_code = 500


def _is_json_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))
