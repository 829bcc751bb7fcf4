"""
Error taxonomy for the ride workflow.

Every failure raised by the core derives from ``RideflowError`` and carries
the HTTP status the API layer should answer with plus a stable ``code``.
"""

from __future__ import annotations

from typing import Any, Optional


class RideflowError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class NotFound(RideflowError):
    status_code = 404

    def __init__(self, entity: str, key: Any):
        super().__init__(f"{entity} {key} not found")
        self.entity = entity
        self.key = key


class InvalidTransition(RideflowError):
    """Requested status change is not legal from the current state / role."""

    status_code = 409

    def __init__(
        self,
        current: Any,
        transition: Any,
        role: Any,
        reason: Optional[str] = None,
    ):
        current_v = getattr(current, "value", current)
        transition_v = getattr(transition, "value", transition)
        role_v = getattr(role, "value", role) or "system"
        message = (
            f"Cannot {transition_v} ride in status {current_v} as {role_v}"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current = current
        self.transition = transition
        self.role = role

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["current_status"] = getattr(self.current, "value", self.current)
        data["transition"] = getattr(self.transition, "value", self.transition)
        data["role"] = getattr(self.role, "value", self.role)
        return data


class UnavailableResource(RideflowError):
    status_code = 409

    def __init__(self, kind: Any, resource_id: int, date: Any, time: str):
        kind_v = getattr(kind, "value", kind)
        super().__init__(
            f"{kind_v} {resource_id} is not available on {date} at {time}"
        )
        self.kind = kind
        self.resource_id = resource_id


class PermissionDenied(RideflowError):
    status_code = 403


class DuplicateRide(RideflowError):
    """A unique ride attribute (ride code) could not be allocated."""

    status_code = 409


# ── Form-level validation failures ────────────────────────────────────


class ValidationFailed(RideflowError):
    status_code = 422


class NoteRequired(ValidationFailed):
    pass


class NoteTooLong(ValidationFailed):
    pass


class ReasonRequired(ValidationFailed):
    pass


class ReasonTooShort(ValidationFailed):
    pass


class ReasonTooLong(ValidationFailed):
    pass


class InvalidMileage(ValidationFailed):
    pass


class InvalidBooking(ValidationFailed):
    pass


class InvalidVehicleNumber(ValidationFailed):
    pass


class InvalidUser(ValidationFailed):
    pass
