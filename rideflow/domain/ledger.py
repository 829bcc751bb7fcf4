"""
Approval Ledger
===============

Records manager / admin decisions on a ride and drives the matching state
transitions.

* The stage is taken from the actor's role (manager -> manager stage,
  admin -> admin stage); any other role is refused.
* A stage is resolved once.  Repeating approve / reject on a resolved stage
  fails with ``InvalidTransition``.
* Manager approval never skips the admin gate: the ride passes through
  ``manager_approved`` and is forwarded to ``awaiting_admin`` in the same
  write.
* Admin approval of a long-distance ride requires a note.
* Rejection always requires a reason of at least ``reason_min_length``
  characters after trimming.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from rideflow.config import settings

from .classifier import is_long_distance
from .entities import Actor, ApprovalRecord, approval_record, write_approval
from .enums import ApprovalStage, Decision, RideStatus, Role, Transition
from .errors import (
    InvalidTransition,
    NoteRequired,
    NoteTooLong,
    ReasonRequired,
    ReasonTooLong,
    ReasonTooShort,
)
from .state_machine import fire, next_status

_STAGES = {Role.MANAGER: ApprovalStage.MANAGER, Role.ADMIN: ApprovalStage.ADMIN}

_APPROVE = {
    ApprovalStage.MANAGER: Transition.MANAGER_APPROVE,
    ApprovalStage.ADMIN: Transition.ADMIN_APPROVE,
}
_REJECT = {
    ApprovalStage.MANAGER: Transition.MANAGER_REJECT,
    ApprovalStage.ADMIN: Transition.ADMIN_REJECT,
}


def clean_note(note: Optional[str], required: bool) -> Optional[str]:
    text = (note or "").strip()
    if not text:
        if required:
            raise NoteRequired(
                "An approval note is required for long-distance rides "
                f"(> {settings.manager_approval_threshold_km:g} km)"
            )
        return None
    if len(text) > settings.note_max_length:
        raise NoteTooLong(
            f"Approval note cannot exceed {settings.note_max_length} characters"
        )
    return text


def clean_reason(reason: Optional[str]) -> str:
    text = (reason or "").strip()
    if not text:
        raise ReasonRequired("A rejection reason is required")
    if len(text) < settings.reason_min_length:
        raise ReasonTooShort(
            "Please provide a more detailed reason "
            f"(at least {settings.reason_min_length} characters)"
        )
    if len(text) > settings.reason_max_length:
        raise ReasonTooLong(
            f"Rejection reason cannot exceed {settings.reason_max_length} characters"
        )
    return text


def _stage_for(
    ride, actor: Actor, verbs: dict, expected: Optional[ApprovalStage]
) -> ApprovalStage:
    stage = _STAGES.get(actor.role)
    if stage is None or (expected is not None and stage is not expected):
        transition = verbs[expected or ApprovalStage.ADMIN]
        raise InvalidTransition(
            ride.status, transition, actor.role, reason="actor role not permitted"
        )
    return stage


def _open_stage(ride, stage: ApprovalStage, transition: Transition, role: Role):
    target = next_status(RideStatus(ride.status), transition, role)
    if approval_record(ride, stage) is not None:
        raise InvalidTransition(
            ride.status, transition, role, reason=f"{stage.value} stage already resolved"
        )
    return target


def approve(
    ride,
    actor: Actor,
    note: Optional[str] = None,
    at: Optional[datetime] = None,
    stage: Optional[ApprovalStage] = None,
):
    stage = _stage_for(ride, actor, _APPROVE, stage)
    target = _open_stage(ride, stage, _APPROVE[stage], actor.role)

    required = stage is ApprovalStage.ADMIN and is_long_distance(
        ride.calculated_distance
    )
    comment = clean_note(note, required)

    write_approval(
        ride,
        ApprovalRecord(
            stage=stage,
            decision=Decision.APPROVED,
            actor_id=actor.user_id,
            decided_at=at or datetime.now(timezone.utc),
            comment=comment,
        ),
    )
    ride.status = target
    if stage is ApprovalStage.MANAGER:
        fire(ride, Transition.FORWARD_TO_ADMIN, None)
    return ride


def reject(
    ride,
    actor: Actor,
    reason: Optional[str],
    at: Optional[datetime] = None,
    stage: Optional[ApprovalStage] = None,
):
    stage = _stage_for(ride, actor, _REJECT, stage)
    target = _open_stage(ride, stage, _REJECT[stage], actor.role)
    comment = clean_reason(reason)

    write_approval(
        ride,
        ApprovalRecord(
            stage=stage,
            decision=Decision.REJECTED,
            actor_id=actor.user_id,
            decided_at=at or datetime.now(timezone.utc),
            comment=comment,
        ),
    )
    ride.status = target
    return ride
