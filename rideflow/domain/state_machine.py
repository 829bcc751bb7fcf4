"""
Ride State Machine
==================

Owns the legal-transition table.  Each ``Transition`` names the role allowed
to fire it, the statuses it may be fired from and the statuses it may land
in.  Transitions with no role are system transitions (routing a new ride,
forwarding a manager-approved ride to the admin gate) and can only be fired
with ``role=None``.

``next_status`` is pure: it validates and returns the target without
touching the ride, so callers can run their own preconditions before
writing.  ``fire`` validates and writes ``status`` in one step.

::

    pending ──route──► awaiting_manager ──manager_approve──► manager_approved
       │                     │                                     │
       │                     └─manager_reject──► rejected    forward_to_admin
       └──────route──────────────────────────► awaiting_admin ◄────┘
                                                  │      └─admin_reject──► rejected
                                             admin_approve
                                                  ▼
                       approved ──assign──► assigned ──start──► in_progress
                                           (reassign)                │
                                                                 complete
                                                                     ▼
                                                                 completed

    cancel (requester): pending | awaiting_manager | awaiting_admin ──► cancelled
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .enums import RideStatus, Role, Transition
from .errors import InvalidTransition

logger = logging.getLogger(__name__)

S = RideStatus


@dataclass(frozen=True)
class TransitionRule:
    role: Optional[Role]  # None => system
    sources: frozenset[RideStatus]
    targets: frozenset[RideStatus]


def _rule(role, sources, targets) -> TransitionRule:
    return TransitionRule(role, frozenset(sources), frozenset(targets))


RIDE_TRANSITIONS: dict[Transition, TransitionRule] = {
    Transition.ROUTE: _rule(
        None, {S.PENDING}, {S.AWAITING_MANAGER, S.AWAITING_ADMIN}
    ),
    Transition.MANAGER_APPROVE: _rule(
        Role.MANAGER, {S.AWAITING_MANAGER}, {S.MANAGER_APPROVED}
    ),
    Transition.FORWARD_TO_ADMIN: _rule(
        None, {S.MANAGER_APPROVED}, {S.AWAITING_ADMIN}
    ),
    Transition.MANAGER_REJECT: _rule(
        Role.MANAGER, {S.AWAITING_MANAGER}, {S.REJECTED}
    ),
    Transition.ADMIN_APPROVE: _rule(Role.ADMIN, {S.AWAITING_ADMIN}, {S.APPROVED}),
    Transition.ADMIN_REJECT: _rule(Role.ADMIN, {S.AWAITING_ADMIN}, {S.REJECTED}),
    Transition.ASSIGN: _rule(Role.ADMIN, {S.APPROVED}, {S.ASSIGNED}),
    Transition.REASSIGN: _rule(Role.ADMIN, {S.ASSIGNED}, {S.ASSIGNED}),
    Transition.START: _rule(Role.DRIVER, {S.ASSIGNED}, {S.IN_PROGRESS}),
    Transition.COMPLETE: _rule(Role.DRIVER, {S.IN_PROGRESS}, {S.COMPLETED}),
    Transition.CANCEL: _rule(
        Role.REQUESTER,
        {S.PENDING, S.AWAITING_MANAGER, S.AWAITING_ADMIN},
        {S.CANCELLED},
    ),
}


def allowed_transitions(
    status: RideStatus, role: Optional[Role]
) -> list[Transition]:
    """Transitions *role* may fire on a ride currently in *status*."""
    return [
        t
        for t, rule in RIDE_TRANSITIONS.items()
        if rule.role == role and status in rule.sources
    ]


def next_status(
    current: RideStatus,
    transition: Transition,
    role: Optional[Role],
    target: Optional[RideStatus] = None,
) -> RideStatus:
    """Validate *transition* and return the status it leads to."""
    rule = RIDE_TRANSITIONS[transition]
    if rule.role != role:
        raise InvalidTransition(
            current, transition, role, reason="actor role not permitted"
        )
    if current not in rule.sources:
        raise InvalidTransition(current, transition, role)
    if target is None:
        if len(rule.targets) != 1:
            raise InvalidTransition(
                current, transition, role, reason="target status required"
            )
        (target,) = rule.targets
    elif target not in rule.targets:
        raise InvalidTransition(
            current, transition, role, reason=f"cannot land in {target.value}"
        )
    return target


def fire(
    ride,
    transition: Transition,
    role: Optional[Role],
    target: Optional[RideStatus] = None,
) -> RideStatus:
    """Validate *transition* against ``ride.status`` and apply it."""
    current = RideStatus(ride.status)
    new_status = next_status(current, transition, role, target)
    ride.status = new_status
    logger.debug(
        "Ride %s: %s -> %s (%s)",
        ride.ride_code or ride.id,
        current.value,
        new_status.value,
        transition.value,
    )
    return new_status
