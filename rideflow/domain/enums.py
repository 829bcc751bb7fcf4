"""Domain enumerations."""

import enum


class RideStatus(str, enum.Enum):
    PENDING = "pending"
    AWAITING_MANAGER = "awaiting_manager"
    MANAGER_APPROVED = "manager_approved"
    AWAITING_ADMIN = "awaiting_admin"
    APPROVED = "approved"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {RideStatus.COMPLETED, RideStatus.REJECTED, RideStatus.CANCELLED}
)

# A driver / vehicle bound to a ride in one of these is busy for that slot
BOOKED_STATUSES = frozenset({RideStatus.ASSIGNED, RideStatus.IN_PROGRESS})

# Still waiting on an approval gate (counts against the per-requester cap)
AWAITING_APPROVAL_STATUSES = frozenset(
    {
        RideStatus.PENDING,
        RideStatus.AWAITING_MANAGER,
        RideStatus.MANAGER_APPROVED,
        RideStatus.AWAITING_ADMIN,
    }
)


class RideType(str, enum.Enum):
    ONE_WAY = "one_way"
    RETURN = "return"


class Role(str, enum.Enum):
    REQUESTER = "requester"
    DRIVER = "driver"
    ADMIN = "admin"
    MANAGER = "manager"


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    MAINTENANCE = "maintenance"


class DriverStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class VehicleType(str, enum.Enum):
    CAR = "car"
    VAN = "van"
    CAB = "cab"
    CREW_CAB = "crew_cab"


class ApprovalStage(str, enum.Enum):
    MANAGER = "manager"
    ADMIN = "admin"


class Decision(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class Transition(str, enum.Enum):
    ROUTE = "route"
    MANAGER_APPROVE = "manager_approve"
    FORWARD_TO_ADMIN = "forward_to_admin"
    MANAGER_REJECT = "manager_reject"
    ADMIN_APPROVE = "admin_approve"
    ADMIN_REJECT = "admin_reject"
    ASSIGN = "assign"
    REASSIGN = "reassign"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


class ResourceKind(str, enum.Enum):
    DRIVER = "driver"
    VEHICLE = "vehicle"


class NotificationEvent(str, enum.Enum):
    RIDE_MANAGER_APPROVED = "ride_manager_approved"
    RIDE_APPROVED = "ride_approved"
    RIDE_REJECTED = "ride_rejected"
    RIDE_ASSIGNED = "ride_assigned"
    RIDE_REASSIGNED = "ride_reassigned"
    RIDE_UNASSIGNED = "ride_unassigned"
    RIDE_COMPLETED = "ride_completed"
