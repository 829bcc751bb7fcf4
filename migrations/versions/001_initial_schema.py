"""Initial schema: users, vehicles and rides with approval / assignment columns.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _status(*values: str, length: int = 20) -> sa.Enum:
    # VARCHAR + CHECK, matching the ORM's non-native enums
    return sa.Enum(*values, native_enum=False, length=length)


RIDE_STATUSES = (
    "pending",
    "awaiting_manager",
    "manager_approved",
    "awaiting_admin",
    "approved",
    "assigned",
    "in_progress",
    "completed",
    "rejected",
    "cancelled",
)


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column(
            "role",
            _status("requester", "driver", "admin", "manager"),
            nullable=False,
        ),
        sa.Column(
            "driver_status",
            _status("available", "busy", "offline"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_users_role", "users", ["role"])

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("vehicle_number", sa.String(8), unique=True, nullable=False),
        sa.Column("vehicle_type", sa.String(30), nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False, server_default="4"),
        sa.Column(
            "status",
            _status("available", "busy", "maintenance"),
            nullable=False,
            server_default="available",
        ),
        sa.Column(
            "total_mileage", sa.Numeric(12, 2), nullable=False, server_default="0"
        ),
        sa.Column(
            "monthly_mileage", sa.Numeric(12, 2), nullable=False, server_default="0"
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_vehicles_status", "vehicles", ["status"])

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("ride_code", sa.String(20), unique=True, nullable=False),
        sa.Column(
            "requester_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("ride_type", _status("one_way", "return"), nullable=False),
        sa.Column("pickup_address", sa.String(500), nullable=False),
        sa.Column("pickup_lat", sa.Float, nullable=False),
        sa.Column("pickup_lng", sa.Float, nullable=False),
        sa.Column("destination_address", sa.String(500), nullable=False),
        sa.Column("destination_lat", sa.Float, nullable=False),
        sa.Column("destination_lng", sa.Float, nullable=False),
        sa.Column("scheduled_date", sa.Date, nullable=False),
        sa.Column("scheduled_time", sa.String(5), nullable=False),
        sa.Column("calculated_distance", sa.Float, nullable=False),
        sa.Column("required_vehicle_type", sa.String(30), nullable=True),
        sa.Column(
            "status",
            _status(*RIDE_STATUSES),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "assigned_driver_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column(
            "assigned_vehicle_id",
            sa.Integer,
            sa.ForeignKey("vehicles.id"),
            nullable=True,
        ),
        sa.Column("start_mileage", sa.Numeric(12, 2), nullable=True),
        sa.Column("end_mileage", sa.Numeric(12, 2), nullable=True),
        sa.Column("actual_distance", sa.Numeric(12, 2), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manager_decision", _status("approved", "rejected"), nullable=True),
        sa.Column(
            "manager_actor_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("manager_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manager_comment", sa.String(500), nullable=True),
        sa.Column("admin_decision", _status("approved", "rejected"), nullable=True),
        sa.Column(
            "admin_actor_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("admin_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_comment", sa.String(500), nullable=True),
        sa.Column("idempotency_key", sa.String(64), unique=True, nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "(assigned_driver_id IS NULL) = (assigned_vehicle_id IS NULL)",
            name="ck_rides_assignment_pair",
        ),
        sa.CheckConstraint(
            "start_mileage IS NULL OR end_mileage IS NULL "
            "OR end_mileage >= start_mileage",
            name="ck_rides_mileage_monotonic",
        ),
    )
    op.create_index(
        "idx_rides_slot", "rides", ["scheduled_date", "scheduled_time", "status"]
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_requester", "rides", ["requester_id"])
    op.create_index("idx_rides_driver", "rides", ["assigned_driver_id"])
    op.create_index("idx_rides_idempotency", "rides", ["idempotency_key"])


def downgrade() -> None:
    op.drop_table("rides")
    op.drop_table("vehicles")
    op.drop_table("users")
