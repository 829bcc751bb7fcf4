"""
User and driver management.

Admins create, edit, deactivate and reactivate accounts.  Accounts are
never deleted: rides keep pointing at their requester / driver, so
"delete" is a soft deactivation (``is_active = False``) and a deactivated
user is refused at the API boundary.

Driver bookkeeping
------------------
* a new driver starts ``available``
* deactivating a driver takes them ``offline``; reactivating makes them
  ``available`` again
* a driver with a ride ``in_progress`` cannot be deactivated, and a driver
  holding any ``assigned`` / ``in_progress`` ride cannot change role
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rideflow.domain import statistics
from rideflow.domain.entities import Actor
from rideflow.domain.enums import BOOKED_STATUSES, DriverStatus, RideStatus, Role
from rideflow.domain.errors import InvalidUser, NotFound, PermissionDenied
from rideflow.domain.users import clean_name, normalize_email, normalize_phone
from rideflow.infrastructure.models import UserModel
from rideflow.infrastructure.repositories import RideRepository, UserRepository

logger = logging.getLogger(__name__)


def _require_role(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        allowed = ", ".join(r.value for r in roles)
        raise PermissionDenied(f"This action requires one of: {allowed}")


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.rides = RideRepository(session)

    async def create_user(
        self,
        actor: Actor,
        *,
        name: str,
        email: str,
        role: Role = Role.REQUESTER,
        phone: Optional[str] = None,
    ) -> UserModel:
        _require_role(actor, Role.ADMIN)
        user = UserModel(
            name=clean_name(name),
            email=normalize_email(email),
            phone=normalize_phone(phone),
            role=role,
            driver_status=DriverStatus.AVAILABLE if role is Role.DRIVER else None,
            is_active=True,
        )
        await self._ensure_email_free(user.email)
        try:
            await self.users.create(user)
        except IntegrityError:
            await self.session.rollback()
            raise InvalidUser(f"Email {user.email} is already registered") from None
        await self.session.commit()
        logger.info(
            "User %s (%s) created by user %s", user.id, role.value, actor.user_id
        )
        return user

    async def update_user(
        self,
        actor: Actor,
        user_id: int,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        role: Optional[Role] = None,
    ) -> UserModel:
        """Edit a profile; ``phone=""`` clears the number."""
        _require_role(actor, Role.ADMIN)
        user = await self._get_for_update(user_id)
        try:
            if name is not None:
                user.name = clean_name(name)
            if email is not None:
                new_email = normalize_email(email)
                if new_email != user.email:
                    await self._ensure_email_free(new_email)
                    user.email = new_email
            if phone is not None:
                user.phone = normalize_phone(phone)
            if role is not None and role is not Role(user.role):
                await self._change_role(user, role)
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            raise InvalidUser(f"Email {email} is already registered") from None
        except Exception:
            await self.session.rollback()
            raise
        await self.session.commit()
        logger.info("User %s updated by user %s", user.id, actor.user_id)
        return user

    async def _change_role(self, user: UserModel, role: Role) -> None:
        if Role(user.role) is Role.DRIVER:
            if await self.rides.count_for_driver(user.id, BOOKED_STATUSES):
                raise InvalidUser(
                    "Driver still holds assigned rides; reassign them first"
                )
            user.driver_status = None
        if role is Role.DRIVER:
            user.driver_status = (
                DriverStatus.AVAILABLE if user.is_active else DriverStatus.OFFLINE
            )
        user.role = role

    async def deactivate_user(self, actor: Actor, user_id: int) -> UserModel:
        _require_role(actor, Role.ADMIN)
        if user_id == actor.user_id:
            raise InvalidUser("You cannot deactivate your own account")
        user = await self._get_for_update(user_id)
        if Role(user.role) is Role.DRIVER:
            if await self.rides.count_for_driver(user.id, [RideStatus.IN_PROGRESS]):
                await self.session.rollback()
                raise InvalidUser("Driver is on a ride; complete it first")
            user.driver_status = DriverStatus.OFFLINE
        user.is_active = False
        await self.session.commit()
        logger.info("User %s deactivated by user %s", user.id, actor.user_id)
        return user

    async def reactivate_user(self, actor: Actor, user_id: int) -> UserModel:
        _require_role(actor, Role.ADMIN)
        user = await self._get_for_update(user_id)
        user.is_active = True
        if Role(user.role) is Role.DRIVER:
            user.driver_status = DriverStatus.AVAILABLE
        await self.session.commit()
        logger.info("User %s reactivated by user %s", user.id, actor.user_id)
        return user

    async def get_user(self, actor: Actor, user_id: int) -> UserModel:
        if actor.role is not Role.ADMIN and actor.user_id != user_id:
            raise PermissionDenied("You can only view your own profile")
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user

    async def list_users(
        self, actor: Actor, role: Optional[Role] = None
    ) -> list[UserModel]:
        _require_role(actor, Role.ADMIN)
        return await self.users.list_all(role)

    async def user_counts(self, actor: Actor) -> dict[Role, int]:
        """Active accounts per role; roles without users count 0."""
        _require_role(actor, Role.ADMIN)
        counts = await self.users.count_by_role()
        return {role: counts.get(role, 0) for role in Role}

    async def list_drivers(
        self, actor: Actor, include_inactive: bool = False
    ) -> list[UserModel]:
        _require_role(actor, Role.ADMIN, Role.MANAGER)
        return await self.users.list_drivers(include_inactive=include_inactive)

    async def driver_stats(
        self, actor: Actor, driver_id: int, today: Optional[date] = None
    ) -> statistics.DriverStats:
        if actor.role is Role.DRIVER:
            if actor.user_id != driver_id:
                raise PermissionDenied("Drivers can only view their own statistics")
        else:
            _require_role(actor, Role.ADMIN, Role.MANAGER)
        driver = await self.users.get_by_id(driver_id)
        if driver is None or Role(driver.role) is not Role.DRIVER:
            raise NotFound("Driver", driver_id)
        today = today or date.today()
        rides = await self.rides.list_for_driver(driver_id)
        return statistics.driver_stats(driver_id, rides, today.year, today.month)

    # ── Helpers ───────────────────────────────────────────────────────

    async def _get_for_update(self, user_id: int) -> UserModel:
        user = await self.users.get_for_update(user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user

    async def _ensure_email_free(self, email: str) -> None:
        if await self.users.get_by_email(email) is not None:
            raise InvalidUser(f"Email {email} is already registered")
