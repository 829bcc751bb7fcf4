"""
FastAPI application factory.

* Registers routes for rides, vehicles, users, reports and admin.
* Maps workflow errors to JSON ``{"detail", "code"}`` responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from rideflow.api.middleware import limiter
from rideflow.api.routes import admin, reports, rides, users, vehicles
from rideflow.domain.errors import RideflowError
from rideflow.infrastructure.locks import LockNotAcquired

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def _rideflow_error_handler(request: Request, exc: RideflowError):
    if exc.status_code >= 409:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _lock_error_handler(request: Request, exc: LockNotAcquired):
    logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=409,
        content={"detail": "Operation already running", "code": "LockNotAcquired"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Rideflow Corporate Ride API",
        description=(
            "Books corporate rides, routes them through manager / admin "
            "approval, assigns drivers and vehicles without double-booking "
            "and reconciles odometer mileage when rides complete."
        ),
        version="1.0.0",
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Workflow errors
    app.add_exception_handler(RideflowError, _rideflow_error_handler)
    app.add_exception_handler(LockNotAcquired, _lock_error_handler)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(vehicles.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(reports.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
