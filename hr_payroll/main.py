"""HR Payroll — FastAPI Application Factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from hr_payroll import __version__
from hr_payroll.attendance.router import router as attendance_router
from hr_payroll.common.exceptions import register_exception_handlers
from hr_payroll.common.rate_limit import limiter
from hr_payroll.config import configure_logging, settings
from hr_payroll.database import Database, create_database
from hr_payroll.leave.router import router as leave_router
from hr_payroll.me.router import router as me_router
from hr_payroll.salary.router import router as payroll_router
from hr_payroll.shifts.router import router as shifts_router

logger = logging.getLogger(__name__)


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``database`` lets tests hand in an already-connected handle; the app
    then leaves its lifecycle to the caller.
    """
    owns_database = database is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        db = app.state.database
        if owns_database:
            await db.connect()
        logger.info(
            "HR Payroll %s started (%s); capabilities=%s",
            __version__, settings.ENVIRONMENT, db.capabilities,
        )
        yield
        if owns_database:
            await db.close()

    app = FastAPI(
        title="HR Payroll",
        description="Monthly payroll computation: attendance, leave, salary snapshots",
        version=__version__,
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )
    app.state.database = database or create_database(
        settings.DATABASE_URL, environment=settings.ENVIRONMENT,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check(request: Request):
        db: Database = request.app.state.database
        return {
            "status": "healthy" if db.is_connected else "starting",
            "version": __version__,
            "environment": settings.ENVIRONMENT,
            "capabilities": {
                "overtime_tracking": db.capabilities.overtime_tracking,
                "regularizations": db.capabilities.regularizations,
                "salary_holds": db.capabilities.salary_holds,
            },
        }

    # Register routers
    app.include_router(shifts_router, prefix="/api/v1/shifts", tags=["shifts"])
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["attendance"])
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(payroll_router, prefix="/api/v1/payroll", tags=["payroll"])
    app.include_router(me_router, prefix="/api/v1/me", tags=["me"])

    return app


app = create_app()
