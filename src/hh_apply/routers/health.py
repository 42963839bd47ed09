"""
Health check routes.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from hh_apply.services import AppServices
from hh_apply.utils import LogEvent, LogRecord, error


def create_health_router(services: AppServices, app_name: str, app_version: str) -> APIRouter:
    router = APIRouter(tags=["Health"])

    @router.get("/", include_in_schema=False)
    async def root_health_check() -> JSONResponse:
        """Basic service information."""
        return JSONResponse(content={
            "service": app_name,
            "version": app_version,
            "status": "healthy",
        })

    @router.get("/health")
    async def health_check() -> JSONResponse:
        """Container health check; verifies the database answers."""
        try:
            async with services.db.session() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            error(LogRecord(
                event=LogEvent.REQUEST_FAILURE.value,
                message="Health check failed: database unavailable",
            ), exc=e)
            return JSONResponse(
                content={"status": "unhealthy", "message": "Database unavailable"},
                status_code=503,
            )
        return JSONResponse(content={"status": "healthy", "database": services.db.dialect})

    return router
