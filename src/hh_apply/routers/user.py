"""
Per-user routes: resumes, local application history and provider negotiations.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from hh_apply.core.applications import require_token
from hh_apply.models import StatusUpdateRequest, application_to_dict
from hh_apply.services import AppServices


def create_user_router(services: AppServices) -> APIRouter:
    router = APIRouter(prefix="/api/user", tags=["User"])

    @router.get("/resumes")
    async def list_resumes(user_id: str = Query(..., alias="userId", min_length=1)) -> JSONResponse:
        token = await require_token(services.token_store, user_id)
        return JSONResponse(content=await services.proxy.list_resumes(token))

    @router.get("/applications")
    async def list_applications(user_id: str = Query(..., alias="userId", min_length=1)) -> JSONResponse:
        records = await services.applications.list_for_user(user_id)
        stats = await services.applications.stats(user_id)
        return JSONResponse(content={
            "applications": [application_to_dict(record) for record in records],
            "stats": stats,
        })

    @router.patch("/applications/{application_id}")
    async def update_application_status(
        application_id: str,
        body: StatusUpdateRequest,
        user_id: str = Query(..., alias="userId", min_length=1),
    ) -> JSONResponse:
        record = await services.applications.update_status(application_id, body.status, user_id=user_id)
        return JSONResponse(content=application_to_dict(record))

    @router.get("/negotiations")
    async def list_negotiations(user_id: str = Query(..., alias="userId", min_length=1)) -> JSONResponse:
        """Applications as hh.ru sees them."""
        token = await require_token(services.token_store, user_id)
        return JSONResponse(content=await services.proxy.list_negotiations(token))

    return router
