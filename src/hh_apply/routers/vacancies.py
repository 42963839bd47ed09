"""
Vacancy search, detail and apply routes.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from hh_apply.core.applications import require_token
from hh_apply.models import ApplyRequest, SearchRequest, application_to_dict
from hh_apply.services import AppServices


def create_vacancies_router(services: AppServices) -> APIRouter:
    router = APIRouter(prefix="/api/vacancies", tags=["Vacancies"])

    @router.post("/search")
    async def search_vacancies(body: SearchRequest) -> JSONResponse:
        token = await require_token(services.token_store, body.user_id)
        result = await services.proxy.search_vacancies(token, body.filter)
        return JSONResponse(content={
            "items": result["items"],
            "found": result["found"],
            "pages": result["pages"],
            "filteredCount": result["filtered_count"],
        })

    @router.post("/apply")
    async def apply_to_vacancy(body: ApplyRequest) -> JSONResponse:
        """Apply once; a repeat for the same vacancy returns the stored record."""
        result = await services.application_service.apply(
            body.user_id, body.vacancy_id, body.resume_id, body.cover_letter,
        )
        content = {
            "success": True,
            "alreadyApplied": result.already_applied,
            "application": application_to_dict(result.application),
        }
        if result.redirect_url:
            content["redirectUrl"] = result.redirect_url
        return JSONResponse(content=content)

    @router.get("/{vacancy_id}")
    async def get_vacancy(vacancy_id: str, user_id: str = Query(..., alias="userId", min_length=1)) -> JSONResponse:
        token = await require_token(services.token_store, user_id)
        return JSONResponse(content=await services.proxy.get_vacancy(token, vacancy_id))

    return router
