"""
OAuth token API routes: code exchange, forced refresh and logout.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from hh_apply.errors import NotFound, RequireReauth
from hh_apply.models import TokenExchangeRequest, UserRequest
from hh_apply.services import AppServices


def create_auth_router(services: AppServices) -> APIRouter:
    """Create auth router bound to the server's services."""
    router = APIRouter(prefix="/api/auth", tags=["Auth"])

    @router.post("/token")
    async def exchange_token(body: TokenExchangeRequest) -> JSONResponse:
        """Exchange an authorization code for tokens and a local user."""
        result = await services.exchange_service.exchange_code(body.code)
        return JSONResponse(content=result.to_response())

    @router.post("/refresh")
    async def refresh_token(body: UserRequest) -> JSONResponse:
        outcome = await services.token_store.force_refresh(body.user_id)
        if outcome is None:
            raise NotFound("No token found for this user")

        if outcome.success:
            return JSONResponse(content={
                "success": True,
                "message": "Token refreshed successfully",
                "expiresIn": outcome.expires_in,
            })
        if outcome.require_reauth:
            raise RequireReauth(
                "Refresh token expired",
                description="You need to re-authenticate with HH.ru",
            )

        content = {"error": outcome.error or "Failed to refresh token"}
        if outcome.description:
            content["description"] = outcome.description
        return JSONResponse(status_code=outcome.status_code or 500, content=content)

    @router.post("/logout")
    async def logout(body: UserRequest) -> JSONResponse:
        removed = await services.token_store.delete_token(body.user_id)
        return JSONResponse(content={"success": True, "removed": removed})

    return router
