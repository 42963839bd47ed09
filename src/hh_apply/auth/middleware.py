"""
Authentication middleware for FastAPI.
"""

import uuid
from typing import Callable

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .auth_manager import AuthManager


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Rejects requests without the configured API key before they reach a router."""

    def __init__(self, app: Callable, auth_manager: AuthManager):
        super().__init__(app)
        self.auth_manager = auth_manager

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())

        try:
            self.auth_manager.authenticate_request(
                request.headers.get("x-api-key"),
                request.headers.get("authorization"),
                request.url.path,
                request_id,
            )
        except HTTPException as e:
            return JSONResponse(
                content={"error": "Unauthorized", "description": e.detail},
                status_code=e.status_code,
            )

        return await call_next(request)
