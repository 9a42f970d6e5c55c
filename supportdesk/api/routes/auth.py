from __future__ import annotations

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from supportdesk.dependencies.auth import AppSettings, verify_admin_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class AdminLoginRequest(BaseModel):
    password: str | None = None


@router.post("/admin", summary="Check the shared staff password")
async def authenticate_admin(payload: AdminLoginRequest, settings: AppSettings) -> JSONResponse:
    if verify_admin_password(payload.password, settings):
        return JSONResponse(status_code=status.HTTP_200_OK, content={"success": True})
    logger.warning("Rejected staff login attempt")
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"success": False, "error": "Invalid password"},
    )
