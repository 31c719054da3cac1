from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from eventcredits.core.auth import (
    SESSION_COOKIE,
    AdminAuthConfig,
    create_session_token,
    get_admin_auth_config,
    is_admin_request,
    verify_credentials,
)
from eventcredits.schemas.admin import LoginRequest


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/admin/auth")
async def admin_login(body: LoginRequest, response: Response, config: AdminAuthConfig = Depends(get_admin_auth_config)) -> dict:
    if not config.login_enabled:
        logger.warning("admin.login.disabled reason=missing_password_or_secret")
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_credentials(body.username, body.password, config):
        logger.info("admin.login.rejected username=%s", body.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_session_token(config)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=int(config.max_age.total_seconds()),
        httponly=True,
        secure=config.secure_cookie,
        samesite="lax",
        path="/",
    )
    logger.info("admin.login.ok username=%s", config.username)
    return {"success": True}


@router.get("/admin/auth")
async def admin_session(request: Request, config: AdminAuthConfig = Depends(get_admin_auth_config)) -> dict:
    return {"authenticated": is_admin_request(request, config)}


@router.delete("/admin/auth")
async def admin_logout(response: Response) -> dict:
    response.delete_cookie(key=SESSION_COOKIE, path="/")
    return {"success": True}
