from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi import status as http_status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from app.auth.dependencies import get_current_user
from app.auth.schemas import (
    CurrentUser,
    FirstLoginRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    OAuthUrlResponse,
    ResetPasswordRequest,
)
from app.auth import services as auth_services
from app.core.exceptions import ServiceError
from app.core.services import AppServices, get_services

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

# Password-reset endpoints keep the paths the web client already calls.
password_router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    services: AppServices = Depends(get_services),
) -> LoginResponse:
    try:
        return await auth_services.login_admin(services, payload)
    except ServiceError as e:
        if e.status_code == http_status.HTTP_500_INTERNAL_SERVER_ERROR:
            raise HTTPException(status_code=e.status_code, detail="Internal server error")
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/login-oauth")
async def login_oauth(
    form_data: OAuth2PasswordRequestForm = Depends(),
    services: AppServices = Depends(get_services),
):
    payload = LoginRequest(
        email=form_data.username.strip(),
        password=form_data.password,
    )
    try:
        result = await auth_services.login_admin(services, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {
        "access_token": result.access_token,
        "token_type": "bearer",
    }


@router.post("/logout", response_model=MessageResponse)
async def logout(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> MessageResponse:
    try:
        return await auth_services.logout_admin(services)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/session", response_model=Dict[str, Any])
async def session_flags(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    """Locally stored session flags (adminId, adminName, rememberedEmail, ...)."""
    return await services.session.current()


@router.post("/first-login", response_model=MessageResponse)
async def first_login(
    payload: FirstLoginRequest,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> MessageResponse:
    try:
        return await auth_services.complete_first_login(services, current_user, payload.new_password)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/oauth/{provider}", response_model=OAuthUrlResponse)
async def oauth_url(
    provider: str,
    redirect_to: Optional[str] = Query(None),
    services: AppServices = Depends(get_services),
) -> OAuthUrlResponse:
    try:
        return auth_services.oauth_authorize_url(services, provider, redirect_to)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/me", response_model=MeResponse)
async def me(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> MeResponse:
    try:
        return await auth_services.get_current_school_info(services, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@password_router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: ForgotPasswordRequest,
    services: AppServices = Depends(get_services),
):
    try:
        return await auth_services.request_password_reset(services, payload.email)
    except ServiceError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})


@password_router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: ResetPasswordRequest,
    services: AppServices = Depends(get_services),
):
    try:
        return await auth_services.reset_password(services, payload)
    except ServiceError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
