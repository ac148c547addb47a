import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import status

from app.api.v1.email.service import send_email_type
from app.api.v1.notifications.service import send_password_change_notification
from app.auth.schemas import (
    AdminInfo,
    CurrentUser,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    OAuthUrlResponse,
    ResetPasswordRequest,
    SchoolInfo,
)
from app.auth.security import create_access_token, generate_verification_code
from app.core.enums import EmailType
from app.core.exceptions import RemoteCallError, ServiceError
from app.core.normalize import AdminProfile, normalize_admin
from app.core.services import AppServices
from app.remote.base import RemoteStore, eq

logger = logging.getLogger(__name__)

ADMIN_TABLE = "schooladmin"
SCHOOLS_TABLE = "schools"
VERIFICATION_CODES_TABLE = "verification_codes"

SUPPORTED_OAUTH_PROVIDERS = ("google", "azure", "github", "apple")
DEFAULT_STAGE = "senior secondary"
UNKNOWN_EMAIL_MESSAGE = "If your email is registered, you will receive a code."


def _admin_info(profile: AdminProfile) -> AdminInfo:
    return AdminInfo(
        id=profile.id,
        name=profile.name,
        email=profile.email,
        role=profile.role,
        gender=profile.gender,
        school_id=profile.school_id,
        school_name=profile.school_name,
    )


async def load_admin(remote: RemoteStore, admin_id: str) -> Optional[AdminProfile]:
    result = await remote.select(ADMIN_TABLE, [eq("id", admin_id)], limit=1)
    row = result.unwrap("Failed to load admin profile") and result.first()
    return normalize_admin(row) if row else None


async def find_admin_by_email(remote: RemoteStore, email: str) -> Optional[AdminProfile]:
    """Admin rows carry the address in either ``email`` or ``emailaddress``."""
    for column in ("email", "emailaddress"):
        result = await remote.select(ADMIN_TABLE, [eq(column, email)], limit=1)
        row = result.unwrap("Failed to look up admin") and result.first()
        if row:
            return normalize_admin(row)
    return None


async def login_admin(services: AppServices, payload: LoginRequest) -> LoginResponse:
    signed_in = await services.auth.sign_in_with_password(payload.email, payload.password)
    if signed_in.error:
        if signed_in.error.is_network:
            raise RemoteCallError(signed_in.error, "Sign-in failed")
        raise ServiceError("Invalid email or password", status.HTTP_401_UNAUTHORIZED)

    user = signed_in.data.get("user") or {}
    profile = await load_admin(services.remote, user.get("id", ""))
    if profile is None:
        # Authenticated but not an admin of any school.
        raise ServiceError("No school admin profile found for this account", status.HTTP_403_FORBIDDEN)
    if not profile.email:
        profile.email = payload.email

    if not profile.school_name and profile.school_id:
        school = await services.remote.select(SCHOOLS_TABLE, [eq("id", profile.school_id)], limit=1)
        if school.error:
            logger.warning("Could not load school %s: %s", profile.school_id, school.error.message)
        elif school.first():
            profile.school_name = school.first().get("name") or school.first().get("schoolName")

    await services.session.begin(profile, remember_email=payload.remember_me)

    token = create_access_token(
        subject={
            "sub": profile.id,
            "admin_id": profile.id,
            "school_id": profile.school_id,
            "role": profile.role,
            "email": profile.email,
            "name": profile.name,
            "school_name": profile.school_name,
        }
    )
    logger.info("Admin %s signed in (school %s)", profile.id, profile.school_id)
    return LoginResponse(
        access_token=token,
        admin=_admin_info(profile),
        first_login=not profile.has_logged_in_before,
        issued_at=datetime.now(timezone.utc),
    )


async def logout_admin(services: AppServices) -> MessageResponse:
    await services.session.end()
    return MessageResponse(message="Signed out")


def oauth_authorize_url(services: AppServices, provider: str, redirect_to: Optional[str] = None) -> OAuthUrlResponse:
    provider = provider.lower()
    if provider not in SUPPORTED_OAUTH_PROVIDERS:
        raise ServiceError(f"Unsupported OAuth provider: {provider}", status.HTTP_400_BAD_REQUEST)
    return OAuthUrlResponse(provider=provider, url=services.auth.oauth_authorize_url(provider, redirect_to))


async def get_current_school_info(services: AppServices, current_user: CurrentUser) -> MeResponse:
    profile = await load_admin(services.remote, current_user.admin_id)
    if profile is None:
        raise ServiceError("Admin not found", status.HTTP_404_NOT_FOUND)

    school_id = profile.school_id or profile.id
    stage = DEFAULT_STAGE
    school_name = profile.school_name
    school = await services.remote.select(SCHOOLS_TABLE, [eq("id", school_id)], limit=1)
    if school.error:
        logger.warning("Could not load school %s: %s", school_id, school.error.message)
    elif school.first():
        row = school.first()
        stage = row.get("stage") or DEFAULT_STAGE
        school_name = school_name or row.get("name") or row.get("schoolName")

    return MeResponse(
        admin=_admin_info(profile),
        school=SchoolInfo(school_id=school_id, school_name=school_name or "Unknown School", stage=stage),
    )


async def request_password_reset(services: AppServices, email: Optional[str]) -> MessageResponse:
    if not email:
        raise ServiceError("Email is required", status.HTTP_400_BAD_REQUEST)

    admin = await find_admin_by_email(services.remote, email)
    if admin is None:
        # Same answer either way, so the endpoint does not reveal who is registered.
        logger.info("Forgot password requested for unknown email %s", email)
        return MessageResponse(message=UNKNOWN_EMAIL_MESSAGE)

    code = generate_verification_code()
    expires_at = services.clock() + services.reset_code_ttl
    stored = await services.remote.upsert(
        VERIFICATION_CODES_TABLE,
        {"email": email, "code": code, "expires_at": expires_at.isoformat()},
        on_conflict="email",
    )
    if stored.error:
        logger.error("Error storing verification code for %s: %s", email, stored.error.message)
        raise ServiceError("Failed to generate verification code", status.HTTP_500_INTERNAL_SERVER_ERROR)

    if services.email.simulated:
        logger.info("Verification code for %s: %s", email, code)
    sent = await send_email_type(services.email, EmailType.PASSWORD_RESET_CODE, email, name=admin.name, code=code)
    if not sent.success:
        raise ServiceError("Failed to send verification code", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return MessageResponse(message="Verification code sent")


def _parse_expiry(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def reset_password(services: AppServices, payload: ResetPasswordRequest) -> MessageResponse:
    if not payload.email or not payload.otp or not payload.newPassword:
        raise ServiceError("Email, OTP, and new password are required", status.HTTP_400_BAD_REQUEST)

    found = await services.remote.select(
        VERIFICATION_CODES_TABLE,
        [eq("email", payload.email), eq("code", payload.otp)],
        limit=1,
    )
    verification = found.first() if found.ok else None
    if not verification:
        raise ServiceError("Invalid or expired verification code", status.HTTP_400_BAD_REQUEST)

    expires_at = _parse_expiry(verification.get("expires_at"))
    if expires_at is None or expires_at < services.clock():
        raise ServiceError("Verification code has expired", status.HTTP_400_BAD_REQUEST)

    admin = await find_admin_by_email(services.remote, payload.email)
    if admin is None:
        raise ServiceError("User not found", status.HTTP_404_NOT_FOUND)

    updated = await services.auth.update_user_by_id(admin.id, {"password": payload.newPassword})
    if updated.error:
        logger.error("Password update for %s failed: %s", admin.id, updated.error.message)
        raise ServiceError("Failed to update password", status.HTTP_500_INTERNAL_SERVER_ERROR)

    flag = await services.remote.update(ADMIN_TABLE, {"hasloggedinbefore": True}, [eq("id", admin.id)])
    if flag.error:
        logger.warning("Could not clear first-login flag for %s: %s", admin.id, flag.error.message)

    used = await services.remote.delete(VERIFICATION_CODES_TABLE, [eq("email", payload.email)])
    if used.error:
        logger.warning("Could not delete used verification code for %s: %s", payload.email, used.error.message)

    try:
        await send_password_change_notification(
            services.documents, services.email, admin.id, admin.name, admin.email or payload.email
        )
    except ServiceError as exc:
        logger.warning("Password change notification for %s failed: %s", admin.id, exc.message)

    return MessageResponse(message="Password updated successfully")


async def complete_first_login(
    services: AppServices, current_user: CurrentUser, new_password: Optional[str] = None
) -> MessageResponse:
    """Optionally set a new password, then clear the first-login flag remotely and locally."""
    if new_password:
        updated = await services.auth.update_user_by_id(current_user.admin_id, {"password": new_password})
        if updated.error:
            raise RemoteCallError(updated.error, "Failed to update password")

    flag = await services.remote.update(ADMIN_TABLE, {"hasloggedinbefore": True}, [eq("id", current_user.admin_id)])
    flag.unwrap("Failed to update admin profile")
    await services.session.mark_logged_in_before()
    return MessageResponse(message="Password updated successfully" if new_password else "Welcome aboard")
