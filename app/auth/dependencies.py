from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from app.auth.schemas import CurrentUser
from app.core.config import settings


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
) -> CurrentUser:
    """Resolve the signed-in admin from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise credentials_exception

    admin_id = payload.get("admin_id") or payload.get("sub")
    school_id = payload.get("school_id")
    role = payload.get("role")
    if not admin_id or not school_id or not role:
        raise credentials_exception

    return CurrentUser(
        admin_id=admin_id,
        school_id=school_id,
        role=role,
        email=payload.get("email"),
        name=payload.get("name"),
        school_name=payload.get("school_name"),
    )
