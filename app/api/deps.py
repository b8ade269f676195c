"""Shared dependencies: JWT auth and role checks."""
from datetime import datetime, timedelta
from typing import Annotated, Optional

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.config import settings
from app.models.user import UserRole
from app.realtime import AttendanceCoordinator
from app.realtime.stores import AuthenticationError, Identity, JwtIdentityService
from jose import jwt

security = HTTPBearer(auto_error=False)

UNAUTHORIZED_DETAIL = "Unauthorized, token missing or invalid"


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_access_token(subject: str, role: str) -> str:
    expire = datetime.utcnow() + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode = {"sub": subject, "role": role, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


async def get_current_identity(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Identity:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTHORIZED_DETAIL,
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return JwtIdentityService().verify(credentials.credentials)
    except AuthenticationError:
        raise HTTPException(status_code=401, detail=UNAUTHORIZED_DETAIL)


def require_roles(*allowed: UserRole):
    detail = f"Forbidden, {allowed[0].value} access required"

    async def checker(identity: Annotated[Identity, Depends(get_current_identity)]):
        if identity.role not in allowed:
            raise HTTPException(status_code=403, detail=detail)
        return identity

    return checker


def get_coordinator(request: Request) -> AttendanceCoordinator:
    return request.app.state.coordinator


# Type aliases for route injection
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
TeacherOnly = Annotated[Identity, Depends(require_roles(UserRole.TEACHER))]
StudentOnly = Annotated[Identity, Depends(require_roles(UserRole.STUDENT))]
Coordinator = Annotated[AttendanceCoordinator, Depends(get_coordinator)]
