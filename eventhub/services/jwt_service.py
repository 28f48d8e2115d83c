from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models import User

ACCEPTED_SCHEMES = ("jwt", "bearer")


@dataclass
class ApiPrincipal:
    """The authenticated caller of a member API route.

    ``member_id`` always comes from the token. ``user`` is the loaded member
    the route acts on: the caller for their own routes, the target member
    for read-only access to someone else, or ``None`` when the route only
    needs the token payload.
    """
    member_id: int
    user: Optional[User] = None


def _unauthorized(detail: str = "401 Unauthorized: JWT is not correct") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "JWT"},
    )


class JWTService:
    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed JWT access token"""
        to_encode = data.copy()

        if expires_delta:
            expire = datetime.now(timezone.utc) + expires_delta
        else:
            expire = datetime.now(timezone.utc) + \
                timedelta(minutes=settings.jwt_expiry_minutes)

        to_encode.update({"exp": expire})
        return jwt.encode(
            to_encode,
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm
        )

    @staticmethod
    def create_member_token(member_id: int, expires_delta: Optional[timedelta] = None) -> str:
        """Token as handed to clients, prefixed with the auth scheme."""
        token = JWTService.create_access_token({"id": str(member_id)}, expires_delta)
        return f"{settings.token_scheme} {token}"

    @staticmethod
    def verify_token(token: str) -> dict:
        try:
            return jwt.decode(
                token,
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm]
            )
        except JWTError:
            raise _unauthorized()

    @staticmethod
    def token_from_request(request: Request) -> Optional[str]:
        header = request.headers.get("Authorization")
        if not header:
            return None
        parts = header.split(" ")
        if len(parts) != 2 or parts[0].lower() not in ACCEPTED_SCHEMES:
            return None
        return parts[1]

    @staticmethod
    def member_id_from_payload(payload: dict) -> int:
        try:
            return int(payload.get("id"))
        except (TypeError, ValueError):
            raise _unauthorized()

    @staticmethod
    async def get_api_member(
        request: Request,
        db: AsyncSession = Depends(get_db),
    ) -> ApiPrincipal:
        """Authenticate the bearer token and decide who the route acts on."""
        token = JWTService.token_from_request(request)
        if not token:
            raise _unauthorized()
        member_id = JWTService.member_id_from_payload(JWTService.verify_token(token))

        path_member = request.path_params.get("member_id")
        if path_member is None:
            return ApiPrincipal(member_id=member_id)

        try:
            target_id = int(path_member)
        except (TypeError, ValueError):
            target_id = None

        if target_id == member_id:
            if request.method == "DELETE":
                return ApiPrincipal(member_id=member_id)
            user = await db.get(User, member_id)
            if user is None:
                raise _unauthorized("User of ID from JWT payload is not found.")
            return ApiPrincipal(member_id=member_id, user=user)

        if request.method == "GET":
            user = await db.get(User, target_id) if target_id is not None else None
            if user is None:
                raise _unauthorized("User of ID from request params is not found.")
            return ApiPrincipal(member_id=member_id, user=user)

        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="403 Forbidden: No permission")
