import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import require_api_key
from ..exceptions import ApiError
from ..models import User
from ..schemas import LoginRequest, SignupRequest
from ..services.jwt_service import JWTService
from ..services.password_service import INVALID_CREDENTIALS, authenticate_local, find_by_email, hash_password
from ..utils import api_output

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["accounts"],
    dependencies=[Depends(require_api_key)],
)


@router.post("/signup")
async def signup(payload: SignupRequest, db: AsyncSession = Depends(get_db)):
    """
    Create a member account with email and password.

    Returns a token (``"JWT <token>"``) together with the new member id.
    """
    if await find_by_email(db, payload.email) is not None:
        raise ApiError(409, "Account with that email address already exists.")

    user = User(
        email=payload.email,
        password=hash_password(payload.password),
        tokens=[],
        photos=[],
    )
    db.add(user)
    await db.commit()
    logger.info({"event": "api_signup", "user_id": user.id})
    return api_output(
        "success",
        "Successfully signed up",
        token=JWTService.create_member_token(user.id),
        id=user.id,
    )


@router.post("/login")
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await authenticate_local(db, payload.email, payload.password)
    if user is None:
        raise ApiError(401, INVALID_CREDENTIALS)
    logger.info({"event": "api_login", "user_id": user.id})
    return api_output(
        "success",
        "Successfully logged in.",
        token=JWTService.create_member_token(user.id),
        id=user.id,
    )
