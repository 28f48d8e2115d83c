from typing import Optional

import bcrypt
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import User

BCRYPT_ROUNDS = 10
INVALID_CREDENTIALS = "Invalid email or password."


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """Check a candidate password; accounts without a password never match."""
    if not hashed or not password:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


async def find_by_email(db: AsyncSession, email: str) -> Optional[User]:
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def authenticate_local(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """Return the member for a valid email/password pair, ``None`` otherwise."""
    user = await find_by_email(db, email)
    if user is None:
        return None
    if not verify_password(password, user.password):
        return None
    return user
