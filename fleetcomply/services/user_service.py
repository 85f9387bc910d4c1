# fleetcomply/services/user_service.py
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetcomply.core.security import get_password_hash, verify_password
from fleetcomply.models.domain import User, UserRole
from fleetcomply.schemas.user_schemas import UserCreate

logger = logging.getLogger(__name__)


def parse_role(raw: str) -> UserRole:
    """Case-insensitive lookup of a role name; raises ValueError for anything unknown."""
    try:
        return UserRole(raw.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown role '{raw}'")


async def find_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalars().first()


async def admin_exists(db: AsyncSession) -> bool:
    result = await db.execute(select(User.id).where(User.role == UserRole.ADMIN.value).limit(1))
    return result.first() is not None


async def register_user(db: AsyncSession, payload: UserCreate, acting_user: Optional[User] = None) -> User:
    """
    Create an account. Self-service sign-up gets the tech role; office and
    admin accounts need an admin caller once the first admin exists.
    """
    role = parse_role(payload.role)
    if role != UserRole.TECH and await admin_exists(db):
        if acting_user is None or acting_user.role != UserRole.ADMIN.value:
            logger.warning("Refused %s registration for %s", role.value, payload.username)
            raise PermissionError(f"Only an admin can create {role.value} accounts")

    if await find_by_username(db, payload.username):
        raise ValueError("Username already registered")

    account = User(
        username=payload.username,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password),
        role=role.value,
    )
    db.add(account)
    await db.commit()
    await db.refresh(account)
    logger.info("Registered %s account for %s", account.role, account.username)
    return account


async def authenticate(db: AsyncSession, username: str, password: str) -> Optional[User]:
    """Return the matching active user, or None when the credentials don't check out."""
    account = await find_by_username(db, username)
    if account is None or not account.is_active:
        return None
    if not verify_password(password, account.hashed_password):
        return None
    return account


async def list_users(db: AsyncSession) -> List[User]:
    result = await db.execute(select(User).order_by(User.username))
    return list(result.scalars().all())
