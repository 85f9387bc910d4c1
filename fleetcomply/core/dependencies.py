# fleetcomply/core/dependencies.py
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fleetcomply.core.config import settings
from fleetcomply.core.security import ALGORITHM, SECRET_KEY
from fleetcomply.models.domain import Base, User, UserRole

engine = create_async_engine(settings.DATABASE_URL, echo=False)
SessionFactory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

bearer_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
optional_bearer = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


async def init_models(bind=engine):
    """Create any missing tables. Called from the app lifespan."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with SessionFactory() as session:
        yield session


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _subject_of(token: str) -> Optional[str]:
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return claims.get("sub")


async def get_current_user(token: str = Depends(bearer_scheme), db: AsyncSession = Depends(get_db)) -> User:
    username = _subject_of(token)
    if not username:
        raise _unauthorized()

    found = await db.execute(select(User).where(User.username == username))
    user = found.scalars().first()
    # Deactivated accounts keep their rows but lose access
    if user is None or not user.is_active:
        raise _unauthorized()
    return user


def require_roles(*roles: UserRole):
    """Dependency factory: only let the listed roles through."""
    allowed = {r.value for r in roles}

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
        return current_user

    return checker


async def get_optional_user(
    token: Optional[str] = Depends(optional_bearer), db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Like get_current_user, but anonymous callers get None instead of a 401."""
    if not token:
        return None
    return await get_current_user(token, db)
