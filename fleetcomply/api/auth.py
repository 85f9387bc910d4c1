# fleetcomply/api/auth.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from fleetcomply.core.dependencies import get_db, get_current_user, get_optional_user, require_roles
from fleetcomply.core.security import create_access_token
from fleetcomply.models.domain import User, UserRole
from fleetcomply.schemas.user_schemas import Token, UserCreate, UserRead
from fleetcomply.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/register", response_model=UserRead)
async def register(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    caller: Optional[User] = Depends(get_optional_user)
):
    try:
        return await user_service.register_user(db, payload, caller)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.post("/login", response_model=Token)
async def login(form: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    account = await user_service.authenticate(db, form.username, form.password)
    if account is None:
        logger.warning("Rejected sign-in for %s", form.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = {"sub": account.username, "role": account.role, "id": account.id}
    return Token(
        access_token=create_access_token(claims),
        user_id=account.id,
        role=account.role,
    )

@router.get("/me", response_model=UserRead)
async def read_me(current_user: User = Depends(get_current_user)):
    return current_user

@router.get("/users", response_model=List[UserRead])
async def list_users(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_roles(UserRole.ADMIN))
):
    return await user_service.list_users(db)
