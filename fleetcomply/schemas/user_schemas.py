# fleetcomply/schemas/user_schemas.py
from pydantic import BaseModel, Field
from typing import Optional

class UserCreate(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    full_name: Optional[str] = None
    # Free text so unknown roles surface as a 400 from the service
    role: str = "tech"

class UserRead(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    role: str
    is_active: bool

    class Config:
        from_attributes = True

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str
