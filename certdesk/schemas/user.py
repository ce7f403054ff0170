# certdesk/schemas/user.py
from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

class UserOut(BaseModel):
    id: int
    name: str
    email: str
    is_active: bool = True
    role: Optional[str] = None

    model_config = {"from_attributes": True}
