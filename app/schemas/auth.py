# File: app/schemas/auth.py

from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from app.models.user import UserRole

class RegisterIn(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=512)
    email: EmailStr
    role: UserRole = UserRole.user
    level: Optional[int] = Field(default=None, ge=1, le=10)
    # email or username of the User Master a role=user account joins
    user_master_username: Optional[str] = None

class LoginIn(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=512)
