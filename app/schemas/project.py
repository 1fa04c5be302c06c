# File: app/schemas/project.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=20, pattern=r"^[A-Za-z0-9_]+$")
    description: Optional[str] = Field(default=None, max_length=4000)

class ProjectUpdate(BaseModel):
    # the code is a business key and cannot be changed
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=4000)
    status: Optional[str] = Field(default=None, max_length=30)

class ProjectOut(BaseModel):
    id: int
    name: str
    code: str
    description: Optional[str] = None
    status: str
    owner_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    owner_name: Optional[str] = None
    ticket_count: Optional[int] = None

    class Config:
        from_attributes = True
