# File: app/schemas/comment.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

class CommentCreate(BaseModel):
    ticket_id: int
    content: str = Field(min_length=1, max_length=10000)
    attachment_name: Optional[str] = Field(default=None, max_length=200)

class CommentUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=10000)

class CommentOut(BaseModel):
    id: int
    ticket_id: int
    author_id: int
    author_name: Optional[str] = None
    content: str
    attachment_name: Optional[str] = None
    attachment_path: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
