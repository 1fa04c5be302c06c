# File: app/schemas/notification.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

class NotificationOut(BaseModel):
    id: int
    user_id: int
    ticket_id: Optional[int] = None
    project_id: Optional[int] = None
    kind: str
    title: str
    message: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    # ticket number or project name, for display
    related_item_name: Optional[str] = None

    class Config:
        from_attributes = True
