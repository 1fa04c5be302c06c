# File: app/schemas/ticket.py

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.models.ticket import TicketStatus


class TicketCreate(BaseModel):
    project_id: int
    title: str = Field(min_length=1, max_length=200)
    issue_type: Optional[str] = Field(default=None, max_length=50)
    severity: Optional[str] = Field(default=None, max_length=20)
    description: Optional[str] = Field(default=None, max_length=4000)
    product_name: Optional[str] = Field(default=None, max_length=120)
    product_version: Optional[str] = Field(default=None, max_length=60)
    os_info: Optional[str] = Field(default=None, max_length=120)
    fix_level: Optional[str] = Field(default=None, max_length=60)
    requested_end_date: Optional[date] = None


class StatusIn(BaseModel):
    # checked against TicketStatus by the service so the error names the allowed values
    status: str


class AssignIn(BaseModel):
    engineer_id: int


class ApproveIn(BaseModel):
    approval_type: Optional[str] = None


class TicketOut(BaseModel):
    id: int
    ticket_number: str
    project_id: int
    creator_id: int
    assigned_engineer_id: Optional[int] = None

    title: str
    issue_type: Optional[str] = None
    severity: Optional[str] = None
    description: Optional[str] = None
    product_name: Optional[str] = None
    product_version: Optional[str] = None
    os_info: Optional[str] = None
    fix_level: Optional[str] = None

    status: TicketStatus
    requested_end_date: Optional[date] = None
    actual_end_date: Optional[date] = None
    is_approved_by_user_master: bool
    is_approved_by_super_admin: bool

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Joined display fields
    project_name: Optional[str] = None
    project_code: Optional[str] = None
    creator_name: Optional[str] = None
    assigned_engineer_name: Optional[str] = None

    class Config:
        from_attributes = True
