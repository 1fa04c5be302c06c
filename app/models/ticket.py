# File: app/models/ticket.py
from __future__ import annotations
from enum import Enum as PyEnum
from datetime import date, datetime
from sqlalchemy import String, Boolean, Date, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base

class TicketStatus(PyEnum):
    new = "new"
    assigned = "assigned"
    in_progress = "in_progress"
    on_hold = "on_hold"
    validation = "validation"
    complete = "complete"
    closed = "closed"

class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    ticket_number: Mapped[str] = mapped_column(String(40), unique=True, index=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), index=True)
    creator_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    assigned_engineer_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True, nullable=True)

    title: Mapped[str] = mapped_column(String(200))
    issue_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    severity: Mapped[str | None] = mapped_column(String(20), nullable=True)
    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    product_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    product_version: Mapped[str | None] = mapped_column(String(60), nullable=True)
    os_info: Mapped[str | None] = mapped_column(String(120), nullable=True)
    fix_level: Mapped[str | None] = mapped_column(String(60), nullable=True)

    status: Mapped[TicketStatus] = mapped_column(Enum(TicketStatus, name="ticket_status"), default=TicketStatus.new, index=True)
    requested_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    is_approved_by_user_master: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    is_approved_by_super_admin: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    project = relationship("Project")
    creator = relationship("User", foreign_keys=[creator_id])
    assigned_engineer = relationship("User", foreign_keys=[assigned_engineer_id])
