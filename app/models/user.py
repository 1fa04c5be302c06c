# File: app/models/user.py
# Project: itms-backend

from __future__ import annotations
from enum import Enum as PyEnum
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, Enum, Integer, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base

class UserRole(PyEnum):
    user = "user"
    engineer = "engineer"
    user_master = "user_master"
    super_admin = "super_admin"

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password: Mapped[str] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(Enum(UserRole, name="user_role"), nullable=False, default=UserRole.user)
    level: Mapped[int] = mapped_column(Integer, default=1, server_default="1")

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    is_approved_by_user_master: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    is_approved_by_super_admin: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    # only set for role=user: the user_master this account belongs to
    user_master_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)
    verification_token: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user_master: Mapped["User | None"] = relationship(remote_side=[id])
