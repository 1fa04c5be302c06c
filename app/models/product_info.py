# File: app/models/product_info.py
# Project: itms-backend

from __future__ import annotations
from datetime import date, datetime
from sqlalchemy import String, Text, Boolean, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base

class ProductInfo(Base):
    __tablename__ = "product_info"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_master_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    product_name: Mapped[str] = mapped_column(String(200))
    version: Mapped[str | None] = mapped_column(String(60), nullable=True)
    license_info: Mapped[str | None] = mapped_column(String(500), nullable=True)
    eos_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    monitoring_solution: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    patch_history: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user_master = relationship("User")
