"""Pontoon entity: physical grouping of berths (code is the berth-code prefix)."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from marina.models.base import Base


class Pontoon(Base):
    __tablename__ = "pontoons"

    pontoon_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    berths: Mapped[list["Berth"]] = relationship("Berth", back_populates="pontoon")
