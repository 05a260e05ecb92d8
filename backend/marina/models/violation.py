"""Violation entity: flagged rule breach, usually opened by an inspection."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, DateTime, Text, JSON, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from marina.utils.clock import utcnow
from marina.models.base import Base, ViolationTypeEnum, ViolationStatusEnum, enum_column


class Violation(Base):
    __tablename__ = "violations"

    violation_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inspection_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("inspections.inspection_id"), nullable=True, index=True
    )
    berth_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("berths.berth_id"), nullable=True, index=True
    )
    berth_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    location_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    violation_type: Mapped[ViolationTypeEnum] = mapped_column(
        enum_column(ViolationTypeEnum), nullable=False
    )
    vessel_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    vessel_registration: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    vessel_description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    photo_urls: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    status: Mapped[ViolationStatusEnum] = mapped_column(
        enum_column(ViolationStatusEnum), nullable=False, default=ViolationStatusEnum.OPEN, index=True
    )
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.profile_id"), nullable=True
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reported_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.profile_id"), nullable=True
    )
    reported_by_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    inspection: Mapped[Optional["Inspection"]] = relationship("Inspection", back_populates="violations")
