"""DamageReport entity: maintenance ticket filed by any staff member."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, DateTime, Text, JSON, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
from marina.utils.clock import utcnow
from marina.models.base import (
    Base, LocationTypeEnum, DamageCategoryEnum, DamageSeverityEnum, DamageStatusEnum, enum_column,
)


class DamageReport(Base):
    __tablename__ = "damage_reports"

    report_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    location_type: Mapped[LocationTypeEnum] = mapped_column(
        enum_column(LocationTypeEnum), nullable=False, default=LocationTypeEnum.OTHER
    )
    berth_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("berths.berth_id"), nullable=True, index=True
    )
    berth_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    location_description: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[DamageCategoryEnum] = mapped_column(
        enum_column(DamageCategoryEnum), nullable=False
    )
    severity: Mapped[DamageSeverityEnum] = mapped_column(
        enum_column(DamageSeverityEnum), nullable=False, default=DamageSeverityEnum.MEDIUM
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    photo_urls: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    status: Mapped[DamageStatusEnum] = mapped_column(
        enum_column(DamageStatusEnum), nullable=False, default=DamageStatusEnum.REPORTED, index=True
    )
    assigned_to: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.profile_id"), nullable=True
    )
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.profile_id"), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reported_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.profile_id"), nullable=True
    )
    reported_by_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )
