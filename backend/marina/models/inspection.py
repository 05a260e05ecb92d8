"""Inspection entity: immutable field observation of one berth.

The expected_vessel_* columns are a snapshot of the resolver output at
submission time; later booking edits never rewrite them.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from marina.utils.clock import utcnow
from marina.models.base import Base, InspectionStatusEnum, enum_column


class Inspection(Base):
    __tablename__ = "inspections"

    inspection_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    berth_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("berths.berth_id"), nullable=False, index=True
    )
    berth_code: Mapped[str] = mapped_column(String(20), nullable=False)
    # Covering booking at inspection time (None when the berth resolved free)
    booking_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("berth_bookings.booking_id"), nullable=True, index=True
    )
    inspector_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.profile_id"), nullable=True
    )
    inspector_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[InspectionStatusEnum] = mapped_column(
        enum_column(InspectionStatusEnum), nullable=False
    )
    expected_vessel_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    expected_vessel_registration: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    found_vessel_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    found_vessel_registration: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    inspected_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, index=True
    )

    violations: Mapped[list["Violation"]] = relationship("Violation", back_populates="inspection")
