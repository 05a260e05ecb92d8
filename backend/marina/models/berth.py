"""Berth entity: a single mooring slot placed as a marker on the marina map.

Occupancy is never stored here; it is derived by marina.modules.berth_status.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, Float, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from marina.models.base import Base, BerthStatusEnum, enum_column


class Berth(Base):
    __tablename__ = "berths"

    berth_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    pontoon_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("pontoons.pontoon_id"), nullable=True, index=True
    )
    # Map marker position
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # Physical dimensions (meters)
    width: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    length: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_draft: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_vessel_length: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_vessel_width: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    daily_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    has_water: Mapped[bool] = mapped_column(Boolean, default=False)
    has_electricity: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[BerthStatusEnum] = mapped_column(
        enum_column(BerthStatusEnum), nullable=False, default=BerthStatusEnum.ACTIVE
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    pontoon: Mapped[Optional["Pontoon"]] = relationship("Pontoon", back_populates="berths")
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="berth")

    @property
    def pontoon_code(self) -> str:
        return self.code.split("-")[0] if self.code else ""
