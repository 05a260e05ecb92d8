"""BoatPlacement entity: a vessel marker manually placed at a berth on the map."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, Float, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
from marina.utils.clock import utcnow
from marina.models.base import Base, BoatSizeEnum, enum_column


class BoatPlacement(Base):
    __tablename__ = "boat_placements"

    placement_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    berth_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("berths.berth_id"), nullable=True, index=True
    )
    berth_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    size: Mapped[BoatSizeEnum] = mapped_column(
        enum_column(BoatSizeEnum), nullable=False, default=BoatSizeEnum.MEDIUM
    )
    rotation: Mapped[float] = mapped_column(Float, default=0.0)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    vessel_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    vessel_registration: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    vessel_image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    placed_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.profile_id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )
