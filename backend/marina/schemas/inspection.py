"""Pydantic schemas for berth inspections."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from marina.models.base import InspectionStatusEnum


class InspectionCreate(BaseModel):
    berth_id: int
    # Plain string so unknown values reach the workflow and fail as InspectionValidationError
    status: str = Field(..., min_length=1)
    found_vessel_name: Optional[str] = Field(None, max_length=255)
    found_vessel_registration: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    photo_url: Optional[str] = Field(None, max_length=1000)


class InspectionRead(BaseModel):
    inspection_id: int
    berth_id: int
    berth_code: str
    booking_id: Optional[int] = None
    inspector_id: Optional[int] = None
    inspector_name: Optional[str] = None
    status: InspectionStatusEnum
    expected_vessel_name: Optional[str] = None
    expected_vessel_registration: Optional[str] = None
    found_vessel_name: Optional[str] = None
    found_vessel_registration: Optional[str] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    inspected_at: datetime

    model_config = {"from_attributes": True}
