"""Pydantic schemas for violations and damage reports."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from marina.models.base import (
    DamageCategoryEnum, DamageSeverityEnum, DamageStatusEnum, LocationTypeEnum,
    ViolationStatusEnum, ViolationTypeEnum,
)


class ViolationCreate(BaseModel):
    violation_type: ViolationTypeEnum
    description: str = Field(..., min_length=1)
    berth_id: Optional[int] = None
    location_description: Optional[str] = Field(None, max_length=500)
    vessel_name: Optional[str] = Field(None, max_length=255)
    vessel_registration: Optional[str] = Field(None, max_length=50)
    vessel_description: Optional[str] = Field(None, max_length=1000)
    photo_urls: list[str] = Field(default_factory=list)


class ViolationStatusUpdate(BaseModel):
    status: ViolationStatusEnum
    resolution_notes: Optional[str] = None


class ViolationRead(BaseModel):
    violation_id: int
    inspection_id: Optional[int] = None
    berth_id: Optional[int] = None
    berth_code: Optional[str] = None
    location_description: Optional[str] = None
    violation_type: ViolationTypeEnum
    vessel_name: Optional[str] = None
    vessel_registration: Optional[str] = None
    description: str
    photo_urls: Optional[list[str]] = None
    status: ViolationStatusEnum
    resolution_notes: Optional[str] = None
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    reported_by: Optional[int] = None
    reported_by_name: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DamageReportCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: DamageCategoryEnum
    location_description: str = Field(..., min_length=1, max_length=500)
    location_type: LocationTypeEnum = LocationTypeEnum.OTHER
    severity: DamageSeverityEnum = DamageSeverityEnum.MEDIUM
    berth_id: Optional[int] = None
    photo_urls: list[str] = Field(default_factory=list)


class DamageStatusUpdate(BaseModel):
    status: DamageStatusEnum
    resolution_notes: Optional[str] = None
    assigned_to: Optional[int] = None


class DamageReportRead(BaseModel):
    report_id: int
    location_type: LocationTypeEnum
    berth_id: Optional[int] = None
    berth_code: Optional[str] = None
    location_description: str
    category: DamageCategoryEnum
    severity: DamageSeverityEnum
    title: str
    description: str
    photo_urls: Optional[list[str]] = None
    status: DamageStatusEnum
    assigned_to: Optional[int] = None
    resolution_notes: Optional[str] = None
    completed_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    reported_by: Optional[int] = None
    reported_by_name: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
