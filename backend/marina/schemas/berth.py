"""Pydantic schemas for berths, pontoons and boat placements."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from marina.models.base import BerthStatusEnum, BoatSizeEnum


class BerthCreateRequest(BaseModel):
    code: str = Field(..., min_length=3, max_length=20)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    width: Optional[float] = Field(None, gt=0)
    length: Optional[float] = Field(None, gt=0)
    max_draft: Optional[float] = Field(None, gt=0)
    max_vessel_length: Optional[float] = Field(None, gt=0)
    max_vessel_width: Optional[float] = Field(None, gt=0)
    daily_rate: Optional[float] = Field(None, ge=0)
    has_water: bool = False
    has_electricity: bool = False


class BerthUpdateRequest(BaseModel):
    code: Optional[str] = Field(None, min_length=3, max_length=20)
    width: Optional[float] = Field(None, gt=0)
    length: Optional[float] = Field(None, gt=0)
    max_draft: Optional[float] = Field(None, gt=0)
    max_vessel_length: Optional[float] = Field(None, gt=0)
    max_vessel_width: Optional[float] = Field(None, gt=0)
    daily_rate: Optional[float] = Field(None, ge=0)
    has_water: Optional[bool] = None
    has_electricity: Optional[bool] = None
    status: Optional[BerthStatusEnum] = None


class PositionUpdateRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    rotation: Optional[float] = Field(None, ge=0, lt=360)
    berth_id: Optional[int] = None


class BerthRead(BaseModel):
    berth_id: int
    code: str
    pontoon_code: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    width: Optional[float] = None
    length: Optional[float] = None
    max_draft: Optional[float] = None
    max_vessel_length: Optional[float] = None
    max_vessel_width: Optional[float] = None
    daily_rate: Optional[float] = None
    has_water: bool = False
    has_electricity: bool = False
    status: BerthStatusEnum

    model_config = {"from_attributes": True}


class PlacementCreateRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    berth_id: Optional[int] = None
    size: BoatSizeEnum = BoatSizeEnum.MEDIUM
    rotation: float = Field(default=0.0, ge=0, lt=360)
    vessel_name: Optional[str] = Field(None, max_length=255)
    vessel_registration: Optional[str] = Field(None, max_length=50)
    vessel_image_url: Optional[str] = Field(None, max_length=1000)


class PlacementRead(BaseModel):
    placement_id: int
    berth_id: Optional[int] = None
    berth_code: Optional[str] = None
    size: BoatSizeEnum
    rotation: float
    latitude: float
    longitude: float
    vessel_name: Optional[str] = None
    vessel_registration: Optional[str] = None
    vessel_image_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
