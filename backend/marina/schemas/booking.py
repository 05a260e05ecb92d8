"""Pydantic schemas for transit bookings, payments and price quotes."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from marina.models.base import (
    BookingSourceEnum, BookingStatusEnum, PaymentMethodEnum, PaymentStatusEnum, VesselTypeEnum,
)


class BookingCreate(BaseModel):
    berth_id: int
    check_in_date: date
    check_out_date: date
    guest_name: str = Field(..., min_length=1, max_length=255)
    guest_email: Optional[str] = Field(None, max_length=255)
    guest_phone: Optional[str] = Field(None, max_length=50)
    guest_country: Optional[str] = Field(None, max_length=100)
    vessel_name: Optional[str] = Field(None, max_length=255)
    vessel_registration: Optional[str] = Field(None, max_length=50)
    vessel_type: Optional[VesselTypeEnum] = None
    vessel_length: Optional[float] = Field(None, gt=0)
    vessel_width: Optional[float] = Field(None, gt=0)
    vessel_draft: Optional[float] = Field(None, gt=0)
    vessel_flag: Optional[str] = Field(None, max_length=50)
    vessel_image_url: Optional[str] = Field(None, max_length=1000)
    price_per_day: Optional[float] = Field(None, ge=0)
    discount_percent: float = Field(default=0, ge=0, le=100)
    tax_percent: Optional[float] = Field(None, ge=0, le=100)
    source: BookingSourceEnum = BookingSourceEnum.DIRECT
    notes: Optional[str] = None
    internal_notes: Optional[str] = None

    @model_validator(mode="after")
    def check_out_after_check_in(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError("check_out_date must be after check_in_date")
        return self


class BookingUpdate(BaseModel):
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    guest_name: Optional[str] = Field(None, min_length=1, max_length=255)
    guest_email: Optional[str] = Field(None, max_length=255)
    guest_phone: Optional[str] = Field(None, max_length=50)
    guest_country: Optional[str] = Field(None, max_length=100)
    vessel_name: Optional[str] = Field(None, max_length=255)
    vessel_registration: Optional[str] = Field(None, max_length=50)
    vessel_type: Optional[VesselTypeEnum] = None
    vessel_length: Optional[float] = Field(None, gt=0)
    vessel_width: Optional[float] = Field(None, gt=0)
    vessel_draft: Optional[float] = Field(None, gt=0)
    vessel_flag: Optional[str] = Field(None, max_length=50)
    vessel_image_url: Optional[str] = Field(None, max_length=1000)
    price_per_day: Optional[float] = Field(None, ge=0)
    discount_percent: Optional[float] = Field(None, ge=0, le=100)
    tax_percent: Optional[float] = Field(None, ge=0, le=100)
    source: Optional[BookingSourceEnum] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatusEnum
    reason: Optional[str] = Field(None, max_length=500)


class PaymentCreate(BaseModel):
    amount: float = Field(..., gt=0)
    payment_method: Optional[PaymentMethodEnum] = None
    payment_date: Optional[date] = None
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentRead(BaseModel):
    payment_id: int
    booking_id: int
    amount: float
    payment_date: date
    payment_method: Optional[PaymentMethodEnum] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingRead(BaseModel):
    booking_id: int
    berth_id: int
    berth_code: str
    check_in_date: date
    check_out_date: date
    actual_check_in: Optional[datetime] = None
    actual_check_out: Optional[datetime] = None
    guest_name: str
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    guest_country: Optional[str] = None
    vessel_name: Optional[str] = None
    vessel_registration: Optional[str] = None
    vessel_type: Optional[VesselTypeEnum] = None
    vessel_length: Optional[float] = None
    vessel_width: Optional[float] = None
    status: BookingStatusEnum
    price_per_day: float
    total_nights: int
    subtotal: float
    discount_percent: float
    discount_amount: float
    tax_percent: float
    tax_amount: float
    total_amount: float
    payment_status: PaymentStatusEnum
    amount_paid: float
    source: BookingSourceEnum
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    model_config = {"from_attributes": True}


class PricingQuoteRequest(BaseModel):
    price_per_day: float = Field(..., ge=0)
    check_in_date: date
    check_out_date: date
    discount_percent: float = Field(default=0, ge=0, le=100)
    tax_percent: Optional[float] = Field(None, ge=0, le=100)

    @model_validator(mode="after")
    def check_out_after_check_in(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError("check_out_date must be after check_in_date")
        return self
