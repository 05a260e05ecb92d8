"""Booking entity: a transit reservation of a berth for [check_in_date, check_out_date)."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Integer, String, Float, Date, DateTime, Text, ForeignKey, CheckConstraint, Index, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from marina.utils.clock import utc_today, utcnow
from marina.models.base import (
    Base, BookingStatusEnum, PaymentStatusEnum, PaymentMethodEnum, BookingSourceEnum,
    VesselTypeEnum, enum_column,
)


class Booking(Base):
    __tablename__ = "berth_bookings"
    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_booking_dates_ordered"),
        Index("ix_berth_bookings_berth_dates", "berth_id", "check_in_date", "check_out_date"),
    )

    booking_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    berth_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("berths.berth_id"), nullable=False, index=True
    )
    # Display copy of Berth.code, kept in sync by marina.modules.berths.rename_berth
    berth_code: Mapped[str] = mapped_column(String(20), nullable=False)

    check_in_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_out_date: Mapped[date] = mapped_column(Date, nullable=False)
    actual_check_in: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    actual_check_out: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    guest_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    guest_country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    vessel_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    vessel_registration: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    vessel_type: Mapped[Optional[VesselTypeEnum]] = mapped_column(
        enum_column(VesselTypeEnum), nullable=True
    )
    vessel_length: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    vessel_width: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    vessel_draft: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    vessel_flag: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    vessel_image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    status: Mapped[BookingStatusEnum] = mapped_column(
        enum_column(BookingStatusEnum), nullable=False, default=BookingStatusEnum.PENDING, index=True
    )

    # Pricing: each stage rounded to 2 dp (see marina.modules.pricing)
    price_per_day: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_nights: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    discount_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    discount_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    tax_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    tax_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Payment aggregate, recomputed from booking_payments, never edited directly
    payment_status: Mapped[PaymentStatusEnum] = mapped_column(
        enum_column(PaymentStatusEnum), nullable=False, default=PaymentStatusEnum.UNPAID
    )
    amount_paid: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    source: Mapped[BookingSourceEnum] = mapped_column(
        enum_column(BookingSourceEnum), nullable=False, default=BookingSourceEnum.DIRECT
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.profile_id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    berth: Mapped["Berth"] = relationship("Berth", back_populates="bookings")
    payments: Mapped[list["BookingPayment"]] = relationship(
        "BookingPayment", back_populates="booking", order_by="BookingPayment.payment_id"
    )


class BookingPayment(Base):
    """Append-only payment record against a booking."""
    __tablename__ = "booking_payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_booking_payment_positive"),
    )

    payment_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("berth_bookings.booking_id"), nullable=False, index=True
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, default=utc_today)
    payment_method: Mapped[Optional[PaymentMethodEnum]] = mapped_column(
        enum_column(PaymentMethodEnum), nullable=True
    )
    reference_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.profile_id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="payments")
