from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel
from src.utils.constants import ManualEntryStatus, ManualPaymentMethod


class ManualEntry(BaseModel):
    """A walk-in vehicle registered by a guard for a driver without an account."""

    __tablename__ = "manual_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    guard_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    guard_name: Mapped[str] = mapped_column(String(255))
    license_plate: Mapped[str] = mapped_column(String(20), index=True)
    driver_name: Mapped[str] = mapped_column(String(255))
    driver_id_number: Mapped[str] = mapped_column(String(50))
    driver_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    vehicle_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    entry_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    exit_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cost: Mapped[float | None] = mapped_column(Numeric(10, 2), nullable=True)
    payment_method: Mapped[ManualPaymentMethod | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ManualEntryStatus] = mapped_column(default=ManualEntryStatus.ACTIVE)
