from datetime import datetime

from pydantic import field_validator

from src.schemas.common import BaseSchema, TimestampSchema
from src.utils.constants import ManualEntryStatus, ManualPaymentMethod


class ManualEntryCreate(BaseSchema):
    license_plate: str
    driver_name: str
    driver_id_number: str
    driver_phone: str | None = None
    vehicle_model: str | None = None
    notes: str | None = None

    @field_validator("license_plate")
    @classmethod
    def validate_license_plate(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("License plate cannot be empty")
        if len(v) > 20:
            raise ValueError("License plate cannot exceed 20 characters")
        return v.upper()


class ManualEntryComplete(BaseSchema):
    payment_method: ManualPaymentMethod
    notes: str | None = None


class ManualEntryResponse(TimestampSchema):
    id: int
    guard_id: int
    guard_name: str
    license_plate: str
    driver_name: str
    driver_id_number: str
    driver_phone: str | None = None
    vehicle_model: str | None = None
    entry_time: datetime
    exit_time: datetime | None = None
    duration: int | None = None
    cost: float | None = None
    payment_method: ManualPaymentMethod | None = None
    notes: str | None = None
    status: ManualEntryStatus
