from datetime import datetime

from pydantic import field_validator

from src.schemas.common import BaseSchema, TimestampSchema
from src.utils.constants import ScanAction, SessionPaymentMethod, SessionStatus


class SessionStartRequest(BaseSchema):
    location: str
    spot_id: int | None = None
    # Guards and admins open sessions on behalf of a client
    user_id: int | None = None

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Location cannot be empty")
        return v


class SessionEndRequest(BaseSchema):
    payment_method: SessionPaymentMethod = SessionPaymentMethod.BALANCE


class QRScanRequest(BaseSchema):
    payload: str
    location: str
    spot_id: int | None = None
    payment_method: SessionPaymentMethod = SessionPaymentMethod.BALANCE


class SessionResponse(TimestampSchema):
    id: int
    user_id: int
    user_phone: str
    user_name: str
    start_time: datetime
    end_time: datetime | None = None
    duration: int | None = None
    location: str
    spot_id: int | None = None
    cost: float
    status: SessionStatus
    payment_method: SessionPaymentMethod | None = None
    guard_id: int | None = None
    qr_code: str
    notes: str | None = None


class QRScanResponse(BaseSchema):
    action: ScanAction
    session: SessionResponse


class CostPreview(BaseSchema):
    session_id: int
    duration_minutes: int
    rate_per_minute: float
    cost: float
    currency: str
