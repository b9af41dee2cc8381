from datetime import datetime

from src.schemas.common import BaseSchema, TimestampSchema
from src.utils.constants import SpotStatus, SpotType


class ParkingSpotBase(BaseSchema):
    number: str
    location: str
    spot_type: SpotType = SpotType.REGULAR


class ParkingSpotCreate(ParkingSpotBase):
    status: SpotStatus = SpotStatus.AVAILABLE


class ParkingSpotUpdate(BaseSchema):
    number: str | None = None
    location: str | None = None
    status: SpotStatus | None = None
    spot_type: SpotType | None = None


class ParkingSpotResponse(ParkingSpotBase, TimestampSchema):
    id: int
    is_occupied: bool
    current_session_id: int | None = None
    status: SpotStatus
    last_updated: datetime
