from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel, utcnow
from src.utils.constants import SpotStatus, SpotType


class ParkingSpot(BaseModel):
    __tablename__ = "parking_spots"

    id: Mapped[int] = mapped_column(primary_key=True)
    number: Mapped[str] = mapped_column(String(20), index=True)
    location: Mapped[str] = mapped_column(String(255), index=True)
    is_occupied: Mapped[bool] = mapped_column(Boolean, default=False)
    # Plain column rather than a foreign key: sessions already point at spots
    current_session_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    spot_type: Mapped[SpotType] = mapped_column(default=SpotType.REGULAR)
    status: Mapped[SpotStatus] = mapped_column(default=SpotStatus.AVAILABLE)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Relationships
    sessions: Mapped[list["ParkingSession"]] = relationship(back_populates="spot")  # noqa: F821
