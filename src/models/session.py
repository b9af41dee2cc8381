from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel
from src.utils.constants import SessionPaymentMethod, SessionStatus

# Enum columns store member names, hence 'ACTIVE'
_ACTIVE_ONLY = text("status = 'ACTIVE'")


class ParkingSession(BaseModel):
    __tablename__ = "parking_sessions"
    __table_args__ = (
        # At most one active session per user
        Index(
            "uq_parking_sessions_active_user",
            "user_id",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    user_phone: Mapped[str] = mapped_column(String(30))
    user_name: Mapped[str] = mapped_column(String(255))
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    location: Mapped[str] = mapped_column(String(255))
    spot_id: Mapped[int | None] = mapped_column(ForeignKey("parking_spots.id"), nullable=True)
    cost: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    status: Mapped[SessionStatus] = mapped_column(default=SessionStatus.ACTIVE, index=True)
    payment_method: Mapped[SessionPaymentMethod | None] = mapped_column(nullable=True)
    guard_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    qr_code: Mapped[str] = mapped_column(String(100), index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    user: Mapped["User"] = relationship(  # noqa: F821
        back_populates="sessions", foreign_keys=[user_id]
    )
    spot: Mapped["ParkingSpot | None"] = relationship(back_populates="sessions")  # noqa: F821
