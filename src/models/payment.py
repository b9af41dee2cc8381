from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel
from src.utils.constants import TransactionMethod, TransactionStatus, TransactionType


class PaymentPackage(BaseModel):
    __tablename__ = "payment_packages"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    minutes: Mapped[int] = mapped_column(Integer)
    price: Mapped[float] = mapped_column(Numeric(10, 2))
    cost_per_minute: Mapped[float] = mapped_column(Numeric(10, 4))
    savings: Mapped[float | None] = mapped_column(Numeric(10, 2), nullable=True)
    popular: Mapped[bool] = mapped_column(Boolean, default=False)
    description: Mapped[str] = mapped_column(String(255), default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class PaymentTransaction(BaseModel):
    __tablename__ = "payment_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    user_phone: Mapped[str] = mapped_column(String(30))
    user_name: Mapped[str] = mapped_column(String(255))
    type: Mapped[TransactionType] = mapped_column(default=TransactionType.PURCHASE)
    method: Mapped[TransactionMethod] = mapped_column(default=TransactionMethod.CASH)
    amount: Mapped[float] = mapped_column(Numeric(10, 2))
    minutes: Mapped[int] = mapped_column(Integer)
    status: Mapped[TransactionStatus] = mapped_column(
        default=TransactionStatus.PENDING, index=True
    )
    description: Mapped[str] = mapped_column(String(255), default="")
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    processed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    package_id: Mapped[str | None] = mapped_column(
        ForeignKey("payment_packages.id"), nullable=True
    )
    payment_intent_id: Mapped[str | None] = mapped_column(
        String(100), unique=True, index=True, nullable=True
    )
    payment_method_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # "metadata" is reserved on declarative classes
    extra: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="transactions")  # noqa: F821
    package: Mapped["PaymentPackage | None"] = relationship()
