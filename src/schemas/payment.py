from datetime import datetime

from pydantic import Field

from src.schemas.common import BaseSchema, TimestampSchema
from src.utils.constants import TransactionMethod, TransactionStatus, TransactionType


class PaymentPackageBase(BaseSchema):
    name: str
    minutes: int = Field(gt=0)
    price: float = Field(ge=0)
    cost_per_minute: float = Field(ge=0)
    savings: float | None = None
    popular: bool = False
    description: str = ""


class PaymentPackageCreate(PaymentPackageBase):
    id: str = Field(min_length=1, max_length=50)


class PaymentPackageUpdate(BaseSchema):
    name: str | None = None
    minutes: int | None = Field(default=None, gt=0)
    price: float | None = Field(default=None, ge=0)
    cost_per_minute: float | None = None
    savings: float | None = None
    popular: bool | None = None
    description: str | None = None
    is_active: bool | None = None


class PaymentPackageResponse(PaymentPackageBase):
    id: str
    is_active: bool


class PurchaseRequest(BaseSchema):
    package_id: str
    method: TransactionMethod
    reference: str | None = None
    # Guards and admins record counter purchases on behalf of a client
    user_id: int | None = None


class CancelRequest(BaseSchema):
    reason: str | None = None


class CardPaymentRequest(BaseSchema):
    package_id: str
    payment_intent_id: str
    payment_method_id: str


class CardFailureRequest(BaseSchema):
    error_message: str | None = None


class TransactionResponse(TimestampSchema):
    id: int
    user_id: int
    user_phone: str
    user_name: str
    type: TransactionType
    method: TransactionMethod
    amount: float
    minutes: int
    status: TransactionStatus
    description: str
    reference: str | None = None
    processed_by: int | None = None
    package_id: str | None = None
    payment_intent_id: str | None = None
    payment_method_id: str | None = None
    metadata: dict | None = Field(default=None, validation_alias="extra")
    completed_at: datetime | None = None
