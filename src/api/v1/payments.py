from fastapi import APIRouter, Query

from src.core.dependencies import DB, ActiveUser, AdminUser, is_staff
from src.core.exceptions import AuthorizationError, NotFoundError
from src.schemas.payment import (
    CancelRequest,
    CardFailureRequest,
    CardPaymentRequest,
    PaymentPackageCreate,
    PaymentPackageResponse,
    PaymentPackageUpdate,
    PurchaseRequest,
    TransactionResponse,
)
from src.services import payment as payment_service
from src.utils.constants import TransactionMethod

router = APIRouter(prefix="/payments", tags=["Payments"])


# Packages
@router.get("/packages", response_model=list[PaymentPackageResponse])
async def list_packages(db: DB):
    return await payment_service.get_packages(db)


@router.post("/packages", response_model=PaymentPackageResponse)
async def create_package(db: DB, admin: AdminUser, data: PaymentPackageCreate):
    return await payment_service.create_package(db, data)


@router.put("/packages/{package_id}", response_model=PaymentPackageResponse)
async def update_package(db: DB, admin: AdminUser, package_id: str, data: PaymentPackageUpdate):
    return await payment_service.update_package(db, package_id, data)


# Transactions
@router.post("/purchase", response_model=TransactionResponse)
async def purchase(db: DB, user: ActiveUser, data: PurchaseRequest):
    if data.user_id is not None and data.user_id != user.id:
        if not is_staff(user):
            raise AuthorizationError("Only staff can record purchases for other users")
        return await payment_service.process_purchase_transaction(
            db, data.user_id, data.package_id, data.method, data.reference, processed_by=user.id
        )

    # Cash and card settle at the counter; clients pay by transfer or through the card flow
    if data.method != TransactionMethod.TRANSFER:
        raise AuthorizationError("Only staff can record cash or card purchases")

    return await payment_service.process_purchase_transaction(
        db, user.id, data.package_id, data.method, data.reference
    )


@router.get("", response_model=list[TransactionResponse])
async def list_transactions(db: DB, admin: AdminUser, limit: int = Query(50, ge=1, le=500)):
    return await payment_service.get_all_transactions(db, limit)


@router.get("/pending", response_model=list[TransactionResponse])
async def list_pending_transactions(db: DB, admin: AdminUser):
    return await payment_service.get_pending_transactions(db)


@router.get("/me", response_model=list[TransactionResponse])
async def list_my_transactions(db: DB, user: ActiveUser, limit: int = Query(20, ge=1, le=100)):
    return await payment_service.get_user_transactions(db, user.id, limit)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(db: DB, user: ActiveUser, transaction_id: int):
    transaction = await payment_service.get_transaction_by_id(db, transaction_id)
    if transaction.user_id != user.id and not is_staff(user):
        raise NotFoundError("Transaction not found")
    return transaction


@router.post("/{transaction_id}/confirm", response_model=TransactionResponse)
async def confirm_transaction(db: DB, admin: AdminUser, transaction_id: int):
    return await payment_service.confirm_transaction(db, transaction_id, processed_by=admin.id)


@router.post("/{transaction_id}/cancel", response_model=TransactionResponse)
async def cancel_transaction(db: DB, user: ActiveUser, transaction_id: int, data: CancelRequest):
    transaction = await payment_service.get_transaction_by_id(db, transaction_id)
    if transaction.user_id != user.id and not is_staff(user):
        raise NotFoundError("Transaction not found")
    return await payment_service.cancel_transaction(db, transaction_id, data.reason)


# Card processor flow
@router.post("/card", response_model=TransactionResponse)
async def create_card_payment(db: DB, user: ActiveUser, data: CardPaymentRequest):
    return await payment_service.create_card_payment_transaction(
        db, user.id, data.package_id, data.payment_intent_id, data.payment_method_id
    )


@router.post("/card/{payment_intent_id}/complete", response_model=TransactionResponse)
async def complete_card_payment(db: DB, admin: AdminUser, payment_intent_id: str):
    return await payment_service.complete_card_payment(db, payment_intent_id)


@router.post("/card/{payment_intent_id}/fail", response_model=TransactionResponse)
async def fail_card_payment(
    db: DB, admin: AdminUser, payment_intent_id: str, data: CardFailureRequest
):
    return await payment_service.fail_card_payment(db, payment_intent_id, data.error_message)
