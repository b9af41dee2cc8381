import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import (
    CannotCancelCompletedError,
    ConflictError,
    NotFoundError,
    TransactionStateError,
)
from src.models.base import utcnow
from src.models.payment import PaymentPackage, PaymentTransaction
from src.schemas.payment import (
    PaymentPackageCreate,
    PaymentPackageResponse,
    PaymentPackageUpdate,
    TransactionResponse,
)
from src.services import user as user_service
from src.utils.constants import (
    IMMEDIATE_METHODS,
    TransactionMethod,
    TransactionStatus,
    TransactionType,
)

logger = logging.getLogger(__name__)

DEFAULT_PACKAGES = [
    {
        "id": "basic-60",
        "name": "Básico",
        "minutes": 60,
        "price": 60,
        "cost_per_minute": 1.0,
        "description": "Ideal para visitas cortas",
    },
    {
        "id": "standard-150",
        "name": "Estándar",
        "minutes": 150,
        "price": 135,
        "cost_per_minute": 0.9,
        "savings": 15,
        "popular": True,
        "description": "Perfecto para uso regular",
    },
    {
        "id": "premium-300",
        "name": "Premium",
        "minutes": 300,
        "price": 240,
        "cost_per_minute": 0.8,
        "savings": 60,
        "description": "Máximo ahorro para usuarios frecuentes",
    },
]


# Packages
async def seed_default_packages(db: AsyncSession) -> None:
    result = await db.execute(select(func.count()).select_from(PaymentPackage))
    if result.scalar():
        return

    db.add_all(PaymentPackage(**pkg, is_active=True) for pkg in DEFAULT_PACKAGES)
    await db.flush()
    logger.info("Seeded %d default payment packages", len(DEFAULT_PACKAGES))


async def get_packages(db: AsyncSession) -> list[PaymentPackageResponse]:
    await seed_default_packages(db)
    result = await db.execute(
        select(PaymentPackage)
        .where(PaymentPackage.is_active == True)  # noqa: E712
        .order_by(PaymentPackage.price)
    )
    packages = result.scalars().all()
    return [PaymentPackageResponse.model_validate(p) for p in packages]


async def get_active_package(db: AsyncSession, package_id: str) -> PaymentPackage:
    await seed_default_packages(db)
    result = await db.execute(select(PaymentPackage).where(PaymentPackage.id == package_id))
    package = result.scalar_one_or_none()
    if not package or not package.is_active:
        raise NotFoundError("Package not found")
    return package


async def create_package(db: AsyncSession, data: PaymentPackageCreate) -> PaymentPackageResponse:
    result = await db.execute(select(PaymentPackage).where(PaymentPackage.id == data.id))
    if result.scalar_one_or_none():
        raise ConflictError("Package already exists")

    package = PaymentPackage(**data.model_dump(), is_active=True)
    db.add(package)
    await db.flush()
    await db.refresh(package)
    return PaymentPackageResponse.model_validate(package)


async def update_package(
    db: AsyncSession, package_id: str, data: PaymentPackageUpdate
) -> PaymentPackageResponse:
    result = await db.execute(select(PaymentPackage).where(PaymentPackage.id == package_id))
    package = result.scalar_one_or_none()
    if not package:
        raise NotFoundError("Package not found")

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(package, field, value)

    await db.flush()
    await db.refresh(package)
    return PaymentPackageResponse.model_validate(package)


# Transactions
async def _load_transaction(
    db: AsyncSession, transaction_id: int, for_update: bool = False
) -> PaymentTransaction:
    query = select(PaymentTransaction).where(PaymentTransaction.id == transaction_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    transaction = result.scalar_one_or_none()
    if not transaction:
        raise NotFoundError("Transaction not found")
    return transaction


async def _load_by_payment_intent(
    db: AsyncSession, payment_intent_id: str, for_update: bool = False
) -> PaymentTransaction:
    query = select(PaymentTransaction).where(
        PaymentTransaction.payment_intent_id == payment_intent_id
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    transaction = result.scalar_one_or_none()
    if not transaction:
        logger.warning("No transaction for payment intent %s", payment_intent_id)
        raise NotFoundError("Transaction not found")
    return transaction


async def _complete(
    db: AsyncSession, transaction: PaymentTransaction, processed_by: int | None = None
) -> PaymentTransaction:
    """
    Move a pending transaction to completed and credit its minutes.

    Completing an already-completed transaction returns it untouched, so
    the balance is credited exactly once.
    """
    if transaction.status == TransactionStatus.COMPLETED:
        logger.info("Transaction %s already completed", transaction.id)
        return transaction
    if transaction.status != TransactionStatus.PENDING:
        raise TransactionStateError(
            f"Transaction is {transaction.status.value} and cannot be completed"
        )

    transaction.status = TransactionStatus.COMPLETED
    transaction.completed_at = utcnow()
    if processed_by is not None:
        transaction.processed_by = processed_by
    await db.flush()

    if transaction.type == TransactionType.PURCHASE:
        await user_service.credit_balance(db, transaction.user_id, transaction.minutes)

    await db.refresh(transaction)
    logger.info("Completed transaction %s", transaction.id)
    return transaction


async def _build_purchase(
    db: AsyncSession,
    user_id: int,
    package_id: str,
    method: TransactionMethod,
    description_suffix: str = "",
) -> PaymentTransaction:
    user = await user_service.get_user(db, user_id)
    package = await get_active_package(db, package_id)

    return PaymentTransaction(
        user_id=user.id,
        user_phone=user.phone,
        user_name=user.name,
        type=TransactionType.PURCHASE,
        method=method,
        amount=package.price,
        minutes=package.minutes,
        status=TransactionStatus.PENDING,
        description=f"Purchase of {package.minutes} minutes - {package.name}{description_suffix}",
        package_id=package.id,
        extra={"package": package.id},
    )


async def process_purchase_transaction(
    db: AsyncSession,
    user_id: int,
    package_id: str,
    method: TransactionMethod,
    reference: str | None = None,
    processed_by: int | None = None,
) -> TransactionResponse:
    transaction = await _build_purchase(db, user_id, package_id, method)
    if reference and reference.strip():
        transaction.reference = reference.strip()
    if processed_by is not None:
        transaction.processed_by = processed_by

    db.add(transaction)
    await db.flush()
    logger.info(
        "Created %s purchase %s for user %s (%s)",
        method.value,
        transaction.id,
        user_id,
        package_id,
    )

    # Counter payments settle on the spot; transfers wait for an admin
    if method in IMMEDIATE_METHODS:
        transaction = await _complete(db, transaction, processed_by)
    else:
        await db.refresh(transaction)

    return TransactionResponse.model_validate(transaction)


async def complete_transaction(
    db: AsyncSession, transaction_id: int, processed_by: int | None = None
) -> TransactionResponse:
    transaction = await _load_transaction(db, transaction_id, for_update=True)
    transaction = await _complete(db, transaction, processed_by)
    return TransactionResponse.model_validate(transaction)


confirm_transaction = complete_transaction


async def cancel_transaction(
    db: AsyncSession, transaction_id: int, reason: str | None = None
) -> TransactionResponse:
    transaction = await _load_transaction(db, transaction_id, for_update=True)

    if transaction.status == TransactionStatus.COMPLETED:
        raise CannotCancelCompletedError()
    if transaction.status == TransactionStatus.CANCELLED:
        return TransactionResponse.model_validate(transaction)
    if transaction.status != TransactionStatus.PENDING:
        raise TransactionStateError(
            f"Transaction is {transaction.status.value} and cannot be cancelled"
        )

    transaction.status = TransactionStatus.CANCELLED
    transaction.completed_at = utcnow()
    transaction.extra = {**(transaction.extra or {}), "cancellation_reason": reason}
    await db.flush()
    await db.refresh(transaction)

    logger.info("Cancelled transaction %s: %s", transaction.id, reason)
    return TransactionResponse.model_validate(transaction)


# Card processor flow
async def create_card_payment_transaction(
    db: AsyncSession,
    user_id: int,
    package_id: str,
    payment_intent_id: str,
    payment_method_id: str,
) -> TransactionResponse:
    result = await db.execute(
        select(PaymentTransaction.id).where(
            PaymentTransaction.payment_intent_id == payment_intent_id
        )
    )
    if result.scalar_one_or_none() is not None:
        raise ConflictError("Payment intent already registered")

    transaction = await _build_purchase(
        db, user_id, package_id, TransactionMethod.CARD, description_suffix=" (card)"
    )
    transaction.payment_intent_id = payment_intent_id
    transaction.payment_method_id = payment_method_id
    db.add(transaction)
    await db.flush()
    await db.refresh(transaction)

    logger.info("Created card purchase %s for intent %s", transaction.id, payment_intent_id)
    return TransactionResponse.model_validate(transaction)


async def complete_card_payment(db: AsyncSession, payment_intent_id: str) -> TransactionResponse:
    transaction = await _load_by_payment_intent(db, payment_intent_id, for_update=True)
    transaction = await _complete(db, transaction)
    return TransactionResponse.model_validate(transaction)


async def fail_card_payment(
    db: AsyncSession, payment_intent_id: str, error_message: str | None = None
) -> TransactionResponse:
    transaction = await _load_by_payment_intent(db, payment_intent_id, for_update=True)
    if transaction.status != TransactionStatus.PENDING:
        raise TransactionStateError(
            f"Transaction is {transaction.status.value} and cannot be marked failed"
        )

    transaction.status = TransactionStatus.FAILED
    transaction.completed_at = utcnow()
    transaction.extra = {**(transaction.extra or {}), "error_message": error_message}
    await db.flush()
    await db.refresh(transaction)

    logger.info("Card payment %s failed: %s", payment_intent_id, error_message)
    return TransactionResponse.model_validate(transaction)


# Reads
async def get_transaction_by_id(db: AsyncSession, transaction_id: int) -> TransactionResponse:
    return TransactionResponse.model_validate(await _load_transaction(db, transaction_id))


async def get_user_transactions(
    db: AsyncSession, user_id: int, limit: int = 20
) -> list[TransactionResponse]:
    try:
        result = await db.execute(
            select(PaymentTransaction)
            .where(PaymentTransaction.user_id == user_id)
            .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
            .limit(limit)
        )
        transactions = result.scalars().all()
    except SQLAlchemyError:
        logger.warning("Could not load transactions for user %s", user_id, exc_info=True)
        return []
    return [TransactionResponse.model_validate(t) for t in transactions]


async def get_all_transactions(db: AsyncSession, limit: int = 50) -> list[TransactionResponse]:
    result = await db.execute(
        select(PaymentTransaction)
        .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
        .limit(limit)
    )
    transactions = result.scalars().all()
    return [TransactionResponse.model_validate(t) for t in transactions]


async def get_pending_transactions(db: AsyncSession) -> list[TransactionResponse]:
    result = await db.execute(
        select(PaymentTransaction)
        .where(PaymentTransaction.status == TransactionStatus.PENDING)
        .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
    )
    transactions = result.scalars().all()
    return [TransactionResponse.model_validate(t) for t in transactions]
