import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, NotFoundError
from src.models.base import utcnow
from src.models.manual_entry import ManualEntry
from src.models.user import User
from src.schemas.manual_entry import ManualEntryCreate, ManualEntryResponse
from src.services.session import calculate_charge
from src.utils.constants import ManualEntryStatus, ManualPaymentMethod

logger = logging.getLogger(__name__)


async def create_manual_entry(
    db: AsyncSession, guard: User, data: ManualEntryCreate
) -> ManualEntryResponse:
    entry = ManualEntry(
        **data.model_dump(),
        guard_id=guard.id,
        guard_name=guard.name,
        entry_time=utcnow(),
        status=ManualEntryStatus.ACTIVE,
    )
    db.add(entry)
    await db.flush()
    await db.refresh(entry)

    logger.info("Guard %s registered manual entry %s (%s)", guard.id, entry.id, entry.license_plate)
    return ManualEntryResponse.model_validate(entry)


async def get_manual_entry(db: AsyncSession, entry_id: int) -> ManualEntry:
    result = await db.execute(select(ManualEntry).where(ManualEntry.id == entry_id))
    entry = result.scalar_one_or_none()
    if not entry:
        raise NotFoundError("Manual entry not found")
    return entry


async def get_active_manual_entries(
    db: AsyncSession, guard_id: int | None = None
) -> list[ManualEntryResponse]:
    query = (
        select(ManualEntry)
        .where(ManualEntry.status == ManualEntryStatus.ACTIVE)
        .order_by(ManualEntry.entry_time.desc())
    )
    if guard_id:
        query = query.where(ManualEntry.guard_id == guard_id)

    result = await db.execute(query)
    entries = result.scalars().all()
    return [ManualEntryResponse.model_validate(e) for e in entries]


async def complete_manual_entry(
    db: AsyncSession,
    entry_id: int,
    payment_method: ManualPaymentMethod,
    notes: str | None = None,
) -> ManualEntryResponse:
    entry = await get_manual_entry(db, entry_id)
    if entry.status != ManualEntryStatus.ACTIVE:
        raise ConflictError("Manual entry is not active")

    exit_time = utcnow()
    duration, cost = calculate_charge(entry.entry_time, exit_time)

    entry.exit_time = exit_time
    entry.duration = duration
    entry.cost = cost
    entry.payment_method = payment_method
    entry.status = ManualEntryStatus.COMPLETED
    if notes:
        entry.notes = notes

    await db.flush()
    await db.refresh(entry)

    logger.info("Completed manual entry %s: %d min, cost %.2f", entry.id, duration, cost)
    return ManualEntryResponse.model_validate(entry)
