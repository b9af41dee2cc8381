from fastapi import APIRouter

from src.core.dependencies import DB, GuardUser
from src.schemas.manual_entry import (
    ManualEntryComplete,
    ManualEntryCreate,
    ManualEntryResponse,
)
from src.services import manual_entry as manual_entry_service

router = APIRouter(prefix="/manual-entries", tags=["Manual Entries"])


@router.post("", response_model=ManualEntryResponse)
async def create_manual_entry(db: DB, guard: GuardUser, data: ManualEntryCreate):
    return await manual_entry_service.create_manual_entry(db, guard, data)


@router.get("/active", response_model=list[ManualEntryResponse])
async def list_active_manual_entries(db: DB, guard: GuardUser, mine: bool = False):
    return await manual_entry_service.get_active_manual_entries(db, guard.id if mine else None)


@router.post("/{entry_id}/complete", response_model=ManualEntryResponse)
async def complete_manual_entry(
    db: DB, guard: GuardUser, entry_id: int, data: ManualEntryComplete
):
    return await manual_entry_service.complete_manual_entry(
        db, entry_id, data.payment_method, data.notes
    )
