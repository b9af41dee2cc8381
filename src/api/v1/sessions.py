from fastapi import APIRouter, Query

from src.core.dependencies import DB, ActiveUser, GuardUser, is_staff
from src.core.exceptions import AuthorizationError, NotFoundError
from src.schemas.session import (
    CostPreview,
    QRScanRequest,
    QRScanResponse,
    SessionEndRequest,
    SessionResponse,
    SessionStartRequest,
)
from src.services import session as session_service
from src.services import user as user_service
from src.utils.constants import SessionPaymentMethod

router = APIRouter(prefix="/sessions", tags=["Parking Sessions"])


@router.post("/start", response_model=SessionResponse)
async def start_session(db: DB, user: ActiveUser, data: SessionStartRequest):
    target = user
    if data.user_id is not None and data.user_id != user.id:
        if not is_staff(user):
            raise AuthorizationError("Only guards can start sessions for other users")
        target = await user_service.get_user(db, data.user_id)
    return await session_service.start_session_for_user(db, target, data.location, data.spot_id)


@router.post("/scan", response_model=QRScanResponse)
async def scan_qr(db: DB, guard: GuardUser, data: QRScanRequest):
    return await session_service.scan_user_qr(
        db, data.payload, guard, data.location, data.spot_id, data.payment_method
    )


@router.get("/active", response_model=list[SessionResponse])
async def list_active_sessions(db: DB, guard: GuardUser):
    return await session_service.get_all_active_sessions(db)


@router.get("/me/active", response_model=SessionResponse)
async def get_my_active_session(db: DB, user: ActiveUser):
    session = await session_service.get_active_session_by_user(db, user.id)
    if session is None:
        raise NotFoundError("No active session")
    return session


@router.get("/me/history", response_model=list[SessionResponse])
async def get_my_history(db: DB, user: ActiveUser, limit: int = Query(20, ge=1, le=100)):
    return await session_service.get_user_parking_history(db, user.id, limit)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(db: DB, user: ActiveUser, session_id: int):
    session = await session_service.get_session_by_id(db, session_id)
    if session.user_id != user.id and not is_staff(user):
        raise NotFoundError("Session not found")
    return session


@router.get("/{session_id}/cost", response_model=CostPreview)
async def get_session_cost(db: DB, user: ActiveUser, session_id: int):
    session = await session_service.get_session(db, session_id)
    if session.user_id != user.id and not is_staff(user):
        raise NotFoundError("Session not found")
    return await session_service.preview_cost(db, session_id)


@router.post("/{session_id}/end", response_model=SessionResponse)
async def end_session(db: DB, user: ActiveUser, session_id: int, data: SessionEndRequest):
    session = await session_service.get_session(db, session_id)
    if is_staff(user):
        guard_id = user.id
    elif session.user_id == user.id:
        # Cash and transfer at the exit are collected by a guard
        if data.payment_method != SessionPaymentMethod.BALANCE:
            raise AuthorizationError("Only guards can close sessions paid by cash or transfer")
        guard_id = None
    else:
        raise NotFoundError("Session not found")
    return await session_service.end_session(db, session_id, guard_id, data.payment_method)
