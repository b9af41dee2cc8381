import logging
import math
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.core.exceptions import (
    NotFoundError,
    SessionAlreadyActiveError,
    SessionNotActiveError,
    SpotUnavailableError,
)
from src.models.base import as_utc, utcnow
from src.models.session import ParkingSession
from src.models.user import User
from src.schemas.session import CostPreview, QRScanResponse, SessionResponse
from src.services import parking as parking_service
from src.services import user as user_service
from src.utils.constants import ScanAction, SessionPaymentMethod, SessionStatus, SpotStatus
from src.utils.qr import parse_user_qr, session_qr_code

logger = logging.getLogger(__name__)


def calculate_charge(
    start_time: datetime, end_time: datetime, rate_per_minute: float | None = None
) -> tuple[int, float]:
    """
    Return ``(duration_minutes, cost)`` for a stay.

    Any started minute is billed as a full minute. A clock that runs
    backwards yields zero rather than a negative duration.
    """
    rate = settings.rate_per_minute if rate_per_minute is None else rate_per_minute
    elapsed = (as_utc(end_time) - as_utc(start_time)).total_seconds()
    duration = max(0, math.ceil(elapsed / 60))
    return duration, round(duration * rate, 2)


async def get_session(db: AsyncSession, session_id: int) -> ParkingSession:
    result = await db.execute(select(ParkingSession).where(ParkingSession.id == session_id))
    session = result.scalar_one_or_none()
    if not session:
        raise NotFoundError("Session not found")
    return session


async def get_session_by_id(db: AsyncSession, session_id: int) -> SessionResponse:
    return SessionResponse.model_validate(await get_session(db, session_id))


async def find_active_session(db: AsyncSession, user_id: int) -> ParkingSession | None:
    result = await db.execute(
        select(ParkingSession)
        .where(
            ParkingSession.user_id == user_id,
            ParkingSession.status == SessionStatus.ACTIVE,
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_active_session_by_user(db: AsyncSession, user_id: int) -> SessionResponse | None:
    session = await find_active_session(db, user_id)
    return SessionResponse.model_validate(session) if session else None


async def get_all_active_sessions(db: AsyncSession) -> list[SessionResponse]:
    result = await db.execute(
        select(ParkingSession)
        .where(ParkingSession.status == SessionStatus.ACTIVE)
        .order_by(ParkingSession.start_time.desc())
    )
    sessions = result.scalars().all()
    return [SessionResponse.model_validate(s) for s in sessions]


async def get_user_parking_history(
    db: AsyncSession, user_id: int, limit: int = 20
) -> list[SessionResponse]:
    try:
        result = await db.execute(
            select(ParkingSession)
            .where(ParkingSession.user_id == user_id)
            .order_by(ParkingSession.created_at.desc(), ParkingSession.id.desc())
            .limit(limit)
        )
        sessions = result.scalars().all()
    except SQLAlchemyError:
        logger.warning("Could not load parking history for user %s", user_id, exc_info=True)
        return []
    return [SessionResponse.model_validate(s) for s in sessions]


async def start_session(
    db: AsyncSession,
    user_id: int,
    user_phone: str,
    user_name: str,
    location: str,
    spot_id: int | None = None,
) -> SessionResponse:
    if await find_active_session(db, user_id):
        raise SessionAlreadyActiveError()

    spot = None
    if spot_id is not None:
        spot = await parking_service.get_spot(db, spot_id)
        if spot.is_occupied or spot.status != SpotStatus.AVAILABLE:
            raise SpotUnavailableError(f"Parking spot {spot.number} is not available")

    now = utcnow()
    session = ParkingSession(
        user_id=user_id,
        user_phone=user_phone,
        user_name=user_name,
        start_time=now,
        location=location,
        spot_id=spot_id,
        cost=0,
        status=SessionStatus.ACTIVE,
        qr_code=session_qr_code(user_id, now),
    )
    db.add(session)
    try:
        await db.flush()
    except IntegrityError as exc:
        # Another start for the same user won the race past the pre-check
        raise SessionAlreadyActiveError() from exc

    if spot is not None:
        await parking_service.occupy_spot(db, spot, session.id)

    await db.refresh(session)
    logger.info(
        "Started session %s for user %s at %s (spot %s)", session.id, user_id, location, spot_id
    )
    return SessionResponse.model_validate(session)


async def start_session_for_user(
    db: AsyncSession, user: User, location: str, spot_id: int | None = None
) -> SessionResponse:
    return await start_session(db, user.id, user.phone, user.name, location, spot_id)


async def end_session(
    db: AsyncSession,
    session_id: int,
    guard_id: int | None = None,
    payment_method: SessionPaymentMethod = SessionPaymentMethod.BALANCE,
) -> SessionResponse:
    session = await get_session(db, session_id)
    if session.status != SessionStatus.ACTIVE:
        raise SessionNotActiveError()

    end_time = utcnow()
    duration, cost = calculate_charge(session.start_time, end_time)

    session.end_time = end_time
    session.duration = duration
    session.cost = cost
    session.status = SessionStatus.COMPLETED
    session.payment_method = payment_method
    session.guard_id = guard_id
    await db.flush()

    if payment_method == SessionPaymentMethod.BALANCE:
        # Balance is kept in minutes, so the debit is the billed duration
        await user_service.debit_balance(db, session.user_id, duration)

    if session.spot_id is not None:
        await parking_service.release_spot(db, session.spot_id, session.id)

    await db.refresh(session)
    logger.info(
        "Ended session %s: %d min, cost %.2f, paid by %s",
        session.id,
        duration,
        cost,
        payment_method.value,
    )
    return SessionResponse.model_validate(session)


async def preview_cost(db: AsyncSession, session_id: int) -> CostPreview:
    session = await get_session(db, session_id)
    if session.status == SessionStatus.ACTIVE:
        duration, cost = calculate_charge(session.start_time, utcnow())
    else:
        duration, cost = session.duration or 0, float(session.cost)

    return CostPreview(
        session_id=session.id,
        duration_minutes=duration,
        rate_per_minute=settings.rate_per_minute,
        cost=cost,
        currency=settings.currency,
    )


async def scan_user_qr(
    db: AsyncSession,
    payload: str,
    guard: User,
    location: str,
    spot_id: int | None = None,
    payment_method: SessionPaymentMethod = SessionPaymentMethod.BALANCE,
) -> QRScanResponse:
    """
    Gate scanner flow: a client QR either opens a session or closes the
    one already running for that client.
    """
    phone = parse_user_qr(payload)
    user = await user_service.get_user_by_phone(db, phone)

    active = await find_active_session(db, user.id)
    if active:
        session = await end_session(db, active.id, guard.id, payment_method)
        return QRScanResponse(action=ScanAction.ENDED, session=session)

    session = await start_session_for_user(db, user, location, spot_id)
    return QRScanResponse(action=ScanAction.STARTED, session=session)
