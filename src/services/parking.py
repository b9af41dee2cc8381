import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError
from src.models.base import utcnow
from src.models.parking import ParkingSpot
from src.schemas.parking import ParkingSpotCreate, ParkingSpotResponse, ParkingSpotUpdate
from src.utils.constants import SpotStatus

logger = logging.getLogger(__name__)


async def get_spot(db: AsyncSession, spot_id: int) -> ParkingSpot:
    result = await db.execute(select(ParkingSpot).where(ParkingSpot.id == spot_id))
    spot = result.scalar_one_or_none()
    if not spot:
        raise NotFoundError("Parking spot not found")
    return spot


async def get_spot_by_id(db: AsyncSession, spot_id: int) -> ParkingSpotResponse:
    return ParkingSpotResponse.model_validate(await get_spot(db, spot_id))


async def create_spot(db: AsyncSession, data: ParkingSpotCreate) -> ParkingSpotResponse:
    spot = ParkingSpot(**data.model_dump(), is_occupied=False, last_updated=utcnow())
    db.add(spot)
    await db.flush()
    await db.refresh(spot)
    return ParkingSpotResponse.model_validate(spot)


async def get_spots(db: AsyncSession, location: str | None = None) -> list[ParkingSpotResponse]:
    query = select(ParkingSpot).order_by(ParkingSpot.number)
    if location:
        query = query.where(ParkingSpot.location == location)

    result = await db.execute(query)
    spots = result.scalars().all()
    return [ParkingSpotResponse.model_validate(s) for s in spots]


async def get_available_spots(
    db: AsyncSession, location: str | None = None
) -> list[ParkingSpotResponse]:
    query = (
        select(ParkingSpot)
        .where(
            ParkingSpot.status == SpotStatus.AVAILABLE,
            ParkingSpot.is_occupied == False,  # noqa: E712
        )
        .order_by(ParkingSpot.number)
    )
    if location:
        query = query.where(ParkingSpot.location == location)

    result = await db.execute(query)
    spots = result.scalars().all()
    return [ParkingSpotResponse.model_validate(s) for s in spots]


async def update_spot(
    db: AsyncSession, spot_id: int, data: ParkingSpotUpdate
) -> ParkingSpotResponse:
    spot = await get_spot(db, spot_id)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(spot, field, value)
    spot.last_updated = utcnow()

    await db.flush()
    await db.refresh(spot)
    return ParkingSpotResponse.model_validate(spot)


async def occupy_spot(db: AsyncSession, spot: ParkingSpot, session_id: int) -> None:
    spot.is_occupied = True
    spot.current_session_id = session_id
    spot.status = SpotStatus.OCCUPIED
    spot.last_updated = utcnow()
    await db.flush()


async def release_spot(db: AsyncSession, spot_id: int, session_id: int | None = None) -> None:
    result = await db.execute(select(ParkingSpot).where(ParkingSpot.id == spot_id))
    spot = result.scalar_one_or_none()
    if not spot:
        logger.warning("Spot %s of session %s no longer exists", spot_id, session_id)
        return

    if session_id is not None and spot.current_session_id not in (None, session_id):
        logger.warning(
            "Spot %s is held by session %s, leaving it occupied while closing session %s",
            spot_id,
            spot.current_session_id,
            session_id,
        )
        return

    spot.is_occupied = False
    spot.current_session_id = None
    if spot.status == SpotStatus.OCCUPIED:
        spot.status = SpotStatus.AVAILABLE
    spot.last_updated = utcnow()
    await db.flush()
