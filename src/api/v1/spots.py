from fastapi import APIRouter, Query

from src.core.dependencies import DB, ActiveUser, AdminUser, GuardUser
from src.schemas.parking import ParkingSpotCreate, ParkingSpotResponse, ParkingSpotUpdate
from src.services import parking as parking_service

router = APIRouter(prefix="/spots", tags=["Parking Spots"])


@router.get("", response_model=list[ParkingSpotResponse])
async def list_spots(db: DB, location: str | None = Query(None)):
    return await parking_service.get_spots(db, location)


@router.get("/available", response_model=list[ParkingSpotResponse])
async def list_available_spots(db: DB, location: str | None = Query(None)):
    return await parking_service.get_available_spots(db, location)


@router.post("", response_model=ParkingSpotResponse)
async def create_spot(db: DB, admin: AdminUser, data: ParkingSpotCreate):
    return await parking_service.create_spot(db, data)


@router.get("/{spot_id}", response_model=ParkingSpotResponse)
async def get_spot(db: DB, user: ActiveUser, spot_id: int):
    return await parking_service.get_spot_by_id(db, spot_id)


@router.patch("/{spot_id}", response_model=ParkingSpotResponse)
async def update_spot(db: DB, guard: GuardUser, spot_id: int, data: ParkingSpotUpdate):
    return await parking_service.update_spot(db, spot_id, data)
