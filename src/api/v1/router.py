from fastapi import APIRouter

from src.api.v1 import auth, manual_entries, payments, sessions, spots, users

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(spots.router)
api_router.include_router(sessions.router)
api_router.include_router(payments.router)
api_router.include_router(manual_entries.router)
