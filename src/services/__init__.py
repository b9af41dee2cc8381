from src.services import (
    auth,
    manual_entry,
    parking,
    payment,
    session,
    user,
)

__all__ = [
    "auth",
    "user",
    "parking",
    "session",
    "payment",
    "manual_entry",
]
