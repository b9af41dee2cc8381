from src.models.manual_entry import ManualEntry
from src.models.parking import ParkingSpot
from src.models.payment import PaymentPackage, PaymentTransaction
from src.models.session import ParkingSession
from src.models.user import User

__all__ = [
    "User",
    "ParkingSpot",
    "ParkingSession",
    "PaymentPackage",
    "PaymentTransaction",
    "ManualEntry",
]
