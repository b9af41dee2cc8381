from enum import Enum


class UserRole(str, Enum):
    CLIENT = "client"
    GUARD = "guard"
    ADMIN = "admin"


class SpotType(str, Enum):
    REGULAR = "regular"
    DISABLED = "disabled"
    ELECTRIC = "electric"


class SpotStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    RESERVED = "reserved"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SessionPaymentMethod(str, Enum):
    BALANCE = "balance"
    CASH = "cash"
    TRANSFER = "transfer"


class TransactionType(str, Enum):
    PURCHASE = "purchase"
    PARKING = "parking"
    REFUND = "refund"


class TransactionMethod(str, Enum):
    TRANSFER = "transfer"
    CASH = "cash"
    CARD = "card"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ManualEntryStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class ManualPaymentMethod(str, Enum):
    CASH = "cash"
    TRANSFER = "transfer"


class ScanAction(str, Enum):
    STARTED = "started"
    ENDED = "ended"


# Methods that settle at the counter, so the purchase completes in the same call
IMMEDIATE_METHODS = frozenset({TransactionMethod.CASH, TransactionMethod.CARD})
