"""
QR payloads.

Two formats with different jobs:

* ``PARKING_USER_{digits}`` identifies a client at the gate. It is what the
  client shows and what guards scan.
* ``PARKING_{user_id}_{epoch_millis}`` is the token stored on each session
  record when it is created.
"""

from datetime import datetime

from src.config import settings
from src.core.exceptions import ValidationError


def phone_digits(phone: str) -> str:
    return "".join(ch for ch in phone if ch.isdigit())


def user_qr_payload(phone: str) -> str:
    return f"{settings.user_qr_prefix}{phone_digits(phone)}"


def parse_user_qr(payload: str) -> str:
    payload = payload.strip()
    if not payload.startswith(settings.user_qr_prefix):
        raise ValidationError("Unrecognized QR code")

    digits = phone_digits(payload[len(settings.user_qr_prefix):])
    if not digits:
        raise ValidationError("QR code does not contain a phone number")
    return digits


def session_qr_code(user_id: int, at: datetime) -> str:
    return f"{settings.session_qr_prefix}{user_id}_{int(at.timestamp() * 1000)}"


def normalize_phone(phone: str) -> str:
    """Keep a leading "+" and the digits, dropping spaces and dashes."""
    digits = phone_digits(phone)
    return f"+{digits}" if phone.strip().startswith("+") else digits
