"""Form-level validation helpers shared by services."""
import math
import re

from dental_clinic.common.utils import clinic_today, parse_date

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def validate_phone(phone: str) -> bool:
    """
    A phone number is accepted when it holds 7 to 15 digits once spaces,
    dashes, dots, parentheses and a leading '+' are removed.

    Examples:
        >>> validate_phone('0100 123 4567')
        True
        >>> validate_phone('+20-100-123-4567')
        True
        >>> validate_phone('12ab')
        False
    """
    if not phone:
        return False
    cleaned = re.sub(r'[\s\-().]', '', phone)
    if cleaned.startswith('+'):
        cleaned = cleaned[1:]
    if not cleaned.isdigit():
        return False
    return 7 <= len(cleaned) <= 15


def validate_email(email: str) -> bool:
    return bool(email and EMAIL_RE.match(email))


def require_positive_amount(amount, message='Amount must be greater than zero') -> float:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValueError(message)
    if not math.isfinite(value) or value <= 0:
        raise ValueError(message)
    return value


def require_past_or_today(value, field_name='Date') -> str:
    """Return the ISO date string, rejecting missing, malformed and future dates."""
    d = parse_date(value)
    if d is None:
        raise ValueError(f'{field_name} is missing or invalid')
    if d > clinic_today():
        raise ValueError(f'{field_name} cannot be in the future')
    return d.isoformat()


def require_date(value, field_name='Date') -> str:
    d = parse_date(value)
    if d is None:
        raise ValueError(f'{field_name} is missing or invalid')
    return d.isoformat()


def require_text(value, message) -> str:
    text = (value or '').strip() if isinstance(value, str) else value
    if not text:
        raise ValueError(message)
    return text
