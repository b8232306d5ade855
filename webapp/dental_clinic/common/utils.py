from datetime import date, datetime, timedelta, timezone

from flask import current_app, has_app_context

from dental_clinic.config.settings import Config


def clinic_now() -> datetime:
    """Return current clinic-local time as a naive datetime.

    Timestamps are stored as clinic local time, so the OS timezone of the
    server does not matter.
    """
    hours = (current_app.config.get('CLINIC_UTC_OFFSET_HOURS', Config.CLINIC_UTC_OFFSET_HOURS)
             if has_app_context() else Config.CLINIC_UTC_OFFSET_HOURS)
    offset = timedelta(hours=float(hours))
    return datetime.now(timezone.utc).replace(tzinfo=None) + offset


def clinic_today() -> date:
    return clinic_now().date()


def parse_date(value) -> date | None:
    """Parse 'YYYY-MM-DD' (or a date/datetime) into a date; None when invalid."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            return datetime.strptime(value[:10], '%Y-%m-%d').date()
        except ValueError:
            return None
    return None


def parse_datetime(dt: datetime | str | None) -> datetime | None:
    """
    Parse a datetime string to datetime object.
    Accepts datetime object or string in format 'YYYY-MM-DD HH:MM:SS',
    'YYYY-MM-DDTHH:MM' (HTML datetime-local) or 'YYYY-MM-DD'.
    """
    if dt is None:
        return None

    if isinstance(dt, datetime):
        return dt

    if isinstance(dt, str):
        value = dt.strip().replace('T', ' ')
        if not value:
            return None
        for fmt in ('%Y-%m-%d %H:%M:%S', '%Y-%m-%d %H:%M', '%Y-%m-%d'):
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
    return None


def format_datetime(dt: datetime | str | None) -> str:
    parsed = parse_datetime(dt)
    if parsed is None:
        return '—'
    return parsed.strftime('%Y-%m-%d %H:%M')


def to_money(value) -> float:
    """Round to currency precision."""
    return round(float(value or 0), 2)


def format_money(value, currency: str = '') -> str:
    if value is None:
        return ''
    try:
        num = float(value)
    except (TypeError, ValueError):
        return str(value)
    s = f"{num:,.2f}"
    return f"{s} {currency}".strip()


def in_date_range(value, start_date=None, end_date=None) -> bool:
    """Inclusive range check on 'YYYY-MM-DD' values; undated values are kept."""
    d = parse_date(value)
    if d is None:
        return True
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start and d < start:
        return False
    if end and d > end:
        return False
    return True
