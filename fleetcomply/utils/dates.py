# fleetcomply/utils/dates.py
from datetime import date, datetime
from typing import Optional

from fleetcomply.models.domain import DocumentStatus


def days_until_expiry(expiration_date: Optional[date], today: date) -> Optional[int]:
    """Whole calendar days from today to the expiration date; negative once past."""
    if expiration_date is None:
        return None
    if isinstance(expiration_date, datetime):
        expiration_date = expiration_date.date()
    return (expiration_date - today).days


def classify_expiration(expiration_date: Optional[date], today: date, window: int = 30) -> DocumentStatus:
    days = days_until_expiry(expiration_date, today)
    if days is None:
        return DocumentStatus.NO_EXPIRATION
    if days < 0:
        return DocumentStatus.EXPIRED
    if days <= window:
        return DocumentStatus.EXPIRING_SOON
    return DocumentStatus.VALID


def month_label(d: date) -> str:
    # "Jan 2025"
    return d.strftime("%b %Y")


def days_between(start: date, end: date) -> int:
    return (end - start).days
