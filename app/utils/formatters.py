"""
Parsing and formatting helpers for dates, times and slugs.
Times travel as "HH:MM" strings and dates as ISO "YYYY-MM-DD".
"""
import re
import unicodedata
from datetime import date, datetime, time
from typing import Optional, Union


def format_time(value: Optional[time]) -> Optional[str]:
    """
    Format a time as "HH:MM".

    Examples:
        format_time(time(9, 0)) -> "09:00"
        format_time(None) -> None
    """
    if value is None:
        return None
    return value.strftime('%H:%M')


def parse_time(value: Union[str, time, None]) -> Optional[time]:
    """
    Parse "HH:MM" (or "HH:MM:SS") into a time.

    Raises:
        ValueError: if the string is not a valid time
    """
    if value is None or isinstance(value, time):
        return value
    value = value.strip()
    if not value:
        return None
    for fmt in ('%H:%M', '%H:%M:%S'):
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Horário inválido: {value!r}")


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse an ISO date string ("2024-06-10")."""
    if value is None or isinstance(value, date):
        return value
    value = value.strip()
    if not value:
        return None
    return date.fromisoformat(value)


def date_br(value: Optional[date]) -> str:
    """Format a date in Brazilian style (10/06/2024)."""
    if value is None:
        return '-'
    return value.strftime('%d/%m/%Y')


def minutes_of(value: time) -> int:
    """Minutes elapsed since midnight."""
    return value.hour * 60 + value.minute


def time_from_minutes(minutes: int) -> time:
    """Inverse of minutes_of (minutes must be within one day)."""
    return time(minutes // 60, minutes % 60)


def slugify(text: str) -> str:
    """
    Generate a URL-safe slug.

    Examples:
        slugify("Barbearia Clássica") -> "barbearia-classica"
        slugify("  Zé  & Filhos ") -> "ze-filhos"
    """
    slug = unicodedata.normalize('NFKD', text)
    slug = slug.encode('ascii', 'ignore').decode('ascii')
    slug = slug.lower()
    slug = re.sub(r'[^a-z0-9]+', '-', slug)
    slug = slug.strip('-')
    return slug[:80]
