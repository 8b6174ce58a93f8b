from datetime import date, datetime
from pytz import timezone

from aula.config import settings

MONTHS = {
    "es": ["Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
           "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre"],
    "en": ["January", "February", "March", "April", "May", "June",
           "July", "August", "September", "October", "November", "December"],
}


def now_local() -> datetime:
    return datetime.now(timezone(settings.TIMEZONE))


def today_local() -> date:
    return now_local().date()


def calculate_age(birth_date: date) -> int:
    today = today_local()
    return today.year - birth_date.year - ((today.month, today.day) < (birth_date.month, birth_date.day))


def format_date_range(start_date: date, end_date: date, language: str = "es") -> str:
    """
    Short label for a planning week, e.g. "13 - 17 Enero 2026".
    Month and year come from the end date.
    """
    months = MONTHS.get(language, MONTHS["es"])
    return f"{start_date.day} - {end_date.day} {months[end_date.month - 1]} {end_date.year}"


def month_bounds(year: int, month: int):
    start = date(year, month, 1)
    if month == 12:
        end = date(year + 1, 1, 1)
    else:
        end = date(year, month + 1, 1)
    return start, end


def format_long_date(value: date, language: str = "es") -> str:
    months = MONTHS.get(language, MONTHS["es"])
    month = months[value.month - 1]
    if language == "en":
        return f"{month} {value.day}, {value.year}"
    return f"{value.day} de {month.lower()} de {value.year}"


def now_naive() -> datetime:
    """Local wall-clock time without tzinfo, for comparisons against stored timestamps."""
    return now_local().replace(tzinfo=None)
