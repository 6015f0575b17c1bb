from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

DAY_NAMES = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
    "lunes": 0,
    "martes": 1,
    "miercoles": 2,
    "miércoles": 2,
    "jueves": 3,
    "viernes": 4,
    "sabado": 5,
    "sábado": 5,
    "domingo": 6,
}

MONTH_NAMES = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    "enero": 1,
    "febrero": 2,
    "marzo": 3,
    "abril": 4,
    "mayo": 5,
    "junio": 6,
    "julio": 7,
    "agosto": 8,
    "septiembre": 9,
    "octubre": 10,
    "noviembre": 11,
    "diciembre": 12,
}

# "a las 3" with no am/pm: hours up to this value are read as afternoon.
AFTERNOON_CUTOFF_HOUR = 7


def parse_date_preference(text: str, timezone: ZoneInfo, reference_date: date | None = None) -> date | None:
    """Parse date preference from text. Returns date or None if not found."""
    if reference_date is None:
        reference_date = datetime.now(timezone).date()

    normalized = text.lower().strip()

    if "pasado mañana" in normalized or "day after tomorrow" in normalized:
        return reference_date + timedelta(days=2)

    if "today" in normalized or "hoy" in normalized:
        return reference_date

    # "mañana" alone means tomorrow; "por la mañana" / "de la mañana" is a time of day
    if "tomorrow" in normalized or re.search(r"(?<!la )\bmañana\b", normalized):
        return reference_date + timedelta(days=1)

    for day_name, day_num in DAY_NAMES.items():
        if re.search(rf"\b{day_name}\b", normalized):
            days_ahead = (day_num - reference_date.weekday()) % 7
            if days_ahead == 0:
                days_ahead = 7
            return reference_date + timedelta(days=days_ahead)

    for month_name, month_num in MONTH_NAMES.items():
        if re.search(rf"\b{month_name}\b", normalized):
            day_match = re.search(r"\b(\d{1,2})\b(?!\s*(?::|am|pm))", normalized)
            if day_match:
                day = int(day_match.group(1))
                year = reference_date.year
                if month_num < reference_date.month or (month_num == reference_date.month and day < reference_date.day):
                    year += 1
                try:
                    return date(year, month_num, day)
                except ValueError:
                    pass

    # Day-first numeric dates: 20/10, 20-10-2026
    match = re.search(r"\b(\d{1,2})[/-](\d{1,2})(?:[/-](\d{2,4}))?\b", normalized)
    if match:
        day = int(match.group(1))
        month = int(match.group(2))
        year = int(match.group(3)) if match.group(3) else reference_date.year
        if year < 100:
            year += 2000
        if not match.group(3) and (month < reference_date.month or (month == reference_date.month and day < reference_date.day)):
            year += 1
        try:
            return date(year, month, day)
        except ValueError:
            pass

    return None


def parse_time_preference(text: str) -> tuple[int, int] | None:
    """Parse time preference from text. Returns (hour, minute) or None."""
    normalized = text.lower().strip().replace("p.m.", "pm").replace("a.m.", "am")

    match = re.search(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b", normalized)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if match.group(3) == "pm" and hour != 12:
            hour += 12
        elif match.group(3) == "am" and hour == 12:
            hour = 0
        return _valid_time(hour, minute)

    match = re.search(r"\b(\d{1,2}):(\d{2})\b", normalized)
    if match:
        return _valid_time(int(match.group(1)), int(match.group(2)))

    match = re.search(r"\b(?:a las|at)\s+(\d{1,2})(?::(\d{2}))?\b", normalized)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        afternoon = "tarde" in normalized or "noche" in normalized or "evening" in normalized
        if hour < 12 and (afternoon or 1 <= hour <= AFTERNOON_CUTOFF_HOUR):
            hour += 12
        return _valid_time(hour, minute)

    return None


def parse_requested_datetime(text: str, timezone: ZoneInfo, now: datetime | None = None) -> datetime | None:
    """Combine date and time preferences into an aware datetime. Both parts are required."""
    if now is None:
        now = datetime.now(timezone)
    parsed_date = parse_date_preference(text, timezone, now.astimezone(timezone).date())
    parsed_time = parse_time_preference(text)
    if parsed_date is None or parsed_time is None:
        return None
    hour, minute = parsed_time
    return datetime(parsed_date.year, parsed_date.month, parsed_date.day, hour, minute, tzinfo=timezone)


def _valid_time(hour: int, minute: int) -> tuple[int, int] | None:
    if 0 <= hour <= 23 and 0 <= minute <= 59:
        return (hour, minute)
    return None
