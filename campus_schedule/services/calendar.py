"""Academic calendar helpers: day names, term weeks and session dates."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from dateutil.relativedelta import MO, relativedelta
from dateutil.rrule import WEEKLY, rrule

from campus_schedule.domain.models import ScheduleEvent

_WEEKDAY_INDEX = {
    "Monday": 0,
    "Tuesday": 1,
    "Wednesday": 2,
    "Thursday": 3,
    "Friday": 4,
    "Saturday": 5,
    "Sunday": 6,
}

# Spanish names appear in schedules entered by the administration staff.
_DAY_ALIASES = {
    "monday": "Monday",
    "mon": "Monday",
    "lunes": "Monday",
    "tuesday": "Tuesday",
    "tue": "Tuesday",
    "martes": "Tuesday",
    "wednesday": "Wednesday",
    "wed": "Wednesday",
    "miercoles": "Wednesday",
    "miércoles": "Wednesday",
    "thursday": "Thursday",
    "thu": "Thursday",
    "jueves": "Thursday",
    "friday": "Friday",
    "fri": "Friday",
    "viernes": "Friday",
    "saturday": "Saturday",
    "sat": "Saturday",
    "sabado": "Saturday",
    "sábado": "Saturday",
    "sunday": "Sunday",
    "sun": "Sunday",
    "domingo": "Sunday",
}


def normalize_day(name: str | None) -> str | None:
    """Return the canonical English day name, or ``None`` if unrecognised."""
    if not name:
        return None
    return _DAY_ALIASES.get(name.strip().casefold())


def seconds_of_day(value: time) -> int:
    return value.hour * 3600 + value.minute * 60 + value.second


def session_hours(start: time, end: time) -> float:
    """Length of a single session in hours (negative for inverted ranges)."""
    return (seconds_of_day(end) - seconds_of_day(start)) / 3600


def week_start(day: date) -> date:
    """Monday of the calendar week containing *day*."""
    return day + relativedelta(weekday=MO(-1))


def week_of_term(term_start: date, day: date) -> int:
    """1-based term week of *day*; week 1 is the week containing *term_start*."""
    return (week_start(day) - week_start(term_start)).days // 7 + 1


def weeks_for_dates(term_start: date, start: date, end: date) -> tuple[int, int]:
    """Convert an absolute date range into ``(start_week, end_week)``.

    Raises ``ValueError`` if the range is inverted or begins before the term.
    """
    if end < start:
        raise ValueError("end date must not precede start date")
    if start < term_start:
        raise ValueError(
            f"dates must not precede the term start ({term_start.isoformat()})"
        )
    return week_of_term(term_start, start), week_of_term(term_start, end)


def session_dates(event: ScheduleEvent, term_start: date) -> list[date]:
    """Expand an event into the concrete dates of each weekly session.

    Sessions falling before *term_start* (inside week 1) are dropped.
    Raises ``ValueError`` when the event's day is not a known weekday.
    """
    day = normalize_day(event.day)
    if day is None:
        raise ValueError(f"Unknown day {event.day!r}")
    if event.end_week < event.start_week:
        return []

    first_monday = week_start(term_start) + timedelta(weeks=event.start_week - 1)
    last_sunday = week_start(term_start) + timedelta(weeks=event.end_week, days=-1)
    rule = rrule(
        WEEKLY,
        byweekday=_WEEKDAY_INDEX[day],
        dtstart=datetime.combine(first_monday, time()),
        until=datetime.combine(last_sunday, time()),
    )
    return [dt.date() for dt in rule if dt.date() >= term_start]
