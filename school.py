from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Iterable, Mapping
from zoneinfo import ZoneInfo

HOME_TIMEZONE = "Pacific/Auckland"
HOLIDAYS = "Holidays"
ONE_DAY = timedelta(days=1)

DATE_FORMATS = ("%d %B %Y", "%A %d %B %Y", "%d %b %Y")
YEAR_RE = re.compile(r"\b\d{4}$")


class CalendarError(Exception):
    """Base class for all school calendar errors."""


class DateParseError(CalendarError, ValueError):
    pass


class DatasetError(CalendarError):
    pass


@dataclass(frozen=True)
class Term:
    start: str
    end: str


@dataclass(frozen=True)
class KeyDate:
    name: str
    date: str
    division: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {"name": self.name, "date": self.date}
        if self.division:
            data["division"] = self.division
        return data


@dataclass(frozen=True)
class TermSummary:
    year: str
    start_date: str
    end_date: str
    total_calendar_days: int
    school_weeks: int
    school_days: int
    weekends: int
    days_remaining: int | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "year": self.year,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "totalCalendarDays": self.total_calendar_days,
            "schoolWeeks": self.school_weeks,
            "schoolDays": self.school_days,
            "weekends": self.weekends,
        }
        if self.days_remaining is not None:
            data["daysRemaining"] = self.days_remaining
        return data


@dataclass(frozen=True)
class YearSummary:
    school_days_total: int
    school_days_remaining: int
    current_term: int | str
    term: TermSummary | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "schoolDaysTotal": self.school_days_total,
            "schoolDaysRemaining": self.school_days_remaining,
            "currentTerm": self.current_term,
            "term": self.term.to_dict() if self.term else None,
        }


@dataclass(frozen=True)
class SchoolCalendar:
    """Terms, holidays and key dates loaded once at startup.

    The terms mapping is wrapped read-only and the lists are stored as tuples.
    """

    terms: Mapping[str, tuple[Term, ...]] = field(default_factory=dict)
    holidays: tuple[KeyDate, ...] = ()
    key_dates: tuple[KeyDate, ...] = ()
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo(HOME_TIMEZONE))

    def __post_init__(self) -> None:
        terms = {str(year): tuple(items) for year, items in self.terms.items()}
        object.__setattr__(self, "terms", MappingProxyType(terms))
        object.__setattr__(self, "holidays", tuple(self.holidays))
        object.__setattr__(self, "key_dates", tuple(self.key_dates))

    def now(self) -> datetime:
        return datetime.now(self.timezone)


def normalize_date_text(value: str) -> str:
    return " ".join(word.capitalize() if word.isalpha() else word for word in value.split())


def has_year(value: str) -> bool:
    return bool(YEAR_RE.search(value.strip()))


def parse_date(value: str, year: str | int | None = None, tz: ZoneInfo | None = None) -> datetime:
    """Parse a day/month string into local midnight in the home timezone.

    A year already present in the text wins over ``year``. Bare day/month
    text without a ``year`` falls back to the current year in ``tz``.
    """
    tz = tz or ZoneInfo(HOME_TIMEZONE)
    text = normalize_date_text(str(value))
    if not has_year(text):
        if year is None or str(year).strip() == "":
            year = datetime.now(tz).year
        text = f"{text} {str(year).strip()}"
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=tz)
        except ValueError:
            continue
    raise DateParseError(f"Unrecognized date format: {value!r}")


def weekday_index(instant: datetime) -> int:
    return instant.weekday()


def term_dates(term: Term, year: str, tz: ZoneInfo) -> tuple[datetime, datetime]:
    return parse_date(term.start, year, tz), parse_date(term.end, year, tz)


def holidays_in_range(
    calendar: SchoolCalendar, start: datetime, end: datetime, year: str
) -> list[KeyDate]:
    # A holiday occupies its whole day, so it must finish by the end boundary.
    found: list[KeyDate] = []
    for holiday in calendar.holidays:
        day = parse_date(holiday.date, year, calendar.timezone)
        if start < day and day + ONE_DAY <= end:
            found.append(holiday)
    return found


def key_dates_in_range(
    calendar: SchoolCalendar, start: datetime, end: datetime, year: str
) -> list[KeyDate]:
    found: list[KeyDate] = []
    for key_date in calendar.key_dates:
        day = parse_date(key_date.date, year, calendar.timezone)
        if start < day < end:
            found.append(key_date)
    return found


def calc_term(calendar: SchoolCalendar, term: Term, year: str) -> TermSummary:
    start, end = term_dates(term, year, calendar.timezone)
    first_week_days = max(0, 5 - weekday_index(start) - 1)
    last_week_days = weekday_index(end) + 1
    total_days = (end.date() - start.date()).days + 1
    # int() truncates toward zero; floor division would go negative for short terms.
    school_weeks = int((total_days - first_week_days - last_week_days) / 7)
    holiday_count = len(holidays_in_range(calendar, start, end, year))
    return TermSummary(
        year=year,
        start_date=term.start,
        end_date=term.end,
        total_calendar_days=total_days,
        school_weeks=school_weeks,
        school_days=school_weeks * 5 + first_week_days + last_week_days - holiday_count,
        weekends=school_weeks + 1,
    )


def get_terms(calendar: SchoolCalendar, year: str) -> list[TermSummary]:
    return [calc_term(calendar, term, year) for term in calendar.terms.get(year, ())]


def term_events(calendar: SchoolCalendar) -> list[KeyDate]:
    events: list[KeyDate] = []
    for year, terms in calendar.terms.items():
        for index, term in enumerate(terms, start=1):
            events.append(KeyDate(f"Term {index} Starts", f"{term.start} {year}"))
            events.append(KeyDate(f"Term {index} Ends", f"{term.end} {year}"))
    return events


def sort_events(
    events: Iterable[KeyDate], now: datetime, tz: ZoneInfo
) -> list[KeyDate]:
    """Sort events by date and drop the ones that are already over."""
    placeholder = str(now.astimezone(tz).year)
    dated = sorted(
        ((parse_date(event.date, placeholder, tz), event) for event in events),
        key=lambda item: item[0],
    )
    for index, (day, _) in enumerate(dated):
        if day + ONE_DAY > now:
            return [event for _, event in dated[index:]]
    return []


def get_events(calendar: SchoolCalendar, now: datetime | None = None) -> list[KeyDate]:
    now = now or calendar.now()
    events = list(calendar.holidays) + list(calendar.key_dates) + term_events(calendar)
    return sort_events(events, now, calendar.timezone)


def get_summary(
    calendar: SchoolCalendar, year: str, now: datetime | None = None
) -> YearSummary:
    now = now or calendar.now()
    total = 0
    remaining = 0
    current_term: int | str = HOLIDAYS
    current: TermSummary | None = None

    for index, term in enumerate(calendar.terms.get(year, ()), start=1):
        this = calc_term(calendar, term, year)
        start, end = term_dates(term, year, calendar.timezone)
        if current is None and start < now < end:
            today = now.astimezone(calendar.timezone)
            rest = calc_term(calendar, Term(f"{today.day} {today:%B}", term.end), year)
            this = replace(this, days_remaining=rest.school_days)
            remaining += rest.school_days
            current_term = index
            current = this
        else:
            # Finished terms still count in full.
            remaining += this.school_days
        total += this.school_days

    return YearSummary(
        school_days_total=total,
        school_days_remaining=remaining,
        current_term=current_term,
        term=current,
    )


def build_report(
    calendar: SchoolCalendar, year: str, now: datetime | None = None
) -> dict[str, object]:
    """Upcoming terms of a year with their holidays and key dates listed."""
    now = now or calendar.now()
    terms: list[dict[str, object]] = []
    total = 0
    for term in calendar.terms.get(year, ()):
        start, end = term_dates(term, year, calendar.timezone)
        if start < now:
            continue
        this = calc_term(calendar, term, year)
        data = this.to_dict()
        data["holidays"] = [h.to_dict() for h in holidays_in_range(calendar, start, end, year)]
        data["keyDates"] = [k.to_dict() for k in key_dates_in_range(calendar, start, end, year)]
        terms.append(data)
        total += this.school_days
    return {"year": year, "schoolDaysTotal": total, "terms": terms}
