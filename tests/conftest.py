from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from school import KeyDate, SchoolCalendar, Term

TZ = ZoneInfo("Pacific/Auckland")


def at(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=TZ)


@pytest.fixture
def calendar():
    """The 2024 school year with a handful of holidays and key dates."""
    return SchoolCalendar(
        terms={
            "2024": [
                Term("3 February", "12 April"),
                Term("29 April", "5 July"),
                Term("22 July", "27 September"),
                Term("14 October", "20 December"),
            ],
        },
        holidays=[
            KeyDate("Waitangi Day", "6 February"),
            KeyDate("Anzac Day", "25 April"),
            KeyDate("King's Birthday", "3 June 2024"),
            KeyDate("Matariki", "28 June 2024"),
            KeyDate("Labour Day", "28 October 2024"),
            KeyDate("Christmas Day", "25 December"),
        ],
        key_dates=[
            KeyDate("Teacher only day", "4 June 2024"),
            KeyDate("NCEA exams begin", "7 November", division="Senior"),
        ],
        timezone=TZ,
    )


@pytest.fixture
def bare():
    """No holidays or key dates at all."""
    return SchoolCalendar(terms={}, timezone=TZ)
