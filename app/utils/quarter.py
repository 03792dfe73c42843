"""Quarter and ISO week calendar utilities."""
from datetime import date, timedelta
from typing import NamedTuple


class QuarterWeeks(NamedTuple):
    """ISO weeks belonging to a quarter."""

    start_week: int
    end_week: int
    weeks: list[int]
    start_date: date
    end_date: date


class WeekRef(NamedTuple):
    """An ISO week identified by week-year and week number."""

    year: int
    week_number: int


def _thursday_of(day: date) -> date:
    """Thursday of the ISO week containing ``day``."""
    return day + timedelta(days=3 - day.weekday())


def get_quarter_date_range(year: int, quarter: int) -> tuple[date, date]:
    """
    Get the first and last calendar day of a quarter.

    Args:
        year: Calendar year
        quarter: Quarter number (1-4)

    Returns:
        Tuple of (start_date, end_date), both inclusive

    Examples:
        >>> get_quarter_date_range(2025, 1)
        (datetime.date(2025, 1, 1), datetime.date(2025, 3, 31))
    """
    if quarter not in (1, 2, 3, 4):
        raise ValueError(f"Quarter must be between 1 and 4, got {quarter}")

    start_date = date(year, (quarter - 1) * 3 + 1, 1)
    if quarter == 4:
        end_date = date(year + 1, 1, 1) - timedelta(days=1)
    else:
        end_date = date(year, start_date.month + 3, 1) - timedelta(days=1)
    return start_date, end_date


def get_quarter_weeks(year: int, quarter: int) -> QuarterWeeks:
    """
    Get the ISO week numbers that make up a quarter.

    A week belongs to the quarter when its Thursday falls inside it. At the
    year boundaries the week straddling January 1st is kept in Q1 under its
    previous-year number, and the week straddling December 31st is kept in
    Q4 under its current number.

    Args:
        year: Calendar year
        quarter: Quarter number (1-4)

    Returns:
        QuarterWeeks with the first, last, and all week numbers
    """
    start_date, end_date = get_quarter_date_range(year, quarter)

    weeks: list[int] = []
    current = start_date
    while current <= end_date:
        thursday = _thursday_of(current)

        if quarter == 1 and thursday.year < year:
            weeks.append(thursday.isocalendar()[1])
        elif quarter == 4 and thursday.year > year:
            weeks.append(current.isocalendar()[1])
        elif start_date <= thursday <= end_date:
            weeks.append(current.isocalendar()[1])

        current += timedelta(weeks=1)

    return QuarterWeeks(
        start_week=weeks[0],
        end_week=weeks[-1],
        weeks=weeks,
        start_date=start_date,
        end_date=end_date,
    )


def get_first_week_of_quarter(year: int, quarter: int) -> WeekRef:
    """
    Get the ISO week containing the first Thursday of a quarter.

    Examples:
        >>> get_first_week_of_quarter(2025, 2)
        WeekRef(year=2025, week_number=14)
    """
    start_date, _ = get_quarter_date_range(year, quarter)
    current = start_date
    while current.weekday() != 3:
        current += timedelta(days=1)

    iso_year, week_number, _ = current.isocalendar()
    return WeekRef(year=iso_year, week_number=week_number)


def get_final_weeks_of_quarter(year: int, quarter: int) -> list[WeekRef]:
    """
    Get the final ISO week of a quarter.

    Returns a list so callers can treat year-boundary cases uniformly.

    Examples:
        >>> get_final_weeks_of_quarter(2025, 1)
        [WeekRef(year=2025, week_number=13)]
    """
    _, end_date = get_quarter_date_range(year, quarter)

    last_thursday = _thursday_of(end_date)
    if last_thursday > end_date:
        last_thursday -= timedelta(weeks=1)

    iso_year, week_number, _ = last_thursday.isocalendar()
    return [WeekRef(year=iso_year, week_number=week_number)]


def get_previous_quarter(year: int, quarter: int) -> tuple[int, int]:
    """
    Get the quarter before the given one.

    Examples:
        >>> get_previous_quarter(2025, 1)
        (2024, 4)
        >>> get_previous_quarter(2025, 3)
        (2025, 2)
    """
    if quarter == 1:
        return year - 1, 4
    return year, quarter - 1


def get_quarter_for_iso_week(year: int, week_number: int) -> int:
    """
    Get the quarter that contains the Thursday of an ISO week.

    Args:
        year: ISO week-year
        week_number: ISO week number (1-53)

    Returns:
        Quarter number (1-4)

    Examples:
        >>> get_quarter_for_iso_week(2025, 14)
        2
    """
    thursday = date.fromisocalendar(year, week_number, 4)
    return (thursday.month - 1) // 3 + 1
