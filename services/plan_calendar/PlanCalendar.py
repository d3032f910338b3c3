"""Mapping of calendar dates onto the Year 1 / Year 2 / Year 3 structure of a plan document."""

import datetime

from shared.models.plan import PlanYearContext
from shared.models.search import TimeContext

DAYS_PER_PLAN_YEAR = 365.25

PLAN_QUERY_TEMPLATE = "What activities and milestones are planned for {month_name} week {week} in year {plan_year}?"

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def _start_of_week(day: datetime.date) -> datetime.date:
    """Monday of the week containing day."""
    return day - datetime.timedelta(days=day.weekday())


def week_of_year(day: datetime.date) -> int:
    """Locale week number with Monday-start weeks where week 1 contains January 1st.

    Days at the end of December that share a week with the next January 1st
    belong to week 1 of the next year.
    """
    week_year = day.year
    if day >= _start_of_week(datetime.date(day.year + 1, 1, 1)):
        week_year += 1
    first_week_start = _start_of_week(datetime.date(week_year, 1, 1))
    return (_start_of_week(day) - first_week_start).days // 7 + 1


def week_of_month(day: datetime.date) -> int:
    """Week of the month (Monday-start), at least 1."""
    return max(1, week_of_year(day) - week_of_year(day.replace(day=1)) + 1)


def map_calendar_to_plan_year(calendar_date: datetime.date, plan_start_date: datetime.date) -> PlanYearContext:
    """Map a calendar date to the plan year, month and week it falls into.

    The plan year counts 365.25-day periods from the plan start date, starting
    at 1. Dates before the start map to year 1. Month and week are taken from
    the calendar.

    Args:
        calendar_date (datetime.date): The date to map (e.g. the timesheet date).
        plan_start_date (datetime.date): The date the plan's Year 1 starts.

    Returns:
        PlanYearContext: Calendar and plan coordinates of the date.
    """
    if isinstance(calendar_date, datetime.datetime):
        calendar_date = calendar_date.date()
    if isinstance(plan_start_date, datetime.datetime):
        plan_start_date = plan_start_date.date()

    days = (calendar_date - plan_start_date).days
    plan_year = max(1, int(days // DAYS_PER_PLAN_YEAR) + 1)
    week = week_of_month(calendar_date)

    return PlanYearContext(
        calendar_year=calendar_date.year,
        calendar_month=calendar_date.month,
        calendar_week=week,
        plan_year=plan_year,
        plan_month=calendar_date.month,
        plan_week=week,
    )


def to_time_context(context: PlanYearContext) -> TimeContext:
    return TimeContext(plan_year=context.plan_year, month=context.plan_month, week=context.plan_week)


def month_name(month: int) -> str:
    """English month name for a month number in [1, 12].

    Raises:
        ValueError: If month is out of range.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}.")
    return MONTH_NAMES[month - 1]


def build_plan_query(context: PlanYearContext) -> str:
    """Natural-language retrieval query for a plan position."""
    return PLAN_QUERY_TEMPLATE.format(
        month_name=month_name(context.plan_month),
        week=context.plan_week,
        plan_year=context.plan_year,
    )
