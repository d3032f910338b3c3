"""Plan-structure models derived from stored chunks or from calendar dates."""

from pydantic import BaseModel


class PlanYearContext(BaseModel):
    """A calendar date mapped onto the logical plan structure of a document.

    The plan month and plan week are the calendar month and the week of that
    month. Only the year is re-based onto the plan start date.
    """

    calendar_year: int
    calendar_month: int
    calendar_week: int
    plan_year: int
    plan_month: int
    plan_week: int


class PlanCoverage(BaseModel):
    """Summary of which plan years, months and weeks a document's chunks cover.

    Only chunks carrying all three tags are counted.
    """

    document_id: str
    years: list[int]
    months_covered: int
    weeks_covered: int
    chunk_count: int
