import datetime

from pydantic import BaseModel, Field

from shared.models.search import SearchOptions, TimeContext


class IngestRequest(BaseModel):
    text: str = Field(min_length=1)


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    context: TimeContext
    options: SearchOptions = SearchOptions()


class CalendarRequest(BaseModel):
    calendar_date: datetime.date
    plan_start_date: datetime.date


class PlanContextRequest(CalendarRequest):
    query: str | None = None  # defaults to the generated plan query
    options: SearchOptions = SearchOptions()
