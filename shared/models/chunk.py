"""Chunk model: a span of plan document text with optional year/month/week tags."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

SectionType = Literal["year", "month", "week", "content"]


class Chunk(BaseModel):
    """A contiguous span of document text assigned at most one (year, month, week) triple.

    Chunks are created by the StructuralChunker and never mutated afterwards.
    A re-upload of the document produces a new set of chunks.

    Attributes:
        text:     The chunk text, non-empty.
        year:     Plan year (1, 2, 3, ...), if in scope.
        month:    Month number in [1, 12], if in scope.
        week:     Week number, if a week marker is in scope.
        metadata: Free-form key/value data (content chunks record which tags were set).
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1)
    year: int | None = Field(default=None, ge=1)
    month: int | None = Field(default=None, ge=1, le=12)
    week: int | None = Field(default=None, ge=1)
    metadata: dict = {}

    @computed_field
    @property
    def section_type(self) -> SectionType:
        """The most specific tag that is set: week > month > year > content."""
        if self.week is not None:
            return "week"
        if self.month is not None:
            return "month"
        if self.year is not None:
            return "year"
        return "content"
