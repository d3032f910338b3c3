"""Structural chunking of plan documents.

A plan document is a hierarchy of "Year N" / month / "Week N" headings with
free text underneath. The chunker walks the lines once, keeps track of the
current year, month and week, and emits a marker chunk for every heading
plus one content chunk per run of text between headings.
"""

import re

from shared.models.chunk import Chunk

YEAR_PATTERN = re.compile(r"(?:year|yr)[\s:]*(\d+)", re.IGNORECASE)
WEEK_PATTERN = re.compile(r"(?:week|wk)[\s:]*(\d+)", re.IGNORECASE)

MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]
MONTH_PATTERN = re.compile(
    r"\b(" + "|".join(MONTH_NAMES)
    + r"|jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)\b",
    re.IGNORECASE,
)


##########################################
############# MONTH MATCHER ##############
##########################################

def match_month_strict(line: str) -> int | None:
    """Find a month name or abbreviation as a whole word.

    Args:
        line (str): A single document line.

    Returns:
        int | None: Month number in [1, 12], or None.
    """
    match = MONTH_PATTERN.search(line)
    if match is None:
        return None
    # every name and abbreviation starts with the month's three-letter prefix
    prefix = match.group(1).lower()[:3]
    return next(i for i, name in enumerate(MONTH_NAMES, start=1) if name.startswith(prefix))


def match_month_loose(line: str) -> int | None:
    """Find a full month name anywhere in the line, also inside longer words (e.g. "JanuaryPlan")."""
    lowered = line.lower()
    for number, name in enumerate(MONTH_NAMES, start=1):
        if name in lowered:
            return number
    return None


def match_month(line: str) -> int | None:
    """Two-stage month detection: whole-word match first, substring fallback second."""
    month = match_month_strict(line)
    if month is not None:
        return month
    return match_month_loose(line)


def _match_number(pattern: re.Pattern, line: str) -> int | None:
    match = pattern.search(line)
    if match is None:
        return None
    value = int(match.group(1))
    # "Year 0" / "Week 0" are not valid headings, the line stays content
    return value if value >= 1 else None


##########################################
################ CHUNKER #################
##########################################

class _ChunkState:
    """Mutable cursor of the single pass: current tags plus the pending content lines."""

    def __init__(self) -> None:
        self.year: int | None = None
        self.month: int | None = None
        self.week: int | None = None
        self.buffer: list[str] = []
        self.chunks: list[Chunk] = []

    def flush(self) -> None:
        content = "\n".join(self.buffer).strip()
        self.buffer = []
        if not content:
            return
        self.chunks.append(Chunk(
            text=content,
            year=self.year,
            month=self.month,
            week=self.week,
            metadata={
                "has_year": self.year is not None,
                "has_month": self.month is not None,
                "has_week": self.week is not None,
            },
        ))

    def marker(self, line: str, year: int | None = None, month: int | None = None, week: int | None = None) -> None:
        self.chunks.append(Chunk(text=line, year=year, month=month, week=week))


def chunk(normalized_text: str) -> list[Chunk]:
    """Split normalised document text into time-tagged chunks.

    Per line, in priority order: a year heading sets the year and clears the
    week (the month carries forward), a month heading sets the month and
    clears the week, a week heading sets the week, anything else is buffered
    as content. Every heading first flushes the buffered content under the
    previous tags and then emits its own marker chunk.

    Never raises. Text without any recognisable structure becomes a single
    untagged content chunk; blank text yields no chunks.

    Args:
        normalized_text (str): Output of TextNormalizer.clean.

    Returns:
        list[Chunk]: Chunks in document order.
    """
    if not normalized_text or not normalized_text.strip():
        return []

    state = _ChunkState()
    for raw_line in normalized_text.split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        year = _match_number(YEAR_PATTERN, line)
        if year is not None:
            state.flush()
            state.year = year
            state.week = None
            state.marker(line, year=year)
            continue

        month = match_month(line)
        if month is not None:
            state.flush()
            state.month = month
            state.week = None
            state.marker(line, year=state.year, month=month)
            continue

        week = _match_number(WEEK_PATTERN, line)
        if week is not None:
            state.flush()
            state.week = week
            state.marker(line, year=state.year, month=state.month, week=week)
            continue

        state.buffer.append(line)

    state.flush()

    if not state.chunks:
        return [Chunk(text=normalized_text.strip())]
    return state.chunks
