"""Text normalisation for extracted plan documents.

Strips the noise that PDF/Word extraction leaves behind (page numbers,
running headers and footers, legal boilerplate, whitespace runs) so that the
structural chunker only sees meaningful lines.
"""

import re

SHORT_LINE_LENGTH = 20       # lines shorter than this are header/footer candidates
MIN_REPEAT_THRESHOLD = 3     # a short line must recur more often than this to be dropped
REPEAT_LINE_RATIO = 0.1      # ... or more often than this share of all lines

PAGE_NUMBER_PATTERNS = [
    re.compile(r"\bPage\s+\d+\s+of\s+\d+\b", re.IGNORECASE),
    re.compile(r"\bPage\s+\d+\b", re.IGNORECASE),
    re.compile(r"\b\d+\s*/\s*\d+\b"),
    re.compile(r"\b\d+\s*of\s*\d+\b", re.IGNORECASE),
]
STANDALONE_NUMBER_LINE = re.compile(r"^[ \t]*\d+[ \t]*$", re.MULTILINE)

BOILERPLATE_PATTERNS = [
    re.compile(r"^(confidential|proprietary|internal use only|draft|final|version)", re.IGNORECASE),
    re.compile(r"^(©|copyright|all rights reserved)", re.IGNORECASE),
    re.compile(r"^generated on:", re.IGNORECASE),
    re.compile(r"^last updated:", re.IGNORECASE),
]


def _strip_page_numbers(text: str) -> str:
    for pattern in PAGE_NUMBER_PATTERNS:
        text = pattern.sub("", text)
    return STANDALONE_NUMBER_LINE.sub("", text)


def _strip_repeated_short_lines(text: str) -> str:
    """Drop short lines that recur often enough to be running headers or footers."""
    lines = text.split("\n")
    counts: dict[str, int] = {}
    for line in lines:
        trimmed = line.strip()
        if trimmed and len(trimmed) < SHORT_LINE_LENGTH:
            counts[trimmed] = counts.get(trimmed, 0) + 1

    threshold = max(MIN_REPEAT_THRESHOLD, int(len(lines) * REPEAT_LINE_RATIO))
    repeated = {line for line, count in counts.items() if count > threshold}
    if not repeated:
        return text
    return "\n".join(line for line in lines if line.strip() not in repeated)


def _strip_boilerplate(text: str) -> str:
    kept = []
    for line in text.split("\n"):
        trimmed = line.strip()
        if any(pattern.match(trimmed) for pattern in BOILERPLATE_PATTERNS):
            continue
        kept.append(line)
    return "\n".join(kept)


def _normalise_whitespace(text: str) -> str:
    text = text.replace("\f", "")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r" {3,}", " ", text)
    lines = [line.strip() for line in text.split("\n")]
    return "\n".join(line for line in lines if line).strip()


def _clean_once(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _strip_page_numbers(text)
    text = _strip_repeated_short_lines(text)
    text = _strip_boilerplate(text)
    return _normalise_whitespace(text)


def clean(raw_text: str) -> str:
    """Remove extraction noise from a whole document.

    Dropping lines changes the repeat threshold of the header/footer pass, so
    the passes are applied until the text no longer changes. This keeps
    clean(clean(x)) == clean(x).

    Args:
        raw_text (str): Text as extracted from the uploaded file.

    Returns:
        str: The cleaned text. Empty if nothing meaningful remains.
    """
    if not raw_text or not raw_text.strip():
        return ""

    text = _clean_once(raw_text)
    while True:
        again = _clean_once(text)
        if again == text:
            return text
        text = again


def clean_chunk(text: str) -> str:
    """Lighter clean-up for a single chunk: line endings, space runs and line trimming only.

    Args:
        text (str): The chunk text.

    Returns:
        str: The cleaned chunk text.
    """
    if not text or not text.strip():
        return ""
    return _normalise_whitespace(text)
