from __future__ import annotations

"""
Lot code and expiry date parsing.

Input is a single line of manual entry or OCR output. Patterns are tried
in order and the first hit wins; nothing here raises on bad text.

Public helpers:

* parse_lot_code(text) -> ParsedLot | None
* parse_expiry_date(text) -> ParsedExpiry | None
* extract_from_text(text) -> ExtractedFields
    One fact per line: a line that parses as a lot is never also read as
    an expiry, so a second fact on the same line is dropped.
* matches_lot_pattern(lot, pattern) -> bool
* is_date_in_range(date, start, end) -> bool
"""

import re
from datetime import date, datetime
from typing import List, Optional, Union

from loguru import logger

from .config import EXPIRY_PATTERN_CONFIDENCE, MAX_INPUT_CHARS, TWO_DIGIT_YEAR_PIVOT
from .pipeline_types import CompiledLotPattern, ExtractedFields, ParsedExpiry, ParsedLot

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# Applied to trimmed, upper-cased text.
LOT_PATTERNS: List[re.Pattern] = [
    # L2207A, L2207, 2207A
    re.compile(r"^(?P<prefix>[A-Z]?)(?P<digits>\d{4,6})(?P<suffix>[A-Z]?)$"),
    # LOT: 12345, LOT A12345, LOT#12345
    re.compile(r"^LOT[:#\s]*(?P<prefix>[A-Z]?)(?P<digits>\d{4,})$"),
    re.compile(r"^BATCH[:#\s]*(?P<prefix>[A-Z]?)(?P<digits>\d{4,})$"),
    re.compile(r"^SERIAL[:#\s]*(?P<prefix>[A-Z]?)(?P<digits>\d{4,})$"),
    re.compile(r"^MODEL[:#\s]*(?P<prefix>[A-Z]?)(?P<digits>\d{4,})$"),
]

_MDY = r"(?P<m>\d{1,2})[/\-\s](?P<d>\d{1,2})[/\-\s](?P<y>\d{4}|\d{2})"

EXPIRY_PATTERNS: List[re.Pattern] = [
    # 01/15/2025, 01-15-2025, 01 15 2025
    re.compile(r"^(?P<m>\d{1,2})[/\-\s](?P<d>\d{1,2})[/\-\s](?P<y>\d{4})$"),
    # 01/15/25, 01-15-25
    re.compile(r"^(?P<m>\d{1,2})[/\-](?P<d>\d{1,2})[/\-](?P<y>\d{2})$"),
    # 2025-01-15
    re.compile(r"^(?P<y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})$"),
    re.compile(r"^BEST\s+(?:IF\s+)?(?:USED\s+)?BY[:\s]*" + _MDY + r"$", re.IGNORECASE),
    re.compile(r"^EXP[.:\s]*" + _MDY + r"$", re.IGNORECASE),
    re.compile(r"^USE\s+BY[:\s]*" + _MDY + r"$", re.IGNORECASE),
    re.compile(r"^SELL\s+BY[:\s]*" + _MDY + r"$", re.IGNORECASE),
]


def _clip(text: Optional[str]) -> str:
    # over-long lines are rejected outright, never truncated
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)
    text = text.strip()
    if len(text) > MAX_INPUT_CHARS:
        return ""
    return text


def _expand_year(raw: str) -> int:
    yy = int(raw)
    if len(raw) != 2:
        return yy
    return 2000 + yy if yy < TWO_DIGIT_YEAR_PIVOT else 1900 + yy


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_lot_code(text: Optional[str]) -> Optional[ParsedLot]:
    """Parse a lot / batch / serial code; first matching pattern wins."""
    raw = _clip(text)
    if not raw:
        return None
    cleaned = raw.upper()

    for pattern in LOT_PATTERNS:
        m = pattern.match(cleaned)
        if not m:
            continue
        groups = m.groupdict()
        prefix = groups.get("prefix") or ""
        digits = groups.get("digits") or ""
        suffix = groups.get("suffix") or ""
        return ParsedLot(
            raw=raw,
            normalized=f"{prefix}{digits}{suffix}",
            prefix=prefix or None,
            date_digits=digits or None,
            suffix=suffix or None,
        )
    return None


def parse_expiry_date(text: Optional[str]) -> Optional[ParsedExpiry]:
    """
    Parse a printed best-by / expiry date into ISO form.

    Month and day are range checked, then the calendar has the final say:
    02/29/23 is rejected, 02/29/24 is accepted.
    """
    raw = _clip(text)
    if not raw:
        return None

    for pattern in EXPIRY_PATTERNS:
        m = pattern.match(raw)
        if not m:
            continue
        month = int(m.group("m"))
        day = int(m.group("d"))
        year = _expand_year(m.group("y"))

        if not (1 <= month <= 12 and 1 <= day <= 31):
            continue
        try:
            parsed = date(year, month, day)
        except ValueError:
            continue

        return ParsedExpiry(
            raw=raw,
            normalized=parsed.isoformat(),
            confidence=EXPIRY_PATTERN_CONFIDENCE,
        )
    return None


def extract_from_text(text: Optional[str]) -> ExtractedFields:
    """Split an OCR / manual-entry blob into lines and parse each one once."""
    if not text:
        return ExtractedFields()

    lots: List[ParsedLot] = []
    expiries: List[ParsedExpiry] = []
    for line in str(text).splitlines():
        line = line.strip()
        if not line:
            continue
        lot = parse_lot_code(line)
        if lot is not None:
            lots.append(lot)
            continue
        expiry = parse_expiry_date(line)
        if expiry is not None:
            expiries.append(expiry)

    return ExtractedFields(lots=lots, expiries=expiries)


def compile_lot_pattern(pattern: str) -> CompiledLotPattern:
    """Compile a recall's lot regex case-insensitively; bad regexes are kept as invalid."""
    try:
        return CompiledLotPattern(pattern=pattern, regex=re.compile(pattern, re.IGNORECASE))
    except (re.error, TypeError) as e:
        logger.warning("Skipping malformed lot pattern {!r}: {}", pattern, e)
        return CompiledLotPattern(pattern=str(pattern), regex=None)


def matches_lot_pattern(lot: Optional[str], pattern: Union[str, CompiledLotPattern]) -> bool:
    """Case-insensitive regex search. Malformed patterns never match."""
    if not lot:
        return False
    compiled = pattern if isinstance(pattern, CompiledLotPattern) else compile_lot_pattern(pattern)
    return compiled.matches(lot.strip())


def parse_calendar_date(value: Union[str, date, None]) -> Optional[date]:
    """ISO date / datetime, or any printed shape parse_expiry_date understands."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    s = _clip(value)
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    parsed = parse_expiry_date(s)
    if parsed is None:
        return None
    return date.fromisoformat(parsed.normalized)


def is_date_in_range(
    value: Union[str, date, None],
    start: Union[str, date, None] = None,
    end: Union[str, date, None] = None,
) -> bool:
    """
    Inclusive range check. An unreadable target is never in range, and a
    bound that is present but unreadable fails the check.
    """
    target = parse_calendar_date(value)
    if target is None:
        return False

    if start:
        lower = parse_calendar_date(start)
        if lower is None or target < lower:
            return False

    if end:
        upper = parse_calendar_date(end)
        if upper is None or target > upper:
            return False

    return True
