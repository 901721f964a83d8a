"""Typed containers shared across the matching modules."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class IdentifierKind(str, Enum):
    UPC_A = "UPC-A"
    EAN_13 = "EAN-13"
    EAN_8 = "EAN-8"
    INVALID = "invalid"


@dataclass(frozen=True)
class NormalizedIdentifier:
    """Barcode digits after cleaning, with its symbology and checksum verdict."""

    kind: IdentifierKind
    digits: str
    is_valid: bool


@dataclass(frozen=True)
class ParsedLot:
    raw: str
    normalized: str
    prefix: Optional[str] = None
    date_digits: Optional[str] = None
    suffix: Optional[str] = None


@dataclass(frozen=True)
class ParsedExpiry:
    raw: str
    normalized: str  # YYYY-MM-DD
    confidence: float


@dataclass(frozen=True)
class ExtractedFields:
    """Lots and expiries pulled out of a multi-line OCR / manual-entry blob."""

    lots: List[ParsedLot] = field(default_factory=list)
    expiries: List[ParsedExpiry] = field(default_factory=list)


@dataclass(frozen=True)
class CompiledLotPattern:
    """
    A recall's lot regex, compiled once. ``regex`` is None when the source
    pattern did not compile; such a pattern never matches anything.
    """

    pattern: str
    regex: Optional[re.Pattern] = None

    @property
    def is_valid(self) -> bool:
        return self.regex is not None

    def matches(self, lot: str) -> bool:
        if self.regex is None or not lot:
            return False
        return self.regex.search(lot) is not None


@dataclass(frozen=True)
class TextMatch:
    """Best candidate found by a fuzzy finder, with its score."""

    value: str
    similarity: float
