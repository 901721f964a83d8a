from __future__ import annotations

import os
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:  # pragma: no cover
    from .pipeline_types import CompiledLotPattern


# ---------------------------
# Paths
# ---------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
RECALL_CATALOG_PATH = Path(
    os.getenv("RECALL_CATALOG_PATH", str(DATA_DIR / "recalls.json"))
)

LOG_DIR = PROJECT_ROOT / "logs"


# ---------------------------
# Text similarity
# ---------------------------

DEFAULT_BRAND_THRESHOLD = 0.8
DEFAULT_PRODUCT_THRESHOLD = 0.7

BRAND_SIMILARITY_THRESHOLD = float(
    os.getenv("RECALL_BRAND_THRESHOLD", str(DEFAULT_BRAND_THRESHOLD))
)
PRODUCT_SIMILARITY_THRESHOLD = float(
    os.getenv("RECALL_PRODUCT_THRESHOLD", str(DEFAULT_PRODUCT_THRESHOLD))
)

NGRAM_SIZE = 2

WINKLER_PREFIX_MAX = 4     # leading chars that earn the prefix bonus
WINKLER_SCALE = 0.1

# Dropped by normalize_text before any comparison
STOP_WORDS = frozenset(
    ["the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by"]
)

MAX_INPUT_CHARS = 2_000  # cleaning truncates past this; lot/expiry lines past it are rejected


# ---------------------------
# Lot / expiry parsing
# ---------------------------

TWO_DIGIT_YEAR_PIVOT = 50   # yy < 50 -> 20yy, else 19yy
EXPIRY_PATTERN_CONFIDENCE = 0.9


# ---------------------------
# Decision tiers
# ---------------------------

UPC_MATCH_CONFIDENCE = 0.95
UPC_LOT_MISMATCH_CONFIDENCE = 0.8
CONSTRAINED_MATCH_CONFIDENCE = 0.85
CONSTRAINED_MISMATCH_CONFIDENCE = 0.7
UNCONSTRAINED_MATCH_CONFIDENCE = 0.6


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class RecallSource(str, Enum):
    """Agency that published the recall."""

    FDA = "FDA"
    FSIS = "FSIS"
    CPSC = "CPSC"


class RecallStatus(str, Enum):
    ONGOING = "ongoing"
    TERMINATED = "terminated"
    UNKNOWN = "unknown"


class Decision(str, Enum):
    """Traffic-light verdict returned to the consumer."""

    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


def _dedupe(values: List[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


class ValidityWindow(BaseModel):
    """Inclusive range of affected expiry dates (ISO strings)."""

    model_config = ConfigDict(frozen=True)

    start: Optional[str] = None
    end: Optional[str] = None

    def is_bounded(self) -> bool:
        return bool(self.start or self.end)


class RecallLinks(BaseModel):
    model_config = ConfigDict(frozen=True)

    official: str = ""
    manufacturer: Optional[str] = None


class RecallRecord(BaseModel):
    """
    Canonical schema for one official recall, already normalised by the
    data-retrieval side. Brand variants are lowercased; brand and upcs are
    de-duplicated in first-seen order.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    source: RecallSource
    brand: List[str] = Field(default_factory=list)
    product: str = ""
    upcs: List[str] = Field(default_factory=list)
    lot_patterns: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("lot_patterns", "lotPatterns", "lotRegex"),
        serialization_alias="lotPatterns",
    )
    validity_window: Optional[ValidityWindow] = Field(
        default=None,
        validation_alias=AliasChoices("validity_window", "validityWindow", "expiration"),
        serialization_alias="validityWindow",
    )
    hazard: str = ""
    actions: List[str] = Field(default_factory=list)
    jurisdictions: Optional[List[str]] = None
    links: RecallLinks = Field(default_factory=RecallLinks)
    published: str = ""
    updated: Optional[str] = None
    status: RecallStatus = RecallStatus.UNKNOWN

    @field_validator("source", mode="before")
    @classmethod
    def upper_source(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("status", mode="before")
    @classmethod
    def lower_status(cls, v):
        if v is None:
            return RecallStatus.UNKNOWN
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("brand")
    @classmethod
    def normalise_brands(cls, v: List[str]) -> List[str]:
        return _dedupe([b.strip().lower() for b in v])

    @field_validator("upcs")
    @classmethod
    def dedupe_upcs(cls, v: List[str]) -> List[str]:
        return _dedupe([u.strip() for u in v])

    def has_lot_restriction(self) -> bool:
        return bool(self.lot_patterns)

    def has_date_restriction(self) -> bool:
        return self.validity_window is not None and self.validity_window.is_bounded()

    def is_constrained(self) -> bool:
        return self.has_lot_restriction() or self.has_date_restriction()

    @cached_property
    def compiled_lot_patterns(self) -> Tuple["CompiledLotPattern", ...]:
        """
        Lot patterns compiled once per record; malformed ones come back as
        invalid markers so matching can skip them.
        """
        from .lot import compile_lot_pattern

        return tuple(compile_lot_pattern(p) for p in (self.lot_patterns or []))


class ScanInput(BaseModel):
    """Fields captured from one scan / manual entry. Every field is optional."""

    upc: Optional[str] = None
    brand: Optional[str] = None
    product: Optional[str] = None
    lot: Optional[str] = None
    expiry: Optional[str] = None

    @field_validator("upc", "brand", "product", "lot", "expiry", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    def has_signal(self) -> bool:
        return any([self.upc, self.brand, self.product, self.lot, self.expiry])


class MatchResult(BaseModel):
    """
    Engine output. Reasons are ordered most decisive first; confidence is
    present whenever at least one signal produced the decision.
    """

    decision: Decision
    reasons: List[str] = Field(default_factory=list)
    matches: List[RecallRecord] = Field(default_factory=list)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    def match_ids(self) -> List[str]:
        return [m.id for m in self.matches]


class HealthResponse(BaseModel):
    """
    Response body for GET /health.
    """

    status: str
