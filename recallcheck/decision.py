from __future__ import annotations

"""
Tiered recall decision.

Given one scan and a pre-filtered candidate set, decide GREEN / YELLOW /
RED. Tiers run in priority order and the first one that finds candidate
records settles the verdict:

1. UPC          barcode equivalence, refined by the recall's lot patterns
2. brand/product fuzzy text match, refined by lot patterns / expiry window
3. fallback     GREEN, nothing matched

Each tier is a pure function ``(scan, candidates) -> MatchResult | None``
so the cascade is just :data:`TIERS` walked in order. Matches always keep
the order the candidates were supplied in.
"""

from typing import Callable, List, Optional, Sequence

from loguru import logger

from .config import (
    BRAND_SIMILARITY_THRESHOLD,
    CONSTRAINED_MATCH_CONFIDENCE,
    CONSTRAINED_MISMATCH_CONFIDENCE,
    PRODUCT_SIMILARITY_THRESHOLD,
    UNCONSTRAINED_MATCH_CONFIDENCE,
    UPC_LOT_MISMATCH_CONFIDENCE,
    UPC_MATCH_CONFIDENCE,
    Decision,
    MatchResult,
    RecallRecord,
    ScanInput,
)
from .lot import is_date_in_range
from .pipeline_types import NormalizedIdentifier
from .similarity import is_brand_similar, is_product_similar
from .upc import are_equivalent, normalize_upc

TierEvaluator = Callable[[ScanInput, Sequence[RecallRecord]], Optional[MatchResult]]

REASON_NO_RECALLS = "No recalls found for this product"
REASON_NO_SIGNAL = "No barcode, brand, product, lot or expiry was provided"


# ---------------------------------------------------------------------------
# Constraint checks
# ---------------------------------------------------------------------------


def _lot_satisfies(record: RecallRecord, lot: Optional[str]) -> bool:
    if not lot or not record.has_lot_restriction():
        return False
    return any(p.matches(lot) for p in record.compiled_lot_patterns)


def _expiry_satisfies(record: RecallRecord, expiry: Optional[str]) -> bool:
    if not expiry or not record.has_date_restriction():
        return False
    window = record.validity_window
    return is_date_in_range(expiry, window.start, window.end)


def _record_upc_matches(record: RecallRecord, scan_upc: NormalizedIdentifier) -> bool:
    for raw in record.upcs:
        candidate = normalize_upc(raw)
        if candidate.is_valid and are_equivalent(scan_upc, candidate):
            return True
    return False


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------


def evaluate_upc_tier(scan: ScanInput, candidates: Sequence[RecallRecord]) -> Optional[MatchResult]:
    """
    RED when the barcode matches and the lot either matches, was not given,
    or the recall covers every lot. YELLOW when every barcode match is
    ruled out by its lot patterns.
    """
    if not scan.upc:
        return None
    scan_upc = normalize_upc(scan.upc)
    if not scan_upc.is_valid:
        return None

    upc_matches = [r for r in candidates if _record_upc_matches(r, scan_upc)]
    if not upc_matches:
        return None

    red = [
        r for r in upc_matches
        if not r.has_lot_restriction() or not scan.lot or _lot_satisfies(r, scan.lot)
    ]
    logger.debug(
        "UPC tier: {} barcode matches, {} not ruled out by lot", len(upc_matches), len(red)
    )

    if red:
        if scan.lot and any(r.has_lot_restriction() for r in red):
            detail = "Lot code matches recall criteria"
        elif any(r.has_lot_restriction() for r in red):
            detail = "No lot code provided to rule out the recalled lots"
        else:
            detail = "No lot code restrictions in recall"
        return MatchResult(
            decision=Decision.RED,
            reasons=["Exact UPC match found", detail],
            matches=red,
            confidence=UPC_MATCH_CONFIDENCE,
        )

    return MatchResult(
        decision=Decision.YELLOW,
        reasons=[
            "Exact UPC match found",
            "Your lot code does not match the recalled lots",
            "Please verify your lot code matches the recall notice",
        ],
        matches=upc_matches,
        confidence=UPC_LOT_MISMATCH_CONFIDENCE,
    )


def _brand_product_matches(
    scan: ScanInput,
    candidates: Sequence[RecallRecord],
    brand_threshold: float,
    product_threshold: float,
) -> List[RecallRecord]:
    out: List[RecallRecord] = []
    for record in candidates:
        # an absent scan field is a wildcard, not a mismatch
        if scan.brand and not any(
            is_brand_similar(scan.brand, b, brand_threshold) for b in record.brand
        ):
            continue
        if scan.product and not is_product_similar(scan.product, record.product, product_threshold):
            continue
        out.append(record)
    return out


def _matched_on(scan: ScanInput) -> str:
    if scan.brand and scan.product:
        return "Brand and product match found"
    if scan.brand:
        return "Brand match found"
    return "Product match found"


def evaluate_brand_product_tier(
    scan: ScanInput,
    candidates: Sequence[RecallRecord],
    brand_threshold: float = BRAND_SIMILARITY_THRESHOLD,
    product_threshold: float = PRODUCT_SIMILARITY_THRESHOLD,
) -> Optional[MatchResult]:
    if not scan.brand and not scan.product:
        return None

    matches = _brand_product_matches(scan, candidates, brand_threshold, product_threshold)
    if not matches:
        return None
    headline = _matched_on(scan)

    constrained = [r for r in matches if r.is_constrained()]
    if not constrained:
        logger.debug("Brand/product tier: {} unconstrained matches", len(matches))
        return MatchResult(
            decision=Decision.YELLOW,
            reasons=[
                headline,
                "No specific lot/date restrictions in recall",
                "Please verify this matches your product",
            ],
            matches=matches,
            confidence=UNCONSTRAINED_MATCH_CONFIDENCE,
        )

    satisfied: List[RecallRecord] = []
    lot_hit = date_hit = False
    for record in constrained:
        by_lot = _lot_satisfies(record, scan.lot)
        by_date = _expiry_satisfies(record, scan.expiry)
        if by_lot or by_date:
            satisfied.append(record)
        lot_hit = lot_hit or by_lot
        date_hit = date_hit or by_date
    logger.debug(
        "Brand/product tier: {} matches, {} constrained, {} satisfied",
        len(matches), len(constrained), len(satisfied),
    )

    if satisfied:
        details: List[str] = []
        if lot_hit:
            details.append("Lot code matches recall criteria")
        if date_hit:
            details.append("Expiry date falls within the recalled range")
        return MatchResult(
            decision=Decision.RED,
            reasons=[headline] + details,
            matches=satisfied,
            confidence=CONSTRAINED_MATCH_CONFIDENCE,
        )

    if scan.lot or scan.expiry:
        detail = "Your lot/expiry date does not match the recalled range"
    else:
        detail = "Recall is limited to specific lots or dates, and none were provided"
    return MatchResult(
        decision=Decision.YELLOW,
        reasons=[
            headline,
            detail,
            "Please verify your lot/expiry date matches the recall notice",
        ],
        matches=constrained,
        confidence=CONSTRAINED_MISMATCH_CONFIDENCE,
    )


TIERS: Sequence[TierEvaluator] = (
    evaluate_upc_tier,
    evaluate_brand_product_tier,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decide(
    scan: Optional[ScanInput],
    candidates: Optional[Sequence[RecallRecord]],
    tiers: Sequence[TierEvaluator] = TIERS,
) -> MatchResult:
    """Run the tier cascade; GREEN with no matches when no tier fires."""
    scan = scan or ScanInput()
    records = list(candidates or [])

    notes: List[str] = []
    if scan.upc and not normalize_upc(scan.upc).is_valid:
        notes.append("Barcode could not be validated and was ignored")

    if records:
        for tier in tiers:
            result = tier(scan, records)
            if result is not None:
                if notes:
                    result = result.model_copy(update={"reasons": result.reasons + notes})
                return result

    if not scan.has_signal():
        reasons = [REASON_NO_SIGNAL]
    else:
        reasons = [REASON_NO_RECALLS] + notes
    logger.debug("No tier matched across {} candidates", len(records))
    return MatchResult(decision=Decision.GREEN, reasons=reasons, matches=[], confidence=None)


def describe_result(result: MatchResult) -> List[str]:
    """Short consumer-facing summary lines for a verdict."""
    n = len(result.matches)
    if result.decision == Decision.RED:
        lines = ["This product has been recalled"]
        if n == 1:
            lines.append(f"Recall: {result.matches[0].hazard}")
        else:
            lines.append(f"Found {n} matching recalls")
        return lines

    if result.decision == Decision.YELLOW:
        lines = [
            "A similar product has been recalled",
            "Please verify this matches your specific product",
        ]
        if n == 1:
            lines.append(f"Potential recall: {result.matches[0].hazard}")
        else:
            lines.append(f"Found {n} potential matches")
        return lines

    return [
        "No recalls found for this product",
        "This product appears to be safe",
    ]
