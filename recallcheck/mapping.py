from __future__ import annotations
"""
Mapping utilities between loose catalog rows and the recall schemas.

Recall catalogs reach us as JSON exports or flat CSV/spreadsheet dumps in
which list fields may be real lists, numpy arrays, comma-separated strings
or NaN. This module centralises that coercion into :class:`RecallRecord`
and the reverse flattening of a :class:`MatchResult` for CSV output.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import numpy as np
import pandas as pd  # type: ignore
from loguru import logger
from pydantic import ValidationError

from .config import MatchResult, RecallRecord, ScanInput

_LIST_FIELDS = ("brand", "upcs", "actions", "jurisdictions", "lotPatterns", "lotRegex", "lot_patterns")

# lot regexes may contain commas and pipes; flat exports separate them with ";"
_LOT_FIELDS = ("lotPatterns", "lotRegex", "lot_patterns")


def _is_missing(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, (list, tuple, dict, np.ndarray)):
        return False
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):
        return False


def _coerce_list(val: Any, sep: str = ",") -> Optional[List[str]]:
    """
    Normalise list-ish cell values:
      - NaN / None -> None
      - "a, b, c" -> ["a","b","c"]
      - list/tuple/np.ndarray -> list[str]
    """
    if _is_missing(val):
        return None
    if isinstance(val, (list, tuple, np.ndarray)):
        return [str(v).strip() for v in val if not _is_missing(v) and str(v).strip()]
    s = str(val).strip()
    if not s:
        return []
    if s.startswith("["):
        try:
            parsed = json.loads(s)
            if isinstance(parsed, list):
                return [str(v).strip() for v in parsed if str(v).strip()]
        except ValueError:
            pass
    return [t.strip() for t in s.split(sep) if t.strip()]


def _coerce_str(val: Any) -> Optional[str]:
    if _is_missing(val):
        return None
    if isinstance(val, float) and val.is_integer():
        # spreadsheets turn barcode-like cells into floats
        return str(int(val))
    s = str(val).strip()
    return s or None


def _row_to_dict(row: Union[Mapping[str, Any], pd.Series]) -> Dict[str, Any]:
    if isinstance(row, pd.Series):
        return row.to_dict()
    return dict(row)


def to_recall_record(row: Union[Mapping[str, Any], pd.Series]) -> RecallRecord:
    """
    Convert a catalog row (dict or pandas row) into a RecallRecord.

    Flat exports may carry ``validity_start`` / ``validity_end`` columns and
    ``link_official`` / ``link_manufacturer`` columns instead of nested
    objects; both shapes are accepted.
    """
    data = _row_to_dict(row)
    out: Dict[str, Any] = {}

    for key, val in data.items():
        if key in _LIST_FIELDS:
            coerced = _coerce_list(val, sep=";" if key in _LOT_FIELDS else ",")
            if coerced is not None:
                out[key] = coerced
        elif isinstance(val, (dict, list)):
            out[key] = val
        else:
            coerced = _coerce_str(val)
            if coerced is not None:
                out[key] = coerced

    start = out.pop("validity_start", None)
    end = out.pop("validity_end", None)
    if (start or end) and not any(k in out for k in ("validity_window", "validityWindow", "expiration")):
        out["validityWindow"] = {"start": start, "end": end}

    official = out.pop("link_official", None)
    manufacturer = out.pop("link_manufacturer", None)
    if (official or manufacturer) and "links" not in out:
        out["links"] = {"official": official or "", "manufacturer": manufacturer}

    return RecallRecord.model_validate(out)


def to_recall_records(rows: Iterable[Union[Mapping[str, Any], pd.Series]]) -> List[RecallRecord]:
    """Convert many rows, skipping (and logging) those that fail validation."""
    records: List[RecallRecord] = []
    for i, row in enumerate(rows):
        try:
            records.append(to_recall_record(row))
        except ValidationError as e:
            logger.warning("Skipping recall row {}: {} validation error(s)", i, e.error_count())
    return records


def load_recall_records(path: Path) -> List[RecallRecord]:
    """
    Read a recall catalog from JSON (a list, or {"recalls": [...]}) or
    CSV / Excel. Rows that fail validation are skipped with a warning.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Recall catalog not found: {path}")

    ext = path.suffix.lower()
    if ext == ".json":
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if isinstance(raw, dict):
            raw = raw.get("recalls", [])
        if not isinstance(raw, list):
            raise ValueError(f"Expected a list of recalls in {path}")
        rows: Iterable[Any] = raw
    elif ext in (".csv", ".xlsx", ".xls"):
        if ext == ".csv":
            df = pd.read_csv(path, dtype=str, encoding="utf-8")
        else:
            df = pd.read_excel(path, dtype=str)
        rows = (row for _, row in df.iterrows())
    else:
        raise ValueError(f"Unsupported catalog format: {path.suffix}")

    records = to_recall_records(rows)
    logger.info("Loaded {} recall records from {}", len(records), path)
    return records


def scan_from_row(row: Union[Mapping[str, Any], pd.Series]) -> ScanInput:
    """Build a ScanInput from a row with (case-insensitive) upc/brand/product/lot/expiry columns."""
    data = {str(k).strip().lower(): v for k, v in _row_to_dict(row).items()}
    return ScanInput(
        upc=_coerce_str(data.get("upc")),
        brand=_coerce_str(data.get("brand")),
        product=_coerce_str(data.get("product")),
        lot=_coerce_str(data.get("lot")),
        expiry=_coerce_str(data.get("expiry")),
    )


def result_to_row(scan: ScanInput, result: MatchResult) -> Dict[str, Any]:
    """Flatten a scan and its verdict into one CSV-friendly row."""
    row: Dict[str, Any] = scan.model_dump()
    row["decision"] = result.decision.value
    row["confidence"] = result.confidence
    row["reasons"] = " | ".join(result.reasons)
    row["match_ids"] = ",".join(result.match_ids())
    return row
