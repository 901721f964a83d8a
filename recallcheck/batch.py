# recallcheck/batch.py
from __future__ import annotations

import argparse
from collections import Counter
from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd
from loguru import logger

from . import config
from .config import MatchResult, RecallRecord
from .decision import decide
from .mapping import load_recall_records, result_to_row, scan_from_row

SCAN_COLUMNS = ["upc", "brand", "product", "lot", "expiry"]

# ---------- IO helpers ----------

def _read_scans(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    ext = path.suffix.lower()
    # barcodes must stay strings or leading zeros are lost
    if ext in [".xlsx", ".xls"]:
        df = pd.read_excel(path, dtype=str)
    else:
        df = pd.read_csv(path, dtype=str, encoding="utf-8")
    df = df.rename(columns={c: str(c).strip().lower() for c in df.columns})
    if not any(c in df.columns for c in SCAN_COLUMNS):
        raise ValueError(
            f"Expected at least one of {SCAN_COLUMNS}. Found: {list(df.columns)}"
        )
    return df

# ---------- run ----------

def check_scans(scans: pd.DataFrame, records: Sequence[RecallRecord]) -> pd.DataFrame:
    """Run every scan row against the same candidate set; one output row per scan."""
    rows: List[Dict] = []
    for _, row in scans.iterrows():
        scan = scan_from_row(row)
        result: MatchResult = decide(scan, records)
        rows.append(result_to_row(scan, result))
    columns = SCAN_COLUMNS + ["decision", "confidence", "reasons", "match_ids"]
    return pd.DataFrame(rows, columns=columns)


def tally(results: pd.DataFrame) -> Dict[str, int]:
    counts = Counter(results["decision"]) if len(results) else Counter()
    return {d.value: int(counts.get(d.value, 0)) for d in config.Decision}

# ---------- CLI ----------

def main(argv: Sequence[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Check a batch of scans against a recall catalog")
    ap.add_argument("--scans", type=Path, required=True,
                    help="CSV/XLSX with any of the columns upc, brand, product, lot, expiry")
    ap.add_argument("--records", type=Path, default=config.RECALL_CATALOG_PATH,
                    help="Recall catalog (JSON, CSV or XLSX)")
    ap.add_argument("--out", type=Path, required=True, help="Where to write the decisions CSV")
    ap.add_argument("--log-file", action="store_true",
                    help=f"Also log to {config.LOG_DIR / 'recallcheck.log'}")
    args = ap.parse_args(argv)

    if args.log_file:
        config.LOG_DIR.mkdir(parents=True, exist_ok=True)
        logger.add(config.LOG_DIR / "recallcheck.log", rotation="10 MB", level="INFO")

    records = load_recall_records(args.records)
    scans = _read_scans(args.scans)
    results = check_scans(scans, records)

    args.out.parent.mkdir(parents=True, exist_ok=True)
    results.to_csv(args.out, index=False, encoding="utf-8")
    logger.info("Wrote {} decisions to {}", len(results), args.out)

    for decision, n in tally(results).items():
        print(f"{decision}: {n}")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
