import json

import pandas as pd
import pytest

from recallcheck.batch import _read_scans, check_scans, main, tally
from recallcheck.config import RecallRecord

UPC = "012345678905"


def _records():
    return [
        RecallRecord(id="A", source="FDA", brand=["acme foods"], product="peanut butter crunch crackers", upcs=[UPC]),
        RecallRecord(id="B", source="FSIS", brand=["zenith"], product="pork sausage", lot_patterns=["^EST\\d+$"]),
    ]


def test_check_scans_one_row_per_scan():
    scans = pd.DataFrame(
        {
            "upc": [UPC, None, None],
            "brand": [None, "Zenith", None],
            "lot": [None, "EST123", None],
        }
    )
    out = check_scans(scans, _records())
    assert list(out["decision"]) == ["RED", "RED", "GREEN"]
    assert list(out["match_ids"]) == ["A", "B", ""]
    assert tally(out) == {"GREEN": 1, "YELLOW": 0, "RED": 2}


def test_read_scans_requires_known_columns(tmp_path):
    path = tmp_path / "scans.csv"
    pd.DataFrame({"foo": ["1"]}).to_csv(path, index=False)
    with pytest.raises(ValueError):
        _read_scans(path)
    with pytest.raises(FileNotFoundError):
        _read_scans(tmp_path / "nope.csv")


def test_main_writes_decisions(tmp_path, capsys):
    scans = tmp_path / "scans.csv"
    pd.DataFrame({"UPC": [UPC, "036000291452"], "Brand": ["", ""]}).to_csv(scans, index=False)
    records = tmp_path / "recalls.json"
    records.write_text(
        json.dumps([{"id": "A", "source": "fda", "brand": ["acme"], "product": "crackers", "upcs": [UPC]}]),
        encoding="utf-8",
    )
    out = tmp_path / "out" / "decisions.csv"

    rc = main(["--scans", str(scans), "--records", str(records), "--out", str(out)])
    assert rc == 0

    df = pd.read_csv(out, dtype=str)
    assert list(df["decision"]) == ["RED", "GREEN"]
    # leading zero survives the round trip through CSV
    assert df["upc"].iloc[0] == UPC

    printed = capsys.readouterr().out
    assert "RED: 1" in printed
    assert "GREEN: 1" in printed
