from datetime import date

from recallcheck.config import EXPIRY_PATTERN_CONFIDENCE, MAX_INPUT_CHARS
from recallcheck.lot import (
    compile_lot_pattern,
    extract_from_text,
    is_date_in_range,
    matches_lot_pattern,
    parse_calendar_date,
    parse_expiry_date,
    parse_lot_code,
)


def test_parse_bare_lot_with_prefix_and_suffix():
    lot = parse_lot_code(" l2207a ")
    assert lot is not None
    assert lot.raw == "l2207a"
    assert lot.normalized == "L2207A"
    assert lot.prefix == "L"
    assert lot.date_digits == "2207"
    assert lot.suffix == "A"


def test_parse_bare_digits_only():
    lot = parse_lot_code("220715")
    assert lot.normalized == "220715"
    assert lot.prefix is None
    assert lot.suffix is None


def test_parse_labelled_lots():
    assert parse_lot_code("Lot: 12345").normalized == "12345"
    assert parse_lot_code("LOT#98765").normalized == "98765"
    batch = parse_lot_code("Batch A98765")
    assert batch.normalized == "A98765"
    assert batch.prefix == "A"
    assert parse_lot_code("serial 0001234").normalized == "0001234"
    assert parse_lot_code("Model: 4521").normalized == "4521"


def test_parse_lot_rejects_noise():
    assert parse_lot_code("hello world") is None
    assert parse_lot_code("L22") is None
    assert parse_lot_code("LOT: 123") is None
    assert parse_lot_code("") is None
    assert parse_lot_code(None) is None


def test_over_long_lines_are_rejected_not_truncated():
    assert parse_lot_code("LOT: 1234" + "5" * MAX_INPUT_CHARS + " ZZ") is None
    assert parse_expiry_date("01/15/2025" + " " * MAX_INPUT_CHARS + "junk") is None
    fields = extract_from_text("LOT: 12345\n" + "6" * (MAX_INPUT_CHARS + 1))
    assert [l.normalized for l in fields.lots] == ["12345"]


def test_parse_numeric_dates():
    exp = parse_expiry_date("01/15/2025")
    assert exp.normalized == "2025-01-15"
    assert exp.confidence == EXPIRY_PATTERN_CONFIDENCE
    assert parse_expiry_date("1-5-25").normalized == "2025-01-05"
    assert parse_expiry_date("12 31 2024").normalized == "2024-12-31"


def test_parse_iso_date():
    assert parse_expiry_date("2025-03-09").normalized == "2025-03-09"


def test_parse_labelled_dates():
    assert parse_expiry_date("Best by 03/01/26").normalized == "2026-03-01"
    assert parse_expiry_date("BEST IF USED BY 12/31/2025").normalized == "2025-12-31"
    assert parse_expiry_date("Use by: 7/4/99").normalized == "1999-07-04"
    assert parse_expiry_date("SELL BY 02-28-24").normalized == "2024-02-28"
    assert parse_expiry_date("exp. 10/10/2030").normalized == "2030-10-10"


def test_leap_day_only_in_leap_years():
    leap = parse_expiry_date("EXP 02/29/24")
    assert leap is not None
    assert leap.normalized == "2024-02-29"
    assert parse_expiry_date("EXP 02/29/23") is None


def test_out_of_range_and_impossible_dates_rejected():
    assert parse_expiry_date("13/01/2025") is None
    assert parse_expiry_date("00/10/2025") is None
    assert parse_expiry_date("04/31/2025") is None
    assert parse_expiry_date("not a date") is None
    assert parse_expiry_date(None) is None


def test_two_digit_year_pivot():
    assert parse_expiry_date("EXP 01/01/49").normalized == "2049-01-01"
    assert parse_expiry_date("EXP 01/01/50").normalized == "1950-01-01"


def test_extract_from_text_one_fact_per_line():
    text = "L2207A\n\n  EXP 02/29/24  \nrandom words\n123456\nBest by 03/01/26\n"
    out = extract_from_text(text)
    assert [l.normalized for l in out.lots] == ["L2207A", "123456"]
    assert [e.normalized for e in out.expiries] == ["2024-02-29", "2026-03-01"]


def test_extract_from_empty_text():
    out = extract_from_text("")
    assert out.lots == []
    assert out.expiries == []


def test_matches_lot_pattern_case_insensitive():
    assert matches_lot_pattern("l2201", "^L2201$")
    assert matches_lot_pattern("L2201B", "^L22\\d{2}")
    assert not matches_lot_pattern("L2205", "^L2201$")
    assert not matches_lot_pattern("", "^L2201$")


def test_malformed_pattern_is_non_matching():
    assert not matches_lot_pattern("L2201", "([")
    compiled = compile_lot_pattern("([")
    assert not compiled.is_valid
    assert not compiled.matches("anything")
    assert compile_lot_pattern("^L\\d+$").is_valid


def test_compiled_pattern_accepted_directly():
    compiled = compile_lot_pattern("^a1234$")
    assert matches_lot_pattern("A1234", compiled)


def test_date_in_range_inclusive_bounds():
    assert is_date_in_range("2024-06-01", "2024-01-01", "2024-12-31")
    assert is_date_in_range("2024-01-01", "2024-01-01", "2024-12-31")
    assert is_date_in_range("2024-12-31", "2024-01-01", "2024-12-31")
    assert not is_date_in_range("2025-01-01", "2024-01-01", "2024-12-31")
    assert not is_date_in_range("2023-12-31", "2024-01-01", None)


def test_date_in_range_open_bounds():
    assert is_date_in_range("2024-06-01")
    assert is_date_in_range("2024-06-01", None, "2024-12-31")
    assert is_date_in_range("2024-06-01", "", "")


def test_date_in_range_fails_closed():
    assert not is_date_in_range("garbage", "2024-01-01", "2024-12-31")
    assert not is_date_in_range("2024-06-01", "garbage", None)
    assert not is_date_in_range("2024-06-01", None, "2024-02-30")


def test_date_in_range_accepts_printed_dates():
    assert is_date_in_range("EXP 06/01/24", "2024-01-01", "2024-12-31")
    assert is_date_in_range(date(2024, 6, 1), "01/01/2024", "12/31/2024")


def test_parse_calendar_date_shapes():
    assert parse_calendar_date("2024-06-01T12:00:00Z") == date(2024, 6, 1)
    assert parse_calendar_date("06/01/2024") == date(2024, 6, 1)
    assert parse_calendar_date("") is None
