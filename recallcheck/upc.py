from __future__ import annotations

"""
UPC / EAN barcode helpers.

Scanned or typed barcodes arrive with spaces, dashes and the occasional
OCR misread. Everything here is total: bad input yields an ``invalid``
identifier rather than an exception, and an invalid identifier never
matches anything.
"""

import re
from typing import Optional, Union

from .pipeline_types import IdentifierKind, NormalizedIdentifier

_NON_DIGITS = re.compile(r"[^0-9]")

_KIND_BY_LENGTH = {
    8: IdentifierKind.EAN_8,
    12: IdentifierKind.UPC_A,
    13: IdentifierKind.EAN_13,
}

# Digits compared when deciding two codes name the same product
# (everything but the check digit).
_FAMILY_PREFIX_LEN = {
    IdentifierKind.UPC_A: 11,
    IdentifierKind.EAN_13: 12,
}


def compute_check_digit(payload: str) -> int:
    """
    Standard GS1 mod-10 check digit for ``payload`` (all digits but the last).

    Weights alternate 3,1,3,... starting from the digit next to the check
    digit, which gives 3,1,... from the left for EAN-8 / UPC-A and 1,3,...
    for EAN-13.
    """
    total = 0
    for offset, ch in enumerate(reversed(payload)):
        weight = 3 if offset % 2 == 0 else 1
        total += int(ch) * weight
    return (10 - total % 10) % 10


def _checksum_ok(digits: str) -> bool:
    if len(digits) < 2:
        return False
    return compute_check_digit(digits[:-1]) == int(digits[-1])


def normalize_upc(text: Optional[str]) -> NormalizedIdentifier:
    """Clean, classify and checksum-validate a barcode string."""
    if not isinstance(text, str):
        text = "" if text is None else str(text)
    cleaned = _NON_DIGITS.sub("", text)

    kind = _KIND_BY_LENGTH.get(len(cleaned))
    if kind is None:
        return NormalizedIdentifier(kind=IdentifierKind.INVALID, digits=cleaned, is_valid=False)

    length = len(cleaned)
    digits = cleaned.zfill(length)
    return NormalizedIdentifier(kind=kind, digits=digits, is_valid=_checksum_ok(digits))


def _as_identifier(value: Union[str, NormalizedIdentifier, None]) -> NormalizedIdentifier:
    if isinstance(value, NormalizedIdentifier):
        return value
    return normalize_upc(value)


def are_equivalent(
    a: Union[str, NormalizedIdentifier, None],
    b: Union[str, NormalizedIdentifier, None],
) -> bool:
    """
    True when both codes are valid and name the same product: identical
    digits, or same symbology sharing everything but the check digit.
    """
    left = _as_identifier(a)
    right = _as_identifier(b)

    if not left.is_valid or not right.is_valid:
        return False
    if left.digits == right.digits:
        return True
    if left.kind != right.kind:
        return False

    prefix_len = _FAMILY_PREFIX_LEN.get(left.kind)
    if prefix_len is None:
        return False
    return left.digits[:prefix_len] == right.digits[:prefix_len]


def get_manufacturer_code(text: Optional[str]) -> Optional[str]:
    """Company prefix (first 6 digits) of a valid UPC-A, else None."""
    ident = normalize_upc(text)
    if ident.kind == IdentifierKind.UPC_A and ident.is_valid:
        return ident.digits[:6]
    return None
