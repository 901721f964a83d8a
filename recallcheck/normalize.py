from __future__ import annotations

"""
Text normalisation shared by the brand / product matchers.

Recall notices, package labels and OCR output spell the same product in
many ways ("Acme Foods, Inc.", "ACME FOODS INC", "acme  foods"). Every
similarity score runs on the output of :func:`normalize_text` so the
thresholds mean the same thing no matter who calls them.

Public helpers:

* basic_clean(text) -> str
    Unicode / whitespace clean-up and length cap, case preserved.

* normalize_text(text) -> str
    Lower-cased, punctuation-free, stop-word-free comparison form.

* comparison_tokens(text) -> List[str]
    The words of the comparison form.
"""

from typing import List
import re
import unicodedata

from . import config

MAX_INPUT_CHARS: int = int(getattr(config, "MAX_INPUT_CHARS", 2000))
STOP_WORDS = frozenset(getattr(config, "STOP_WORDS", frozenset()))

_PUNCT_RE = re.compile(r"[^\w\s]|_")
_WS_RE = re.compile(r"\s+")

# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------


def _normalise_unicode(text: str) -> str:
    # Fold compatibility forms (full-width digits, ligatures) that OCR emits.
    text = unicodedata.normalize("NFKC", text)
    text = text.replace("\u2018", "'").replace("\u2019", "'")
    text = text.replace("\u201c", '"').replace("\u201d", '"')
    text = text.replace("\u2013", "-").replace("\u2014", "-")
    return text


def _drop_stop_words(tokens: List[str]) -> List[str]:
    return [t for t in tokens if t not in STOP_WORDS]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def basic_clean(text: str | None) -> str:
    """Light-weight clean: unicode folding, whitespace collapse, length cap."""
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)

    if len(text) > MAX_INPUT_CHARS:
        text = text[:MAX_INPUT_CHARS]

    text = _normalise_unicode(text)
    text = _WS_RE.sub(" ", text).strip()
    return text


def comparison_tokens(text: str | None) -> List[str]:
    norm = basic_clean(text).lower()
    if not norm:
        return []
    norm = _PUNCT_RE.sub(" ", norm)
    return _drop_stop_words(norm.split())


def normalize_text(text: str | None) -> str:
    """
    Comparison form: lowercase, punctuation replaced by spaces, stop words
    removed, single spaces.

    >>> normalize_text("The Acme Foods, Inc.")
    'acme foods inc'
    """
    return " ".join(comparison_tokens(text))
