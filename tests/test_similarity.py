import pytest

from recallcheck.similarity import (
    cosine_ngram,
    find_best_brand_match,
    find_best_product_match,
    is_brand_similar,
    is_product_similar,
    jaro_winkler,
    product_similarity,
)

SAMPLES = ["Acme", "peanut butter crackers", "x", "Gluten-Free Oat Bars", "MARTHA", "The", "!!!"]


def test_jaro_winkler_reference_values():
    assert jaro_winkler("MARTHA", "MARHTA") == pytest.approx(0.9611, abs=1e-3)
    assert jaro_winkler("DIXON", "DICKSONX") == pytest.approx(0.8133, abs=1e-3)


@pytest.mark.parametrize("s", SAMPLES)
def test_identity_scores_one(s):
    assert jaro_winkler(s, s) == 1.0
    assert cosine_ngram(s, s) == 1.0


@pytest.mark.parametrize(
    "a,b",
    [
        ("Acme Foods", "Acme Fods"),
        ("MARTHA", "MARHTA"),
        ("DIXON", "DICKSONX"),
        ("Acme", "MARTHA"),
        ("Peanut Butter Crackers", "peanut butter crunch crackers"),
    ],
)
def test_scores_are_symmetric(a, b):
    assert jaro_winkler(a, b) == pytest.approx(jaro_winkler(b, a))
    assert cosine_ngram(a, b) == pytest.approx(cosine_ngram(b, a))


def test_scores_are_bounded():
    for a in SAMPLES:
        for b in SAMPLES:
            assert 0.0 <= jaro_winkler(a, b) <= 1.0
            assert 0.0 <= cosine_ngram(a, b) <= 1.0


def test_empty_after_normalisation_scores_zero():
    assert jaro_winkler("", "acme") == 0.0
    assert jaro_winkler(None, "acme") == 0.0
    assert jaro_winkler("The", "acme") == 0.0
    assert cosine_ngram("the", "acme") == 0.0
    assert cosine_ngram("a", "ab") == 0.0  # "a" is a stop word


def test_case_and_punctuation_are_ignored():
    assert jaro_winkler("ACME FOODS, INC.", "acme foods inc") == 1.0


def test_cosine_simple_bigrams():
    # {ab, bc} vs {ab, bd}
    assert cosine_ngram("abc", "abd") == pytest.approx(0.5)


def test_cosine_tolerates_word_order():
    assert cosine_ngram("butter peanut", "peanut butter") == pytest.approx(12 / 14)
    assert cosine_ngram("butter peanut", "peanut butter") > 0.8


def test_brand_similarity_threshold():
    assert is_brand_similar("Acme Foods", "ACME FOODS INC")
    assert is_brand_similar("Acme Fods", "acme foods")
    assert not is_brand_similar("Acme", "Zenith")
    assert not is_brand_similar("Acme Foods", "acme foods inc", threshold=0.99)


def test_product_similarity_uses_best_of_both():
    a, b = "Peanut Butter Crackers", "peanut butter crunch crackers"
    assert product_similarity(a, b) == max(jaro_winkler(a, b), cosine_ngram(a, b))
    assert is_product_similar(a, b)
    assert not is_product_similar("Peanut Butter Crackers", "frozen spinach")


def test_find_best_brand_match():
    best = find_best_brand_match("acme", ["acme foods", "acme", "zeta"])
    assert best is not None
    assert best.value == "acme"
    assert best.similarity == 1.0
    assert find_best_brand_match("acme", ["zeta"]) is None
    assert find_best_brand_match("", ["acme"]) is None


def test_find_best_product_match():
    best = find_best_product_match(
        "peanut butter crackers",
        ["cheddar crackers", "peanut butter crunch crackers"],
    )
    assert best is not None
    assert best.value == "peanut butter crunch crackers"
    assert find_best_product_match("peanut butter crackers", []) is None


def test_stop_word_only_strings_still_match_themselves():
    assert jaro_winkler("The", "the") == 1.0
    assert cosine_ngram("The", "THE") == 1.0
    assert is_brand_similar("The", "the")
