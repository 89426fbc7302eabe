"""
test_smart_search.py
--------------------
Clinic Inventory Smart Search — Test Suite for smart_search.py
--------------------------------------------------------------
Tests cover:
    - Empty / None / non-string input returns an empty result
    - Medication name extraction from leftover text
    - Expiration windows, including unsupported day counts and oversized numbers
    - NDC extraction in all three spellings
    - Strength single values and ranges, including reversed ranges
    - Sort-by dimensions and sort-order synonyms
    - Compound queries where several rules fire together
    - Residual search terms (location and form words)
    - example_queries() coverage and search_suggestions() prefixes,
      including prefixes that start with a non-ASCII digit

Run:
    pytest tests/test_smart_search.py -v --tb=short

Project: Clinic Inventory Smart Search
"""

import re
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from smart_search import parse, example_queries, search_suggestions
from schemas import ExpirationWindow, SearchQuery, SortBy, SortOrder


def _filters(query):
    """Sparse camelCase filter mapping for *query*."""
    return parse(query).to_dict()["filters"]


# ── Empty and invalid input ───────────────────────────────────────────────────

@pytest.mark.parametrize("query", ["", "   ", "\t\n", None])
def test_empty_input_returns_empty_result(query):
    """Blank or missing input yields no filters and no terms."""
    result = parse(query)
    assert result.to_dict() == {"filters": {}, "searchTerms": []}


@pytest.mark.parametrize("query", [42, 3.5, ["lisinopril"], {"q": "x"}])
def test_non_string_input_returns_empty_result(query):
    """Non-string input must not raise."""
    result = parse(query)
    assert isinstance(result, SearchQuery)
    assert result.filters.is_empty()
    assert result.search_terms == []


def test_control_characters_are_ignored():
    """Control characters are stripped before matching."""
    assert _filters("lisin\x00opril\x07") == {"medicationName": "lisin opril"}


def test_parse_is_deterministic():
    """Same input, same output."""
    query = "metformin 500mg expiring in 30 days sort by name desc"
    assert parse(query).to_dict() == parse(query).to_dict()


# ── Medication name ───────────────────────────────────────────────────────────

def test_medication_name_bare():
    assert _filters("lisinopril") == {"medicationName": "lisinopril"}


def test_medication_name_is_lower_cased():
    assert _filters("Lisinopril")["medicationName"] == "lisinopril"


def test_medication_name_multi_word():
    assert _filters("amoxicillin clavulanate")["medicationName"] == "amoxicillin clavulanate"


def test_medication_name_after_removing_expiration():
    """Name is what is left once the expiration phrase is consumed."""
    filters = _filters("metformin expiring in 30 days")
    assert filters["medicationName"] == "metformin"
    assert filters["expirationWindow"] == "EXPIRING_30_DAYS"


def test_medication_name_trims_edge_stopwords():
    assert _filters("show me the lisinopril")["medicationName"] == "lisinopril"


def test_generic_word_is_not_a_medication_name():
    """'medications' alone says nothing about which drug."""
    assert "medicationName" not in _filters("expired medications")


def test_medication_name_is_first_leftover_phrase():
    """Text before the first recognised filter wins over text after it."""
    filters = _filters("metformin 500mg fridge")
    assert filters["medicationName"] == "metformin"


def test_fully_consumed_query_has_no_medication_name():
    assert "medicationName" not in _filters("expired sort by name")


@pytest.mark.parametrize("query", ["in room temp", "at fridge", "location: cabinet", "freezer shelf"])
def test_location_words_are_not_a_medication_name(query):
    assert "medicationName" not in _filters(query)


def test_location_words_trimmed_from_medication_name():
    assert _filters("tablets at fridge")["medicationName"] == "tablets"


# ── Expiration window ─────────────────────────────────────────────────────────

@pytest.mark.parametrize("query, expected", [
    ("expired", ExpirationWindow.EXPIRED),
    ("expiring next week", ExpirationWindow.EXPIRING_7_DAYS),
    ("expiring in 7 days", ExpirationWindow.EXPIRING_7_DAYS),
    ("expiring in 30 days", ExpirationWindow.EXPIRING_30_DAYS),
    ("expires in 30 days", ExpirationWindow.EXPIRING_30_DAYS),
    ("expires in 60 days", ExpirationWindow.EXPIRING_60_DAYS),
    ("expiring in 90 days", ExpirationWindow.EXPIRING_90_DAYS),
    ("EXPIRING IN 90 DAYS", ExpirationWindow.EXPIRING_90_DAYS),
])
def test_expiration_windows(query, expected):
    assert parse(query).filters.expiration_window == expected


def test_expired_takes_priority_over_day_phrase():
    """Only one window per query; 'expired' is checked first."""
    assert parse("expiring in 30 days or expired").filters.expiration_window == ExpirationWindow.EXPIRED


@pytest.mark.parametrize("query", ["expiring in 45 days", "expires in 14 days", "expiring in 100 days"])
def test_unsupported_day_count_is_not_rounded(query):
    """A day count outside 7/30/60/90 leaves expirationWindow unset."""
    result = parse(query)
    assert result.filters.expiration_window is None
    assert result.search_terms == query.split()


def test_unsupported_day_count_does_not_become_strength():
    assert "minStrength" not in _filters("expiring in 45 days")


def test_oversized_day_count_keeps_other_filters():
    """A very long day count is plain text; it must not wipe out the rest of the parse."""
    filters = _filters("lisinopril 10mg expiring in " + "9" * 5000 + " days")
    assert filters == {"medicationName": "lisinopril", "minStrength": 10, "maxStrength": 10}


# ── NDC ───────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("query, expected", [
    ("ndc:0093-7214-01", "0093-7214-01"),
    ("ndc 12345", "12345"),
    ("NDC: 0093-7214-01", "0093-7214-01"),
    ("ndc0093-7214-01", "0093-7214-01"),
])
def test_ndc_extraction(query, expected):
    assert parse(query).filters.ndc_id == expected


def test_ndc_digits_are_not_read_as_strength():
    filters = _filters("ndc 0093-7214-01")
    assert "minStrength" not in filters
    assert "maxStrength" not in filters


def test_only_first_ndc_is_used():
    result = parse("ndc 11111 ndc 22222")
    assert result.filters.ndc_id == "11111"
    assert "22222" in result.search_terms


def test_ndc_keyword_without_code_is_not_a_filter():
    assert "ndcId" not in _filters("ndc lookup")


# ── Strength ──────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("query, expected", [
    ("10mg", 10),
    ("5 mg", 5),
    ("0.5mg", 0.5),
    ("strength: 100", 100),
    ("strength 250", 250),
    ("10mL", 10),
])
def test_strength_single_value(query, expected):
    filters = parse(query).filters
    assert filters.min_strength == expected
    assert filters.max_strength == expected


@pytest.mark.parametrize("query, low, high", [
    ("5-20mg", 5, 20),
    ("10 to 50mg", 10, 50),
    ("strength 10-30", 10, 30),
    ("strength: 10-30", 10, 30),
    ("5mg-20mg", 5, 20),
    ("2.5 - 10 mg", 2.5, 10),
])
def test_strength_range(query, low, high):
    filters = parse(query).filters
    assert filters.min_strength == low
    assert filters.max_strength == high


def test_strength_range_reversed_is_normalised():
    """'20-5mg' still yields min=5, max=20."""
    filters = parse("20-5mg").filters
    assert filters.min_strength == 5
    assert filters.max_strength == 20


def test_strength_only_first_value_is_used():
    result = parse("10mg 20mg")
    assert result.filters.min_strength == 10
    assert result.filters.max_strength == 10
    assert "20mg" in result.search_terms


def test_bare_number_is_not_a_strength():
    assert "minStrength" not in _filters("aspirin 81")


def test_count_word_is_not_a_strength():
    """'30 tablets' is a count, not a strength: the spaced unit must be a dose unit."""
    assert "minStrength" not in _filters("30 tablets")


# ── Sorting ───────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("query, expected", [
    ("sort by expiry", SortBy.EXPIRY_DATE),
    ("sort by expiry date", SortBy.EXPIRY_DATE),
    ("sort by name", SortBy.MEDICATION_NAME),
    ("sort by quantity", SortBy.QUANTITY),
    ("sort by strength", SortBy.STRENGTH),
    ("Sort By Name", SortBy.MEDICATION_NAME),
])
def test_sort_by(query, expected):
    assert parse(query).filters.sort_by == expected


def test_sort_by_unknown_dimension_is_unset():
    result = parse("sort by colour")
    assert result.filters.sort_by is None
    assert "colour" in result.search_terms


@pytest.mark.parametrize("query", ["ascending", "asc", "oldest first"])
def test_sort_order_ascending(query):
    assert parse(query).filters.sort_order == SortOrder.ASC


@pytest.mark.parametrize("query", ["descending", "desc", "newest first"])
def test_sort_order_descending(query):
    assert parse(query).filters.sort_order == SortOrder.DESC


def test_sort_order_without_sort_by():
    filters = _filters("metformin desc")
    assert filters["sortOrder"] == "DESC"
    assert "sortBy" not in filters


def test_sort_order_is_a_whole_word():
    """'asc' inside 'ascorbic' is not an order keyword."""
    filters = _filters("ascorbic acid")
    assert "sortOrder" not in filters
    assert filters["medicationName"] == "ascorbic acid"


# ── Compound queries ──────────────────────────────────────────────────────────

def test_compound_name_strength_expiration():
    filters = _filters("lisinopril 10mg expiring next week")
    assert filters == {
        "medicationName": "lisinopril",
        "minStrength": 10,
        "maxStrength": 10,
        "expirationWindow": "EXPIRING_7_DAYS",
    }


def test_daily_inventory_check():
    filters = _filters("expiring next week sort by expiry")
    assert filters["expirationWindow"] == "EXPIRING_7_DAYS"
    assert filters["sortBy"] == "EXPIRY_DATE"


def test_medication_with_strength():
    filters = _filters("metformin 500mg")
    assert filters["medicationName"] == "metformin"
    assert filters["minStrength"] == 500
    assert filters["maxStrength"] == 500


def test_compliance_report_query():
    filters = _filters("expired medications sort by name")
    assert filters["expirationWindow"] == "EXPIRED"
    assert filters["sortBy"] == "MEDICATION_NAME"


def test_strength_range_analysis():
    filters = _filters("medications 10-50mg sort by strength ascending")
    assert filters["minStrength"] == 10
    assert filters["maxStrength"] == 50
    assert filters["sortBy"] == "STRENGTH"
    assert filters["sortOrder"] == "ASC"


def test_ndc_with_sort_order():
    filters = _filters("ndc:0093-7214-01 newest first")
    assert filters == {"ndcId": "0093-7214-01", "sortOrder": "DESC"}


# ── Residual search terms ─────────────────────────────────────────────────────

def test_location_specific_inventory_check():
    result = parse("tablets at fridge expiring in 30 days")
    assert result.filters.expiration_window == ExpirationWindow.EXPIRING_30_DAYS
    assert any("fridge" in term for term in result.search_terms)
    assert any("tablet" in term for term in result.search_terms)


def test_search_terms_exclude_consumed_text():
    result = parse("lisinopril 10mg expiring next week")
    assert result.search_terms == ["lisinopril"]


def test_search_terms_keep_order_and_duplicates():
    assert parse("fridge tablets fridge").search_terms == ["fridge", "tablets", "fridge"]


@pytest.mark.parametrize("query", ["at fridge", "location: fridge", "in room temp"])
def test_location_keywords_in_search_terms(query):
    assert len(parse(query).search_terms) > 0


def test_edge_punctuation_is_trimmed():
    assert parse("location: fridge").search_terms == ["location", "fridge"]


@pytest.mark.parametrize("query", ["tablets", "capsules", "liquid medications"])
def test_form_types_in_search_terms(query):
    assert len(parse(query).search_terms) > 0


# ── example_queries ───────────────────────────────────────────────────────────

def test_example_queries_non_empty_list():
    examples = example_queries()
    assert isinstance(examples, list)
    assert len(examples) > 0


def test_example_queries_cover_every_rule_kind():
    examples = example_queries()
    assert any(re.search(r"lisinopril|metformin", e, re.I) for e in examples)
    assert any(re.search(r"expir", e, re.I) for e in examples)
    assert any(re.search(r"\d+mg", e, re.I) for e in examples)
    assert any(re.search(r"ndc", e, re.I) for e in examples)


def test_example_queries_returns_a_copy():
    examples = example_queries()
    examples.clear()
    assert len(example_queries()) > 0


def test_every_example_query_yields_a_filter():
    for example in example_queries():
        assert not parse(example).filters.is_empty(), example


# ── search_suggestions ────────────────────────────────────────────────────────

@pytest.mark.parametrize("prefix, keyword", [
    ("exp", "expir"),
    ("10m", "mg"),
    ("loc", "location"),
    ("ndc", "ndc"),
    ("sort", "sort"),
])
def test_suggestions_for_known_prefixes(prefix, keyword):
    suggestions = search_suggestions(prefix)
    assert len(suggestions) > 0
    assert any(keyword in s for s in suggestions)


@pytest.mark.parametrize("prefix", ["zzz", "", "   ", None, "lisinopril"])
def test_suggestions_for_unknown_prefix_is_empty(prefix):
    assert search_suggestions(prefix) == []


def test_strength_suggestions_use_typed_number():
    suggestions = search_suggestions("250")
    assert "250mg" in suggestions


def test_suggestions_prefer_entries_extending_input():
    assert search_suggestions("expiring in") == [
        "expiring in 30 days",
        "expiring in 60 days",
        "expiring in 90 days",
    ]


@pytest.mark.parametrize("prefix", ["\u00b2mg", "\u0663"])
def test_suggestions_for_non_ascii_digit_prefix_is_empty(prefix):
    assert search_suggestions(prefix) == []


def test_suggestions_fall_back_to_whole_category():
    """'expz' matches no entry but is still an expiration prefix."""
    assert "expired" in search_suggestions("expz")


def test_suggested_expiration_phrases_parse():
    for suggestion in search_suggestions("exp"):
        assert parse(suggestion).filters.expiration_window is not None, suggestion
