"""
smart_search.py
---------------
Clinic Inventory Smart Search — Free-text query parser
------------------------------------------------------
Turns what a clinic user types into the inventory search box into a
structured filter set plus residual search terms::

    parse("lisinopril 10mg expiring next week")
    # filters      → medicationName="lisinopril", minStrength=10, maxStrength=10,
    #                expirationWindow=EXPIRING_7_DAYS
    # search_terms → ["lisinopril"]

Parsing is an ordered list of rules.  Each rule looks at the remaining
(lower-cased) text, and when it matches it contributes one or more filter
fields and consumes the matched span, so no later rule can see it:

    1. ndc          — "ndc:0093-7214-01", "ndc 12345", "NDC: 0093-7214-01"
    2. expiration   — "expired", "expiring next week", "expires in 30 days"
    3. strength     — "10mg", "5 mg", "5-20mg", "10 to 50mg", "strength: 100"
    4. sort_by      — "sort by expiry|name|quantity|strength"
    5. sort_order   — "asc", "ascending", "oldest first", "desc", ...
    6. residual     — whatever is left becomes search terms; the first
                      meaningful leftover phrase is the medication name.

Only the first match per rule is honoured: one query expresses one filter
per dimension.  Day counts other than 7/30/60/90 are not rounded to a
bucket; the phrase is left as plain text.

The module also exposes two static helpers for the search box UI:
example_queries() and search_suggestions().

Key functions:
    parse:              Main entry point — never raises.
    example_queries:    Fixed sample queries for hints and docs.
    search_suggestions: Canned completions keyed by prefix category.

Project: Clinic Inventory Smart Search
"""

import logging
import re
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from schemas import ExpirationWindow, SearchFilters, SearchQuery, SortBy, SortOrder

logger = logging.getLogger(__name__)

# A rule returns the filter fields it recognised and the (start, end) span
# it consumed, or None when it does not apply.
RuleResult = Optional[Tuple[Dict[str, Any], Tuple[int, int]]]

# Marks a consumed span in the working text.  Control characters are
# stripped from the input first, so it cannot collide with user text.
_GAP = "\x00"

_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

_NUMBER = r"(\d+(?:\.\d+)?)"

# Units accepted when separated from the number by whitespace ("5 mg").
# A unit glued to the number ("10mL") is accepted whatever it is.
_SPACED_UNITS = r"(?:mg|mcg|g|kg|ml|l|iu|units?|meq|mmol)"
_UNIT_SUFFIX = r"(?:[a-z]+\b|\s+" + _SPACED_UNITS + r"\b)"
_RANGE_SEP = r"(?:\s*-\s*|\s+to\s+)"

# Characters trimmed from both ends of a residual token ("location:" → "location").
_EDGE_PUNCT = ".,;:!?\"'()[]{}"


# ── Patterns ──────────────────────────────────────────────────────────────────

_NDC_RE = re.compile(r"\bndc\s*:?\s*(\d+(?:-\d+)*)")

_EXPIRED_RE = re.compile(r"\bexpired\b")
_EXPIRING_WEEK_RE = re.compile(
    r"\b(?:expiring|expires)\s+(?:next|this|within\s+a|in\s+a)\s+week\b"
)
_EXPIRING_DAYS_RE = re.compile(r"\b(?:expiring|expires)\s+(?:in|within)\s+(\d{1,4})\s+days?\b")

_DAY_BUCKETS: Mapping[int, ExpirationWindow] = MappingProxyType({
    7: ExpirationWindow.EXPIRING_7_DAYS,
    30: ExpirationWindow.EXPIRING_30_DAYS,
    60: ExpirationWindow.EXPIRING_60_DAYS,
    90: ExpirationWindow.EXPIRING_90_DAYS,
})

# Tried in order; ranges before singles so "5-20mg" is never read as "20mg".
_STRENGTH_RANGE_RES = (
    re.compile(r"\bstrength\s*:?\s*" + _NUMBER + r"(?:[a-z]+)?" + _RANGE_SEP + _NUMBER + _UNIT_SUFFIX + r"?"),
    re.compile(r"(?<![\w.\-])" + _NUMBER + r"(?:[a-z]+)?" + _RANGE_SEP + _NUMBER + _UNIT_SUFFIX),
)
_STRENGTH_SINGLE_RES = (
    re.compile(r"\bstrength\s*:?\s*" + _NUMBER + _UNIT_SUFFIX + r"?"),
    re.compile(r"(?<![\w.\-])" + _NUMBER + _UNIT_SUFFIX),
)

_SORT_DIMENSIONS: Mapping[str, SortBy] = MappingProxyType({
    "expiry date": SortBy.EXPIRY_DATE,
    "expiration date": SortBy.EXPIRY_DATE,
    "expiration": SortBy.EXPIRY_DATE,
    "expiry": SortBy.EXPIRY_DATE,
    "date": SortBy.EXPIRY_DATE,
    "medication name": SortBy.MEDICATION_NAME,
    "name": SortBy.MEDICATION_NAME,
    "medication": SortBy.MEDICATION_NAME,
    "quantity": SortBy.QUANTITY,
    "qty": SortBy.QUANTITY,
    "stock": SortBy.QUANTITY,
    "strength": SortBy.STRENGTH,
    "dose": SortBy.STRENGTH,
})
_SORT_BY_RE = re.compile(
    r"\b(?:sort|sorted|order)\s+by\s+("
    + "|".join(re.escape(k).replace(r"\ ", r"\s+") for k in sorted(_SORT_DIMENSIONS, key=len, reverse=True))
    + r")\b"
)

_SORT_ORDERS: Mapping[str, SortOrder] = MappingProxyType({
    "ascending": SortOrder.ASC,
    "asc": SortOrder.ASC,
    "oldest first": SortOrder.ASC,
    "descending": SortOrder.DESC,
    "desc": SortOrder.DESC,
    "newest first": SortOrder.DESC,
})
_SORT_ORDER_RE = re.compile(
    r"\b(ascending|asc|oldest\s+first|descending|desc|newest\s+first)\b"
)

# Words that never make up a medication name on their own.  They stay in
# search_terms; they only bound the medication-name phrase.
_STOPWORDS = frozenset({
    "a", "an", "the", "at", "in", "on", "of", "for", "with", "and", "or", "to",
    "from", "by", "sort", "sorted", "order", "show", "find", "list", "all", "me",
    "my", "location", "loc", "medication", "medications", "meds", "drug", "drugs",
    "item", "items", "stock", "inventory", "expiring", "expires", "expiry",
    "day", "days", "next", "week", "strength", "ndc",
    "fridge", "refrigerator", "freezer", "cabinet", "shelf", "room", "temp",
})


# ── Rules ─────────────────────────────────────────────────────────────────────

def _to_number(text: str) -> float:
    """Parse a matched numeric string; integral values come back as int."""
    value = float(text)
    return int(value) if value.is_integer() else value


def _match_ndc(text: str) -> RuleResult:
    m = _NDC_RE.search(text)
    if not m:
        return None
    return {"ndc_id": m.group(1)}, m.span()


def _match_expiration(text: str) -> RuleResult:
    """
    Recognise an expiration window, in priority order: expired, next week,
    then "in N days" for a supported bucket.

    An "in N days" phrase with N outside {7, 30, 60, 90} is skipped, not
    rounded, and left in the text for the residual step.
    """
    m = _EXPIRED_RE.search(text)
    if m:
        return {"expiration_window": ExpirationWindow.EXPIRED}, m.span()

    m = _EXPIRING_WEEK_RE.search(text)
    if m:
        return {"expiration_window": ExpirationWindow.EXPIRING_7_DAYS}, m.span()

    for m in _EXPIRING_DAYS_RE.finditer(text):
        window = _DAY_BUCKETS.get(int(m.group(1)))
        if window is not None:
            return {"expiration_window": window}, m.span()
    return None


def _match_strength(text: str) -> RuleResult:
    """
    Recognise a strength range or single value.

    Ranges are normalised so min_strength <= max_strength regardless of the
    order the user typed them in ("20-5mg" → 5..20).
    """
    for pattern in _STRENGTH_RANGE_RES:
        m = pattern.search(text)
        if m:
            a, b = _to_number(m.group(1)), _to_number(m.group(2))
            return {"min_strength": min(a, b), "max_strength": max(a, b)}, m.span()

    for pattern in _STRENGTH_SINGLE_RES:
        m = pattern.search(text)
        if m:
            value = _to_number(m.group(1))
            return {"min_strength": value, "max_strength": value}, m.span()
    return None


def _match_sort_by(text: str) -> RuleResult:
    m = _SORT_BY_RE.search(text)
    if not m:
        return None
    dimension = re.sub(r"\s+", " ", m.group(1))
    return {"sort_by": _SORT_DIMENSIONS[dimension]}, m.span()


def _match_sort_order(text: str) -> RuleResult:
    m = _SORT_ORDER_RE.search(text)
    if not m:
        return None
    word = re.sub(r"\s+", " ", m.group(1))
    return {"sort_order": _SORT_ORDERS[word]}, m.span()


# Applied in this order; each sees only text earlier rules left behind.
_RULES: Tuple[Tuple[str, Callable[[str], RuleResult]], ...] = (
    ("ndc", _match_ndc),
    ("expiration", _match_expiration),
    ("strength", _match_strength),
    ("sort_by", _match_sort_by),
    ("sort_order", _match_sort_order),
)


# ── Residual text ─────────────────────────────────────────────────────────────

def _tokenize(segment: str) -> List[str]:
    tokens = (token.strip(_EDGE_PUNCT) for token in segment.split())
    return [token for token in tokens if token]


def _is_meaningful(token: str) -> bool:
    return token not in _STOPWORDS and any(ch.isalpha() for ch in token)


def _medication_name(segments: List[List[str]]) -> Optional[str]:
    """
    Return the first leftover phrase that contains a meaningful word.

    Leading and trailing stopwords are trimmed from the phrase; stopwords
    inside it are kept ("tablets at fridge").
    """
    for tokens in segments:
        meaningful = [i for i, token in enumerate(tokens) if _is_meaningful(token)]
        if meaningful:
            return " ".join(tokens[meaningful[0]:meaningful[-1] + 1])
    return None


# ── Public API ────────────────────────────────────────────────────────────────

def parse(query: Optional[str]) -> SearchQuery:
    """
    Parse a free-text inventory query into structured filters and search terms.

    Args:
        query: What the user typed.  None, non-string, empty or
               whitespace-only input yields an empty result.

    Returns:
        SearchQuery: filters (sparse) and residual lower-cased search terms.

    Raises:
        Never — an unexpected internal error degrades to a result with no
        filters and the plain tokens as search terms.
    """
    if not isinstance(query, str):
        return SearchQuery()
    text = _CONTROL_CHAR_RE.sub(" ", query).strip().lower()
    if not text:
        return SearchQuery()

    try:
        working = text
        fields: Dict[str, Any] = {}
        for name, rule in _RULES:
            hit = rule(working)
            if hit is None:
                continue
            matched, (start, end) = hit
            logger.debug("smart_search: rule %s matched %r → %s", name, working[start:end], matched)
            fields.update(matched)
            working = working[:start] + _GAP + working[end:]

        segments = [_tokenize(segment) for segment in working.split(_GAP)]
        medication_name = _medication_name(segments)
        if medication_name:
            fields["medication_name"] = medication_name

        return SearchQuery(
            filters=SearchFilters(**fields),
            search_terms=[token for tokens in segments for token in tokens],
        )
    except Exception:
        logger.exception("smart_search: parse failed for %r — falling back to plain terms", text)
        return SearchQuery(search_terms=_tokenize(text))


# ── UI helpers ────────────────────────────────────────────────────────────────

_EXAMPLE_QUERIES: Tuple[str, ...] = (
    "lisinopril",
    "metformin 500mg",
    "lisinopril 10mg expiring next week",
    "expired",
    "expiring in 30 days",
    "tablets at fridge expiring in 90 days",
    "5-20mg",
    "strength: 100",
    "ndc:0093-7214-01",
    "expired medications sort by name",
    "medications 10-50mg sort by strength ascending",
)

_SUGGESTIONS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "expiration": (
        "expired",
        "expiring next week",
        "expiring in 30 days",
        "expiring in 60 days",
        "expiring in 90 days",
    ),
    # "{n}" is replaced with the number the user started typing.
    "strength": (
        "{n}mg",
        "{n}mcg",
        "{n} mg",
        "{n}mg tablets",
        "strength: {n}",
    ),
    "location": (
        "location: fridge",
        "location: cabinet",
        "location: room temp",
        "at fridge",
        "in room temp",
    ),
    "ndc": (
        "ndc:0093-7214-01",
        "ndc 12345",
        "NDC: 0093-7214-01",
    ),
    "sort": (
        "sort by expiry",
        "sort by name",
        "sort by quantity",
        "sort by strength",
        "sort by expiry ascending",
        "sort by name descending",
    ),
})

# Keyword prefixes recognised by search_suggestions(), checked in order.
_PREFIX_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("exp", "expiration"),
    ("loc", "location"),
    ("ndc", "ndc"),
    ("sort", "sort"),
)

_LEADING_NUMBER_RE = re.compile(r"[0-9]+(?:\.[0-9]+)?")


def example_queries() -> List[str]:
    """Return the fixed list of sample queries shown as search-box hints."""
    return list(_EXAMPLE_QUERIES)


def search_suggestions(partial_input: Optional[str]) -> List[str]:
    """
    Return canned completions for what the user has typed so far.

    The category is chosen by prefix: "exp" → expiration phrases, a leading
    digit → strength phrases, "loc" → location phrases, "ndc" → NDC phrases,
    "sort" → sort phrases.  Within a category, entries that extend the
    input are preferred; when none do, the whole category is returned.

    Args:
        partial_input: Search-box contents, possibly partial.

    Returns:
        List[str]: Suggestions, or [] for an unrecognised prefix.

    Raises:
        Never.
    """
    if not isinstance(partial_input, str):
        return []
    text = partial_input.strip().lower()
    if not text:
        return []

    m = _LEADING_NUMBER_RE.match(text)
    if m:
        candidates = [template.format(n=m.group(0)) for template in _SUGGESTIONS["strength"]]
    else:
        category = next((cat for prefix, cat in _PREFIX_CATEGORIES if text.startswith(prefix)), None)
        if category is None:
            return []
        candidates = list(_SUGGESTIONS[category])

    extending = [c for c in candidates if c.lower().startswith(text)]
    return extending or candidates
