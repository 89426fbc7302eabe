"""
schemas.py
----------
Clinic Inventory Smart Search — Pydantic Data Contracts
-------------------------------------------------------
Pydantic v2 models that act as the data contract between the smart search
parser and whatever builds the inventory query downstream (the GraphQL
resolver, the REST search route, the UI filter chips).

Wire format
-----------
Attributes are snake_case in Python and camelCase on the wire, so the
front end keeps reading ``filters.medicationName`` / ``searchTerms``::

    {
        "filters": {"medicationName": "lisinopril", "minStrength": 10, "maxStrength": 10},
        "searchTerms": ["lisinopril"]
    }

``filters`` is sparse: a key is only present when the parser recognised
that kind of constraint.  ``SearchFilters.to_dict()`` produces exactly that
mapping (aliases applied, unset fields dropped).

Validation policy
-----------------
  1. Enum fields only accept the documented values (EXPIRED,
     EXPIRING_7_DAYS, ... / EXPIRY_DATE, ... / ASC, DESC).
  2. A strength range must satisfy ``min_strength <= max_strength``.  The
     parser always normalises ranges, so this only fires for callers that
     build filters by hand.
  3. Unknown keys are rejected so a typo in a hand-built filter surfaces
     immediately instead of being silently ignored.

Public API
----------
    ExpirationWindow    str Enum — named expiry buckets.
    SortBy              str Enum — sortable inventory columns.
    SortOrder           str Enum — ASC / DESC.
    SearchFilters       Sparse structured filter set.
    SearchQuery         Parse result: filters + residual search terms.
    ParseRequest        Request body for POST /search/parse.

Project: Clinic Inventory Smart Search
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ExpirationWindow(str, Enum):
    """How soon a medication batch expires, as a named bucket."""

    EXPIRED = "EXPIRED"
    EXPIRING_7_DAYS = "EXPIRING_7_DAYS"
    EXPIRING_30_DAYS = "EXPIRING_30_DAYS"
    EXPIRING_60_DAYS = "EXPIRING_60_DAYS"
    EXPIRING_90_DAYS = "EXPIRING_90_DAYS"


class SortBy(str, Enum):
    EXPIRY_DATE = "EXPIRY_DATE"
    MEDICATION_NAME = "MEDICATION_NAME"
    QUANTITY = "QUANTITY"
    STRENGTH = "STRENGTH"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# ---------------------------------------------------------------------------
# SearchFilters — the sparse structured filter set
# ---------------------------------------------------------------------------

class SearchFilters(BaseModel):
    """
    Structured constraints recognised in a free-text inventory query.

    Every field defaults to ``None`` meaning "no constraint of that kind was
    detected".  Instances are immutable once built.

    Fields
    ------
    medication_name:   Residual free text treated as a drug name.
    ndc_id:            National Drug Code as typed, dashes preserved.
    min_strength:      Lower strength bound (equal to max for a single value).
    max_strength:      Upper strength bound.
    expiration_window: Named expiry bucket.
    sort_by:           Column to order results by.
    sort_order:        ASC or DESC.
    """

    model_config = ConfigDict(
        populate_by_name=True,   # accept medication_name= as well as medicationName=
        frozen=True,
        extra="forbid",
    )

    medication_name:   Optional[str]              = Field(default=None, alias="medicationName")
    ndc_id:            Optional[str]              = Field(default=None, alias="ndcId")
    min_strength:      Optional[float]            = Field(default=None, alias="minStrength")
    max_strength:      Optional[float]            = Field(default=None, alias="maxStrength")
    expiration_window: Optional[ExpirationWindow] = Field(default=None, alias="expirationWindow")
    sort_by:           Optional[SortBy]           = Field(default=None, alias="sortBy")
    sort_order:        Optional[SortOrder]        = Field(default=None, alias="sortOrder")

    @model_validator(mode="after")
    def check_strength_bounds(self) -> "SearchFilters":
        """
        Reject inverted strength ranges.

        Raises:
            ValueError: when both bounds are set and min_strength > max_strength.
        """
        if (
            self.min_strength is not None
            and self.max_strength is not None
            and self.min_strength > self.max_strength
        ):
            raise ValueError(
                f"min_strength ({self.min_strength}) must not exceed "
                f"max_strength ({self.max_strength})."
            )
        return self

    def is_empty(self) -> bool:
        """True when no structured constraint was recognised."""
        return not self.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        """
        Return the sparse camelCase mapping sent over the wire.

        Example::

            SearchFilters(medication_name="metformin").to_dict()
            # {"medicationName": "metformin"}
        """
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ---------------------------------------------------------------------------
# SearchQuery — the parse result
# ---------------------------------------------------------------------------

class SearchQuery(BaseModel):
    """
    Result of parsing one free-text query.

    Attributes:
        filters:      Structured constraints (sparse).
        search_terms: Lower-cased tokens not consumed by any filter, in order
                      of appearance.  Used for the fallback substring search.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    filters:      SearchFilters = Field(default_factory=SearchFilters)
    search_terms: List[str]     = Field(default_factory=list, alias="searchTerms")

    def to_dict(self) -> Dict[str, Any]:
        """Return ``{"filters": {...}, "searchTerms": [...]}`` with sparse filters."""
        return {
            "filters": self.filters.to_dict(),
            "searchTerms": list(self.search_terms),
        }


# ---------------------------------------------------------------------------
# HTTP request bodies
# ---------------------------------------------------------------------------

class ParseRequest(BaseModel):
    """Request body for POST /search/parse."""
    query: Optional[str] = None
