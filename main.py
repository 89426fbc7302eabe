"""
main.py
-------
Clinic Inventory Smart Search — FastAPI server
----------------------------------------------
Exposes the smart search parser to the inventory front end.  The search box
posts what the user typed and gets back structured filters plus residual
search terms; the query-building layer turns those into database predicates.

Endpoints:
    GET  /health              — Service health check
    POST /search/parse        — Parse a free-text query into filters + search terms
    GET  /search/examples     — Sample queries for search-box hints
    GET  /search/suggestions  — Canned completions for a partial query
    POST /eval                — Run the golden-query suite and return results
    GET  /eval/results        — Return latest saved eval results

Configuration (environment / .env):
    SEARCH_MAX_QUERY_LENGTH   Longest query accepted by /search/parse (default 500)
    SEARCH_MAX_SUGGESTIONS    Cap on /search/suggestions results (default 10)
    CORS_ALLOW_ORIGINS        Comma-separated browser origins
    LOG_LEVEL                 Root logging level (default INFO)

Project: Clinic Inventory Smart Search
"""

import os
import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from dotenv import load_dotenv

from fastapi import FastAPI, Query, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from eval.run_eval import run_eval, DEFAULT_GOLDEN_DATA_PATH
from schemas import ParseRequest
from smart_search import parse, example_queries, search_suggestions

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ── Config ─────────────────────────────────────────────────────────────────────

VERSION = "1.0.0"
SERVICE_NAME = "Clinic Inventory Smart Search"

MAX_QUERY_LENGTH = int(os.getenv("SEARCH_MAX_QUERY_LENGTH", "500"))
MAX_SUGGESTIONS = int(os.getenv("SEARCH_MAX_SUGGESTIONS", "10"))
CORS_ALLOW_ORIGINS = [
    o.strip().rstrip("/")
    for o in os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]

RESULTS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "tests", "results")

# ── FastAPI app ────────────────────────────────────────────────────────────────

app = FastAPI(
    title=SERVICE_NAME,
    version=VERSION,
    description="Free-text medication inventory search parser.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Response models ────────────────────────────────────────────────────────────

class ParseResponse(BaseModel):
    """Response body for POST /search/parse."""
    query: str
    filters: dict
    searchTerms: List[str]


class ExamplesResponse(BaseModel):
    """Response body for GET /search/examples."""
    examples: List[str]


class SuggestionsResponse(BaseModel):
    """Response body for GET /search/suggestions."""
    prefix: str
    suggestions: List[str]


# ── Helpers ────────────────────────────────────────────────────────────────────

def _load_latest_results(results_dir: str) -> Optional[dict]:
    """
    Load the most recent eval results JSON file from results_dir.

    Args:
        results_dir: Directory containing eval_results_*.json files.

    Returns:
        dict | None: Parsed results or None if no files found.
    """
    try:
        if not os.path.isdir(results_dir):
            return None
        files = sorted(
            [f for f in os.listdir(results_dir) if f.startswith("eval_results_") and f.endswith(".json")],
            reverse=True,
        )
        if not files:
            return None
        filepath = os.path.join(results_dir, files[0])
        with open(filepath, "r") as f:
            return json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Could not load eval results from %s: %s", results_dir, exc)
        return None


# ── Endpoints ──────────────────────────────────────────────────────────────────

@app.get("/health")
def health_check() -> dict:
    """
    Return service health status.

    Returns:
        dict: service, version, status, timestamp.
    """
    return {
        "service": SERVICE_NAME,
        "version": VERSION,
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/search/parse", response_model=ParseResponse)
def parse_search(request: ParseRequest) -> ParseResponse:
    """
    Parse a free-text inventory query.

    A missing or blank query is not an error: it returns empty filters and
    no search terms, which callers treat as "no constraints".

    Raises:
        HTTPException 400: query longer than SEARCH_MAX_QUERY_LENGTH.
    """
    query = request.query or ""
    if len(query) > MAX_QUERY_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Query is too long ({len(query)} characters, max {MAX_QUERY_LENGTH}).",
        )

    result = parse(query).to_dict()
    logger.info("search.parse filters=%s terms=%d", sorted(result["filters"]), len(result["searchTerms"]))
    return ParseResponse(query=query, **result)


@app.get("/search/examples", response_model=ExamplesResponse)
def get_examples() -> ExamplesResponse:
    """Return sample queries covering each recognised filter kind."""
    return ExamplesResponse(examples=example_queries())


@app.get("/search/suggestions", response_model=SuggestionsResponse)
def get_suggestions(
    prefix: str = Query(default="", max_length=100, description="What the user has typed so far"),
    limit: int = Query(default=MAX_SUGGESTIONS, ge=1, le=50),
) -> SuggestionsResponse:
    """
    Return canned completions for a partial query.

    An unrecognised prefix yields an empty list, not an error.
    """
    return SuggestionsResponse(prefix=prefix, suggestions=search_suggestions(prefix)[:limit])


@app.post("/eval")
def run_eval_endpoint() -> dict:
    """
    Run the golden-query suite against golden_queries.yaml and return results.

    Returns:
        dict: total, passed, failed, pass_rate, results, timestamp.
    """
    try:
        return run_eval(
            test_cases_path=DEFAULT_GOLDEN_DATA_PATH,
            save_results=True,
            results_dir=RESULTS_DIR,
        )
    except Exception as e:
        logger.exception("Eval run failed")
        return {
            "total": 0,
            "passed": 0,
            "failed": 0,
            "pass_rate": 0.0,
            "results": [],
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error": str(e),
        }


@app.get("/eval/results")
def get_eval_results() -> dict:
    """
    Return the most recently saved eval results from tests/results/.

    Returns:
        dict: Latest eval result, or message if none exist.
    """
    results = _load_latest_results(RESULTS_DIR)
    if results is None:
        return {
            "message": "No eval results found. Run POST /eval to generate results.",
        }
    return results
