"""
run_eval.py
-----------
Clinic Inventory Smart Search — Eval runner
-------------------------------------------
Loads test cases from golden_queries.yaml, runs each query through the smart
search parser, scores on three dimensions, computes pass rate, and saves
timestamped results.

Scoring dimensions (all must pass for PASS verdict):
    expected_filters    — every listed filter key present with exactly this value
    absent_filters      — none of the listed filter keys present
    must_contain_terms  — each listed substring appears in some search term

Key functions:
    load_test_cases         — parse YAML test cases
    check_expected_filters  — subset match on the sparse filter mapping
    check_absent_filters    — forbidden keys must not appear
    check_search_terms      — AND over required substrings, case-insensitive
    run_eval                — full runner returning scored result dict

Project: Clinic Inventory Smart Search
"""

import os
import sys
import json
import time
import logging
import yaml
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _REPO_ROOT)

from smart_search import parse

logger = logging.getLogger(__name__)


DEFAULT_GOLDEN_DATA_PATH = os.path.join(
    os.path.dirname(os.path.abspath(__file__)),
    "golden_queries.yaml",
)

DEFAULT_RESULTS_DIR = os.path.join(_REPO_ROOT, "tests", "results")


# ── Loaders ───────────────────────────────────────────────────────────────────

def load_test_cases(path: str) -> List[Dict]:
    """
    Load and return test cases from a golden-query YAML file.

    Args:
        path: Absolute or relative path to the YAML file.

    Returns:
        List[Dict]: List of test case dicts. Returns empty list on any error.
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        cases = (data or {}).get("test_cases", [])
        if not isinstance(cases, list):
            logger.warning("No test_cases list in %s", path)
            return []
        return cases
    except (OSError, yaml.YAMLError, AttributeError) as exc:
        logger.warning("Could not load test cases from %s: %s", path, exc)
        return []


# ── Scoring functions ──────────────────────────────────────────────────────────

def check_expected_filters(actual: Dict[str, Any], expected: Optional[Dict[str, Any]]) -> bool:
    """
    Return True if every expected filter key is present with an equal value.

    Extra keys in *actual* are allowed.  Numbers compare by value, so an
    expected ``10`` matches an actual ``10.0``.

    Args:
        actual: Sparse filter mapping from ``SearchQuery.to_dict()``.
        expected: Required subset, camelCase keys.

    Returns:
        bool: True if all expected pairs match, or nothing is expected.
    """
    if not expected:
        return True
    return all(key in actual and actual[key] == value for key, value in expected.items())


def check_absent_filters(actual: Dict[str, Any], absent: Optional[List[str]]) -> bool:
    """
    Return True (clean) if none of the *absent* keys were produced.

    Args:
        actual: Sparse filter mapping.
        absent: Filter keys that must not appear.

    Returns:
        bool: True if no forbidden key is present.
    """
    if not absent:
        return True
    return not any(key in actual for key in absent)


def check_search_terms(terms: List[str], required: Optional[List[str]]) -> bool:
    """
    Return True if each required substring appears in at least one search term.

    Args:
        terms: Residual search terms from the parser.
        required: Substrings to look for (case-insensitive).

    Returns:
        bool: True if every substring is found, or none are required.
    """
    if not required:
        return True
    lowered = [t.lower() for t in terms]
    return all(any(req.lower() in t for t in lowered) for req in required)


# ── Runner ────────────────────────────────────────────────────────────────────

def run_eval(
    test_cases_path: str = DEFAULT_GOLDEN_DATA_PATH,
    save_results: bool = True,
    results_dir: str = DEFAULT_RESULTS_DIR,
) -> Dict:
    """
    Run the golden-query suite through the parser and return scored results.

    Args:
        test_cases_path: Path to golden_queries.yaml.
        save_results: Whether to write results to results_dir.
        results_dir: Directory to save timestamped result files.

    Returns:
        Dict: {total, passed, failed, pass_rate, results, timestamp}

    Raises:
        Never — individual case failures are caught and recorded.
    """
    test_cases = load_test_cases(test_cases_path)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

    per_case_results = []
    passed = 0
    failed = 0

    for case in test_cases:
        case_id = case.get("id", "unknown")
        query = case.get("query", "")
        expected_filters = case.get("expected_filters") or {}
        absent_filters = case.get("absent_filters") or []
        must_contain_terms = case.get("must_contain_terms") or []

        start = time.time()
        try:
            parsed = parse(query).to_dict()
            filters = parsed["filters"]
            terms = parsed["searchTerms"]
            error = None
        except Exception as e:
            filters, terms = {}, []
            error = f"Parser error: {e}"

        latency = round(time.time() - start, 6)

        filters_ok = check_expected_filters(filters, expected_filters)
        absent_ok = check_absent_filters(filters, absent_filters)
        terms_ok = check_search_terms(terms, must_contain_terms)

        case_passed = error is None and filters_ok and absent_ok and terms_ok

        status = "PASS" if case_passed else "FAIL"
        if case_passed:
            passed += 1
        else:
            failed += 1

        print(f"[{status}] {case_id} {query!r}")
        if error:
            print(f"       {error}")
        if not filters_ok:
            print(f"       expected_filters FAILED — got {filters}, expected {expected_filters}")
        if not absent_ok:
            print(f"       absent_filters FAILED — one of {absent_filters} present in {filters}")
        if not terms_ok:
            print(f"       must_contain_terms FAILED — {must_contain_terms} not all in {terms}")

        per_case_results.append({
            "id": case_id,
            "category": case.get("category", ""),
            "description": case.get("description", ""),
            "query": query,
            "passed": case_passed,
            "scores": {
                "expected_filters": filters_ok,
                "absent_filters": absent_ok,
                "must_contain_terms": terms_ok,
            },
            "actual": {
                "filters": filters,
                "searchTerms": terms,
            },
            "error": error,
            "latency_seconds": latency,
        })

    total = passed + failed
    pass_rate = round(passed / total, 4) if total > 0 else 0.0

    result_summary = {
        "total": total,
        "passed": passed,
        "failed": failed,
        "pass_rate": pass_rate,
        "results": per_case_results,
        "timestamp": timestamp,
    }

    print(f"\n===== Eval complete: {passed}/{total} passed ({pass_rate * 100:.1f}%) =====")

    if save_results:
        os.makedirs(results_dir, exist_ok=True)
        filepath = os.path.join(results_dir, f"eval_results_{timestamp}.json")
        try:
            with open(filepath, "w") as f:
                json.dump(result_summary, f, indent=2)
            print(f"Results saved to {filepath}")
        except OSError as e:
            print(f"Warning: could not save results: {e}")

    return result_summary


if __name__ == "__main__":
    run_eval()
