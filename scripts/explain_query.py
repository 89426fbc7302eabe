#!/usr/bin/env python3
"""
Show how the smart search parser reads one or more queries.

Run from the project root:
    python scripts/explain_query.py "lisinopril 10mg expiring next week"
    python scripts/explain_query.py --examples
    python scripts/explain_query.py --suggest exp
"""

import argparse
import json
import os
import sys

# Allow importing from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def main(argv=None) -> int:
    from smart_search import parse, example_queries, search_suggestions

    parser = argparse.ArgumentParser(description="Explain smart search parsing.")
    parser.add_argument("queries", nargs="*", help="Queries to parse")
    parser.add_argument("--examples", action="store_true", help="Parse the built-in example queries")
    parser.add_argument("--suggest", metavar="PREFIX", help="Print search suggestions for PREFIX")
    args = parser.parse_args(argv)

    if args.suggest is not None:
        for suggestion in search_suggestions(args.suggest):
            print(suggestion)
        return 0

    queries = list(args.queries)
    if args.examples:
        queries.extend(example_queries())
    if not queries:
        parser.print_usage()
        return 1

    for query in queries:
        print(f"\n> {query}")
        print(json.dumps(parse(query).to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
