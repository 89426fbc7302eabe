"""
eval/__init__.py
----------------
Clinic Inventory Smart Search — Eval package

Exports the golden-query evaluation runner and YAML loader used to check
parser behaviour against the golden_queries.yaml suite.

Project: Clinic Inventory Smart Search
"""
