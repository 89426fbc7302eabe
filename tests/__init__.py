"""
tests/
------
Clinic Inventory Smart Search — Test Package
--------------------------------------------
Contains the pytest suites for the smart search service.

Test Modules:
    - test_smart_search.py: Parser rules, residual terms, examples and suggestions
    - test_schemas.py: Pydantic filter / query models
    - test_eval.py: Golden-query eval runner
    - test_main.py: FastAPI endpoints

Project: Clinic Inventory Smart Search
"""
