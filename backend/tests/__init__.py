"""
Test Suite

Tests for the Memofy core backend.

Structure:
    tests/
    ├── __init__.py         # This file
    ├── conftest.py         # In-memory database, fake clock, users, engine fixtures
    ├── unit/               # Registry, resolver, locks, memo workflow, services
    │   └── __init__.py
    └── integration/        # API endpoint tests (httpx against the ASGI app)
        ├── __init__.py
        └── conftest.py

To run tests:
    pytest backend/tests/
    pytest backend/tests/unit/
    pytest backend/tests/integration/
"""
