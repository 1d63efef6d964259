"""
Podiatry Scheduler Tests

Unit tests live in tests/unit and run against the in-memory store,
except test_sql_store.py which uses a temporary SQLite database.

Running Tests:
    pytest tests/unit -v
"""
