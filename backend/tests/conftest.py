"""Root conftest — shared test configuration."""

import os

# Tests never verify real tokens or reach a real Postgres
os.environ.setdefault("AUTH_DEV_BYPASS", "false")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
