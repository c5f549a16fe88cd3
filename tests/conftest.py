"""Shared fixtures for the vacancy scanner tests."""

import pytest

from vacancy_scanner.logging.context import clear_log_context
from vacancy_scanner.persistence.database import close_database, init_database


@pytest.fixture(autouse=True)
def clean_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def database(tmp_path):
    """File-backed SQLite database; worker threads need a real file."""
    db_file = tmp_path / "scanner.db"
    init_database(f"sqlite:///{db_file}")
    yield db_file
    close_database()
