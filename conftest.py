# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Shared fixtures: an in-memory SQLite engine with a fresh schema per test.

The environment is set before any application import so the engine and
settings singletons pick it up.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["WORKERS_ENABLED"] = "false"
os.environ["CREATE_SCHEMA"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import uuid  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import text  # noqa: E402

from oncall_roster.core.database import engine  # noqa: E402
from oncall_roster.core.schema import metadata  # noqa: E402
from oncall_roster.repositories.roster_repository import RosterRepository  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_schema():
    """Drop and recreate every table so each test starts empty."""
    metadata.drop_all(engine)
    metadata.create_all(engine)
    yield


@pytest.fixture
def conn():
    with engine.connect() as connection:
        yield connection


@pytest.fixture
def repo(conn):
    return RosterRepository(conn)


@pytest.fixture
def make_user(conn):
    """Insert a user and return its id."""

    def _make(display_name: str) -> str:
        user_id = str(uuid.uuid4())
        conn.execute(
            text("INSERT INTO users (id, email, display_name) VALUES (:id, :email, :name)"),
            {"id": user_id, "email": f"{display_name.lower()}@example.com", "name": display_name},
        )
        conn.commit()
        return user_id

    return _make


@pytest.fixture
def make_roster(repo):
    """Create a roster straight through the repository (no background generation)."""

    def _make(**values):
        fields = {
            "name": "Platform",
            "timezone": "UTC",
            "handoff_time": "09:00",
            "handoff_day": 1,
            "schedule_weeks_ahead": 12,
            "max_consecutive_weeks": 2,
            "is_follow_the_sun": False,
        }
        fields.update(values)
        return repo.create_roster(fields)

    return _make


@pytest.fixture
def roster_with_members(repo, make_roster, make_user):
    """A Monday-handoff roster with Alice, Bob and Carol joined in that order."""

    def _make(names=("Alice", "Bob", "Carol"), **values):
        roster = make_roster(**values)
        users = []
        for name in names:
            user_id = make_user(name)
            repo.add_member(roster.id, user_id)
            users.append(user_id)
        return roster, users

    return _make
