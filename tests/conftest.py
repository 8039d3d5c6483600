"""Shared fixtures for the rehab plan engine tests."""

from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from remend.db.models import Base
from remend.exercises.catalog import seed_catalog
from remend.exercises.types import Dosage, ExerciseCatalogEntry


# Enable foreign key constraints for SQLite
@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
def db_session():
    """
    Provides a transactional in-memory SQLite DB session for tests.

    Each test gets an isolated database; the outer transaction is rolled
    back at the end, so nothing leaks between tests.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)

    connection = engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection, autoflush=False)()

    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()
        engine.dispose()


@pytest.fixture
def seeded_session(db_session):
    """db_session with the bundled exercise catalog loaded."""
    seed_catalog(db_session)
    return db_session


class InMemoryCatalog:
    """Catalog double keyed by bucket slug, preserving insertion order."""

    def __init__(self, entries: Iterable[ExerciseCatalogEntry] = ()):
        self.entries = list(entries)
        self.calls: list[str] = []

    def find_exercises(self, bucket_slug: str, exclude_ids: Iterable[int] = ()) -> list[ExerciseCatalogEntry]:
        self.calls.append(bucket_slug)
        excluded = set(exclude_ids)
        return [entry for entry in self.entries if entry.bucket_slug == bucket_slug and entry.id not in excluded]


def make_entry(
    exercise_id: int,
    bucket_slug: str,
    bucket_label: str | None = None,
    low: Dosage | None = None,
    moderate: Dosage | None = None,
) -> ExerciseCatalogEntry:
    return ExerciseCatalogEntry(
        id=exercise_id,
        bucket_slug=bucket_slug,
        bucket_label=bucket_label or bucket_slug.replace("_", " ").title(),
        name=f"Exercise {exercise_id}",
        dosage_presets={
            "low": low or Dosage(sets=2, reps=10, rest_seconds=30),
            "moderate": moderate or Dosage(sets=3, reps=12, rest_seconds=30),
        },
    )


@pytest.fixture
def in_memory_catalog():
    return InMemoryCatalog(
        [
            make_entry(1, "mobility_knee"),
            make_entry(2, "mobility_knee"),
            make_entry(3, "isometric_knee", low=Dosage(sets=3, hold_seconds=5)),
            make_entry(4, "activation_quads"),
            make_entry(5, "strength_quads"),
            make_entry(6, "stability_lower", low=Dosage(sets=2, hold_seconds=10)),
            make_entry(7, "mobility_general", low=Dosage(time_seconds=300)),
            make_entry(8, "isometric_general", low=Dosage(sets=2, hold_seconds=10)),
        ]
    )


class FakeClock:
    """Settable UTC clock for services."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def today(self) -> date:
        return self.now.date()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=UTC))


@pytest.fixture
def entry_factory():
    """Build catalog entries: entry_factory(id, bucket_slug, ...)."""
    return make_entry


@pytest.fixture
def catalog_factory():
    """Build an in-memory catalog from a list of entries."""
    return InMemoryCatalog
