"""Shared fixtures: an in-memory SQLite database with the full schema."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from records_timeline.models.database import Base
from records_timeline.models.records import Patient


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def patient(db):
    patient = Patient(first_name="Jane", last_name="Doe")
    db.add(patient)
    db.commit()
    return patient
