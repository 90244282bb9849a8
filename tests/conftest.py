"""Pytest bootstrap for project imports and shared scheduling fixtures."""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
import sys

# Ensure project root is on sys.path so `import tutorslot` works
PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tutorslot.database import Base
from tutorslot.models.people import Student, Tutor
from tutorslot.services.scheduling_service import build_scheduling_service
from tutorslot.utils.booking_lock import TutorLockRegistry

# Fixed "now" for every service built by the fixtures below.
NOW = datetime(2025, 1, 9, 8, 0)


@pytest.fixture
def db_session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def tutor(db_session):
    tutor = Tutor(full_name="Tran Minh", hourly_rate=Decimal("200000"))
    db_session.add(tutor)
    db_session.commit()
    db_session.refresh(tutor)
    return tutor


@pytest.fixture
def student(db_session):
    student = Student(full_name="Le Anh")
    db_session.add(student)
    db_session.commit()
    db_session.refresh(student)
    return student


@pytest.fixture
def service(db_session):
    return build_scheduling_service(db_session, locks=TutorLockRegistry(), clock=lambda: NOW)
