# tests/conftest.py
import os
import sys
import logging

import pytest

# Point the app at an in-memory store before anything imports database.database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient

from database import crud, schemas
from database.database import Base, SessionLocal, engine
from database import models  # noqa: F401

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# --- Schema Reset Fixture ---
@pytest.fixture(autouse=True)
def reset_schema():
    """Every test starts from an empty question store."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# --- TestClient Fixture ---
@pytest.fixture
def client():
    # Import app here, after the environment is set
    from main import app
    with TestClient(app) as c:
        yield c


def question_data(n: int = 1, **overrides) -> dict:
    """Valid QuestionCreate fields for question n."""
    data = {
        "question": f"Question {n}?",
        "option_a": f"Q{n} option A",
        "option_b": f"Q{n} option B",
        "option_c": f"Q{n} option C",
        "option_d": f"Q{n} option D",
        "correct_answer": "A",
        "blooms_level": "Remember",
        "topic": "Topic 1",
        "unit": "Unit 1",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_question(db):
    """Factory: store one question and return the ORM row."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        return crud.create_question(db, schemas.QuestionCreate(**question_data(counter["n"], **overrides)))

    return _make


@pytest.fixture
def seeded_bank(make_question):
    """
    Small bank across two units:
      Unit 1 / Topic 1  Remember x3
      Unit 1 / Topic 2  Apply x2
      Unit 2 / Topic 3  Analyze x4
    """
    rows = []
    for _ in range(3):
        rows.append(make_question(unit="Unit 1", topic="Topic 1", blooms_level="Remember"))
    for _ in range(2):
        rows.append(make_question(unit="Unit 1", topic="Topic 2", blooms_level="Apply", correct_answer="C"))
    for _ in range(4):
        rows.append(make_question(unit="Unit 2", topic="Topic 3", blooms_level="Analyze", correct_answer="D"))
    return rows
