import os

# must be set before wii.core.config builds its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "testing"
os.environ["AUTO_CREATE_SCHEMA"] = "false"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from wii.core.database import SessionLocal, engine
from wii.models.orm import Base, Content, Question, Subject, TagMetaData


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def client():
    from wii.main import app

    return TestClient(app)


def add_question(db, subject_id, title, tags=(), description=None, contents=()):
    q = Question(
        subject_id=subject_id, title=title, description=description,
        tags=[TagMetaData(key=k, value=v) for k, v in tags],
        contents=[Content(content_type="text", value=c) for c in contents],
    )
    db.add(q)
    db.flush()
    return q


@pytest.fixture
def sample(db):
    """Subject with Q1("Intro", easy), Q2("Advanced", hard), Q3("Intro II", easy),
    plus an unrelated subject holding one more "Intro" question."""
    subject = Subject(name="Computer Science")
    other = Subject(name="Biology")
    db.add_all([subject, other])
    db.flush()
    q1 = add_question(db, subject.id, "Intro", [("difficulty", "easy")], contents=["What is a bit?"])
    q2 = add_question(db, subject.id, "Advanced", [("difficulty", "hard")])
    q3 = add_question(db, subject.id, "Intro II", [("difficulty", "easy")])
    stray = add_question(db, other.id, "Intro to cells", [("difficulty", "easy")])
    db.commit()
    return SimpleNamespace(subject_id=subject.id, other_subject_id=other.id,
                           q1=q1.id, q2=q2.id, q3=q3.id, stray=stray.id)
