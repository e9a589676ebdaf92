import os

import pytest

os.environ.setdefault("ENVIRONMENT", "test")

from app.infrastructure.config import ScoringConfig  # noqa: E402
from app.infrastructure.db import create_session_factory, make_engine_and_session  # noqa: E402
from app.infrastructure.models import Base  # noqa: E402
from app.infrastructure.uow import UnitOfWork  # noqa: E402
from tests.factories import seed_questionnaire  # noqa: E402


@pytest.fixture
def scoring_config():
    return ScoringConfig()


@pytest.fixture
def engine():
    engine, _ = make_engine_and_session("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    SessionLocal = create_session_factory(engine)
    with SessionLocal() as s:
        yield s


@pytest.fixture
def seeded(session):
    ids = seed_questionnaire(session)
    session.commit()
    return ids


@pytest.fixture
def file_engine(tmp_path):
    engine, _ = make_engine_and_session(f"sqlite:///{tmp_path / 'assessment.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def uow(file_engine):
    return UnitOfWork(create_session_factory(file_engine))
