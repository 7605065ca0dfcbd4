import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy.orm import sessionmaker

from dispatchdesk.database import Base, build_engine
from dispatchdesk.models.bonus import Bonus  # noqa: F401
from dispatchdesk.models.driver import Driver  # noqa: F401
from dispatchdesk.models.load import Load  # noqa: F401
from dispatchdesk.models.prebook_note import PrebookNote  # noqa: F401


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session
