import os
import sys
import tempfile
from pathlib import Path

# Add backend directory to Python path FIRST
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Keep the module-level engine and log files away from the user's data dir
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="crud-fixtures-logs-"))

# Now import after path is set
import pytest
import models  # noqa: F401 - registers the tables on Base.metadata
from database import Base, create_db_engine, create_session_factory, get_db
from testing_support import EntityFactory, EntityHelper, RandomEntityGenerator
from utils.logging_utils import clear_logging_context, set_logging_context


@pytest.fixture(autouse=True)
def logging_context(request):
    """Tag every structured log record with the running test"""
    set_logging_context(test=request.node.name)
    yield
    clear_logging_context()


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = create_db_engine('sqlite://')
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def generator():
    return RandomEntityGenerator(seed=1234)


@pytest.fixture
def entity_helper(session_factory, generator):
    return EntityHelper(session_factory, generator=generator)


@pytest.fixture
def entity_factory(entity_helper):
    return EntityFactory(entity_helper)


@pytest.fixture
def client(session_factory):
    """API client whose requests use the test database"""
    from fastapi.testclient import TestClient
    from main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
