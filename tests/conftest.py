from datetime import datetime, timedelta

import pytest
import pytz
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models.base import Base
from utils.catalog_manager import CatalogManager
from utils.progress_manager import ProgressManager
from utils.promotion_manager import PromotionManager
from utils.report_manager import ReportManager
from utils.security import BcryptVerifier
from utils.storage import PrefixBlobResolver
from utils.user_manager import UserManager

PASSWORD = "secret-pass"


class TickingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 9, 1, 12, 0, tzinfo=pytz.utc)
        self.step = step

    def __call__(self):
        self.now = self.now + self.step
        return self.now


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
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def verifier():
    # Minimum cost keeps the suite fast
    return BcryptVerifier(rounds=4)


@pytest.fixture
def user_manager(db, verifier, clock):
    return UserManager(db, verifier=verifier, clock=clock)


@pytest.fixture
def progress(db, clock):
    return ProgressManager(db, clock=clock)


@pytest.fixture
def promotions(db, clock):
    return PromotionManager(db, clock=clock)


@pytest.fixture
def reports(db):
    return ReportManager(db, blob_resolver=PrefixBlobResolver("https://files.example.edu"))


@pytest.fixture
def catalog(db):
    return CatalogManager(db)


@pytest.fixture
def make_user(user_manager):
    def _make(username, role="student", display_name=None):
        return user_manager.create_user(
            username=username,
            email=f"{username}@example.edu",
            password=PASSWORD,
            role=role,
            display_name=display_name,
        )

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("alice", role="admin")


@pytest.fixture
def second_admin(make_user):
    return make_user("bob", role="admin")


@pytest.fixture
def instructor(make_user):
    return make_user("ivy", role="instructor")


@pytest.fixture
def student(make_user):
    return make_user("sam", display_name="zero_cool")


@pytest.fixture
def tree_nodes(catalog):
    """Two trees: 'Capture the Flag' with 3 nodes and 'Coding' with 2."""
    ctf = catalog.create_tree("Capture the Flag", category="hands-on", display_order=1)
    coding = catalog.create_tree("Coding", category="development", display_order=2)
    nodes = [
        catalog.create_node(ctf.id, 1, "Metasploitable", points=100),
        catalog.create_node(ctf.id, 2, "Bandit", points=100),
        catalog.create_node(ctf.id, 3, "Hack The Box", points=150),
        catalog.create_node(coding.id, 1, "First Language", points=150),
        catalog.create_node(coding.id, 2, "Second Language", points=200),
    ]
    return ctf, coding, nodes
