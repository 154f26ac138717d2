import os

os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_TO_FILE"] = "false"
os.environ["NOTIFICATION_DISPATCH_MODE"] = "inline"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from mindcare.core.database import Base, build_engine, get_db
from mindcare.core.security import create_access_token
from mindcare.main import app
from mindcare.models.article import Article
from mindcare.models.consultation import Consultation, ConsultationMessage
from mindcare.models.forum import ForumThread
from mindcare.models.user import User, ROLE_ADMIN, ROLE_STUDENT
from mindcare.services.notifications import InlineDispatcher, get_dispatcher
from mindcare.services.permissions import Principal


class RecordingDispatcher:
    """Collects dispatched events instead of writing them"""

    def __init__(self):
        self.events = []

    def dispatch(self, events):
        self.events.extend(events)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def dispatcher(session_factory):
    return InlineDispatcher(session_factory=session_factory)


@pytest.fixture
def recorder():
    return RecordingDispatcher()


@pytest.fixture
def client(session_factory, dispatcher):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db, username, role=ROLE_STUDENT):
    user = User(
        username=username,
        email=f"{username}@example.com",
        full_name=username.title(),
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_user(db):
    def factory(username, role=ROLE_STUDENT):
        return _make_user(db, username, role)
    return factory


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol")


@pytest.fixture
def dave(make_user):
    return make_user("dave")


@pytest.fixture
def admin(make_user):
    return make_user("counselor", ROLE_ADMIN)


def principal(user):
    return Principal.from_user(user)


def auth(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def article(db, admin):
    article = Article(
        title="Coping with exam stress",
        content="Breathe, plan, rest.",
        category="stress",
        author_id=admin.id,
        status="published",
    )
    db.add(article)
    db.commit()
    db.refresh(article)
    return article


@pytest.fixture
def thread(db, alice):
    thread = ForumThread(
        title="Can't sleep before exams",
        content="Any tips?",
        category="stress",
        tags=["sleep"],
        author_id=alice.id,
    )
    db.add(thread)
    db.commit()
    db.refresh(thread)
    return thread


@pytest.fixture
def consultation(db, alice):
    consultation = Consultation(
        user_id=alice.id,
        question="I feel overwhelmed",
        status="open",
        messages=[ConsultationMessage(content="I feel overwhelmed", is_from_user=True, sender_id=alice.id)],
    )
    db.add(consultation)
    db.commit()
    db.refresh(consultation)
    return consultation
