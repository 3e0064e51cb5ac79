"""
Shared fixtures: a file-backed SQLite app per test (router reads run on
worker threads with their own connections), a recording broadcaster and a
scriptable responder client.
"""

from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestingConfig
from extensions import db
from models.conversation import Conversation, STATUS_FLAGGED, PRIORITY_HIGH
from models.message import Message
from models.scheme import Scheme
from models.user import User, ROLE_ADMIN, ROLE_USER
from routes.auth_routes import issue_token
from services.broadcast import RecordingBroadcaster
from services.responder import ResponderResult


class StubResponderClient:
    """Stands in for the backend client; records every message list it receives."""

    def __init__(self, result=None):
        self.result = result or ResponderResult.failed("Connection refused")
        self.calls = []

    def complete(self, messages):
        self.calls.append(messages)
        return self.result


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def responder_client():
    return StubResponderClient()


@pytest.fixture
def app(tmp_path, broadcaster, responder_client):
    class FileTestingConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "handoff-test.db")

    app = create_app(FileTestingConfig, broadcaster=broadcaster, responder_client=responder_client)
    ctx = app.app_context()
    ctx.push()
    yield app
    app.extensions["handoff"].router.shutdown()
    db.session.remove()
    db.drop_all()
    db.engine.dispose()
    ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions["handoff"]


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make_user(name=None, role=ROLE_USER):
        counter["n"] += 1
        name = name or f"{role}-{counter['n']}"
        user = User(name=name, email=f"{name.lower().replace(' ', '.')}.{counter['n']}@example.com", role=role)
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user("Asha", ROLE_USER)


@pytest.fixture
def other_user(make_user):
    return make_user("Ravi", ROLE_USER)


@pytest.fixture
def admin(make_user):
    return make_user("Meera", ROLE_ADMIN)


@pytest.fixture
def other_admin(make_user):
    return make_user("Karan", ROLE_ADMIN)


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        return {"Authorization": f"Bearer {issue_token(user)}"}
    return _headers


@pytest.fixture
def make_conversation(app):
    def _make_conversation(owner, status=None, updated_at=None, assigned_to=None, title="Help"):
        conversation = Conversation(owner_id=owner.id, title=title)
        if status == STATUS_FLAGGED:
            conversation.status = STATUS_FLAGGED
            conversation.priority = PRIORITY_HIGH
        if assigned_to is not None:
            conversation.assigned_operator_id = assigned_to.id
            conversation.assigned_at = datetime.utcnow()
        conversation.updated_at = updated_at or datetime.utcnow()
        db.session.add(conversation)
        db.session.commit()
        return conversation
    return _make_conversation


@pytest.fixture
def add_message(app):
    def _add_message(conversation, sender, text, created_at=None):
        message = Message(
            conversation_id=conversation.id,
            sender=sender,
            text=text,
            created_at=created_at or datetime.utcnow()
        )
        db.session.add(message)
        db.session.commit()
        return message
    return _add_message


@pytest.fixture
def schemes(app):
    records = [
        Scheme(
            name="PM Kisan Samman Nidhi",
            description="Income support for landholding farmer families.",
            ministry="Ministry of Agriculture and Farmers Welfare",
            category="Agriculture",
            benefits=["Rs 6,000 per year", "Direct benefit transfer"],
            link="https://pmkisan.gov.in"
        ),
        Scheme(
            name="Ayushman Bharat PM-JAY",
            description="Health cover for secondary and tertiary hospitalisation.",
            ministry="Ministry of Health and Family Welfare",
            category="Health",
            benefits=["Rs 5 lakh cover per family"],
            link="https://pmjay.gov.in"
        ),
        Scheme(
            name="DigiLocker",
            description="Cloud storage for issued documents.",
            ministry="Ministry of Electronics and Information Technology",
            category="Digital Services",
            benefits=["Free storage"],
            link="https://www.digilocker.gov.in"
        ),
    ]
    db.session.add_all(records)
    db.session.commit()
    return records


@pytest.fixture
def minutes_ago():
    base = datetime.utcnow()

    def _minutes_ago(n):
        return base - timedelta(minutes=n)
    return _minutes_ago
