from datetime import timedelta
from types import SimpleNamespace

import pytest

from mindcare.core.config import settings
from mindcare.core.exceptions import ForbiddenError
from mindcare.core.logger import build_logging_config
from mindcare.core.security import create_access_token, decode_access_token
from mindcare.models.user import ROLE_ADMIN, ROLE_STUDENT
from mindcare.services import permissions
from mindcare.services.permissions import Principal

from conftest import auth


STUDENT = Principal(user_id=1, role=ROLE_STUDENT)
OTHER = Principal(user_id=2, role=ROLE_STUDENT)
ADMIN = Principal(user_id=3, role=ROLE_ADMIN)


def test_edit_is_author_only():
    assert permissions.can_edit(1, STUDENT)
    assert not permissions.can_edit(1, OTHER)
    assert not permissions.can_edit(1, ADMIN)


def test_delete_allows_admins():
    assert permissions.can_delete(1, STUDENT)
    assert permissions.can_delete(1, ADMIN)
    assert not permissions.can_delete(1, OTHER)


def test_thread_and_consultation_predicates():
    thread = SimpleNamespace(author_id=1)
    consultation = SimpleNamespace(user_id=1)

    assert permissions.can_mark_solution(thread, STUDENT)
    assert permissions.can_mark_solution(thread, ADMIN)
    assert not permissions.can_mark_solution(thread, OTHER)
    assert permissions.can_access_consultation(consultation, ADMIN)
    assert not permissions.can_access_consultation(consultation, OTHER)
    assert permissions.can_moderate(ADMIN) and not permissions.can_moderate(STUDENT)


def test_identity_reveal():
    assert permissions.can_reveal_identity(1, False, None)
    assert not permissions.can_reveal_identity(1, True, None)
    assert not permissions.can_reveal_identity(1, True, OTHER)
    assert permissions.can_reveal_identity(1, True, STUDENT)
    assert permissions.can_reveal_identity(1, True, ADMIN)


def test_require_raises_forbidden():
    permissions.require(True)
    with pytest.raises(ForbiddenError) as exc_info:
        permissions.require(False, "nope")
    assert exc_info.value.msg == "nope"
    assert exc_info.value.kind == "forbidden"


def test_token_round_trip():
    token = create_access_token({"sub": "7"})
    assert decode_access_token(token)["sub"] == "7"
    assert decode_access_token(token + "x") is None

    expired = create_access_token({"sub": "7"}, expires_delta=timedelta(minutes=-1))
    assert decode_access_token(expired) is None


def test_logging_config_without_files():
    config = build_logging_config()
    assert settings.LOG_TO_FILE is False
    assert set(config["handlers"]) == {"console"}
    assert config["loggers"]["mindcare"]["handlers"] == ["console"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_bad_token_is_unauthorized(client):
    resp = client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401
    assert resp.json()["kind"] == "unauthorized"
    assert resp.headers["www-authenticate"] == "Bearer"


def test_inactive_user_is_forbidden(client, db, alice):
    headers = auth(alice)
    alice.is_active = False
    db.commit()

    resp = client.get("/api/v1/users/me", headers=headers)
    assert resp.status_code == 403


def test_profile_read_and_update(client, alice):
    me = client.get("/api/v1/users/me", headers=auth(alice))
    assert me.json()["data"]["username"] == "alice"
    assert me.json()["data"]["role"] == ROLE_STUDENT

    updated = client.put(
        "/api/v1/users/me", json={"fullName": " Alice L. ", "bio": "Psych major"}, headers=auth(alice)
    )
    data = updated.json()["data"]
    assert data["fullName"] == "Alice L."
    assert data["bio"] == "Psych major"


def test_list_admins(client, alice, admin):
    resp = client.get("/api/v1/users/admins", headers=auth(alice))
    assert [u["username"] for u in resp.json()["data"]] == ["counselor"]


def test_health_reports_unreachable_queue(client, monkeypatch):
    from mindcare.core.cache import RedisClient

    monkeypatch.setattr(settings, "NOTIFICATION_DISPATCH_MODE", "queue")
    monkeypatch.setattr(RedisClient, "ping", lambda self: False)

    assert client.get("/health").json() == {"status": "degraded", "redis": "unreachable"}
