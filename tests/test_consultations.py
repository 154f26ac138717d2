import pytest

from mindcare.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from mindcare.models.notification import Notification
from mindcare.services import consultations as consultation_service

from conftest import auth, principal


def test_create_consultation_opens_with_question(db, alice):
    consultation = consultation_service.create_consultation(db, "  Need someone to talk to  ", False, principal(alice))

    assert consultation.status == "open"
    assert consultation.question == "Need someone to talk to"
    assert [m.content for m in consultation.messages] == ["Need someone to talk to"]
    assert consultation.messages[0].is_from_user is True
    assert consultation.admin_id is None


def test_status_moves_forward_only(db, consultation, alice, admin, recorder):
    updated = consultation_service.send_message(db, consultation.id, "still here", principal(alice), recorder)
    assert updated.status == "open"

    updated = consultation_service.send_message(db, consultation.id, "Let's talk", principal(admin), recorder)
    assert updated.status == "answered"
    assert updated.admin_id == admin.id

    updated = consultation_service.send_message(db, consultation.id, "thanks", principal(alice), recorder)
    assert updated.status == "answered"

    closed = consultation_service.close_consultation(db, consultation.id, principal(alice))
    assert closed.status == "closed"


def test_closed_consultation_rejects_messages(db, consultation, alice, admin, recorder):
    consultation_service.close_consultation(db, consultation.id, principal(admin))
    before = len(consultation_service.load_consultation(db, consultation.id).messages)

    with pytest.raises(ConflictError):
        consultation_service.send_message(db, consultation.id, "hello?", principal(alice), recorder)
    with pytest.raises(ConflictError):
        consultation_service.send_message(db, consultation.id, "hello?", principal(admin), recorder)

    after = consultation_service.load_consultation(db, consultation.id)
    assert len(after.messages) == before
    assert after.status == "closed"
    assert recorder.events == []


def test_close_twice_is_noop(db, consultation, alice):
    first = consultation_service.close_consultation(db, consultation.id, principal(alice))
    version = first.version
    second = consultation_service.close_consultation(db, consultation.id, principal(alice))
    assert second.status == "closed"
    assert second.version == version


def test_only_asker_or_admin(db, consultation, bob, recorder):
    with pytest.raises(ForbiddenError):
        consultation_service.get_consultation(db, consultation.id, principal(bob))
    with pytest.raises(ForbiddenError):
        consultation_service.send_message(db, consultation.id, "hi", principal(bob), recorder)
    with pytest.raises(ForbiddenError):
        consultation_service.close_consultation(db, consultation.id, principal(bob))


def test_message_direction_follows_principal(db, consultation, alice, admin, recorder):
    with pytest.raises(ForbiddenError):
        consultation_service.send_message(db, consultation.id, "pretend", principal(alice), recorder, is_from_user=False)
    with pytest.raises(ForbiddenError):
        consultation_service.send_message(db, consultation.id, "pretend", principal(admin), recorder, is_from_user=True)

    updated = consultation_service.send_message(db, consultation.id, "answer", principal(admin), recorder)
    assert updated.messages[-1].is_from_user is False


def test_message_notifications(db, consultation, alice, admin, recorder):
    # nobody is assigned yet, so the asker's message reaches no one
    consultation_service.send_message(db, consultation.id, "anyone?", principal(alice), recorder)
    assert recorder.events == []

    consultation_service.send_message(db, consultation.id, "I'm here", principal(admin), recorder)
    assert [(e.recipient_id, e.sender_id, e.type) for e in recorder.events] == [
        (alice.id, admin.id, "consultation_message")
    ]

    consultation_service.send_message(db, consultation.id, "thank you", principal(alice), recorder)
    assert (recorder.events[-1].recipient_id, recorder.events[-1].sender_id) == (admin.id, alice.id)


def test_messages_append_in_order(db, consultation, alice, admin, recorder):
    ids = [m.id for m in consultation_service.load_consultation(db, consultation.id).messages]
    updated = consultation_service.send_message(db, consultation.id, "next", principal(admin), recorder)
    assert [m.id for m in updated.messages][:-1] == ids
    assert len(updated.messages) == len(ids) + 1


def test_list_all_requires_admin(db, consultation, alice, admin):
    with pytest.raises(ForbiddenError):
        consultation_service.list_all_consultations(db, principal(alice))

    assert len(consultation_service.list_all_consultations(db, principal(admin), "open")) == 1
    assert consultation_service.list_all_consultations(db, principal(admin), "closed") == []


def test_missing_consultation(db, alice):
    with pytest.raises(NotFoundError):
        consultation_service.get_consultation(db, 31337, principal(alice))


# ============ API ============

def test_consultation_flow_over_http(client, db, alice, admin):
    created = client.post("/api/v1/consultations", json={"question": "Panic attacks"}, headers=auth(alice))
    assert created.status_code == 201
    consultation_id = created.json()["data"]["id"]

    answered = client.post(
        f"/api/v1/consultations/{consultation_id}/messages", json={"content": "Tell me more"}, headers=auth(admin)
    )
    assert answered.status_code == 200
    data = answered.json()["data"]
    assert data["status"] == "answered"
    assert data["admin"]["username"] == "counselor"
    assert [m["isFromUser"] for m in data["messages"]] == [True, False]

    closed = client.patch(f"/api/v1/consultations/{consultation_id}/close", headers=auth(alice))
    assert closed.json()["data"]["status"] == "closed"

    rejected = client.post(
        f"/api/v1/consultations/{consultation_id}/messages", json={"content": "one more"}, headers=auth(alice)
    )
    assert rejected.status_code == 409
    assert rejected.json()["kind"] == "conflict"

    notifications = db.query(Notification).filter(Notification.recipient_id == alice.id).all()
    assert [n.type for n in notifications] == ["consultation_message"]


def test_anonymous_asker_hidden_from_counselor(client, alice, admin):
    created = client.post(
        "/api/v1/consultations", json={"question": "Private", "isAnonymous": True}, headers=auth(alice)
    )
    consultation_id = created.json()["data"]["id"]
    assert created.json()["data"]["userId"] == alice.id

    seen = client.get(f"/api/v1/consultations/{consultation_id}", headers=auth(admin)).json()["data"]
    assert seen["userId"] is None
    assert seen["user"] is None


def test_my_consultations(client, consultation, alice, bob):
    mine = client.get("/api/v1/consultations/my", headers=auth(alice)).json()["data"]
    assert len(mine) == 1
    assert client.get("/api/v1/consultations/my", headers=auth(bob)).json()["data"] == []


def test_status_filter_is_validated(client, admin):
    resp = client.get("/api/v1/consultations", params={"status": "pending"}, headers=auth(admin))
    assert resp.status_code == 400
    assert resp.json()["kind"] == "invalid_input"


def test_anonymous_asker_message_has_no_sender(db, alice, admin, recorder):
    consultation = consultation_service.create_consultation(db, "Private", True, principal(alice))
    consultation_id = consultation.id
    consultation_service.send_message(db, consultation_id, "I'm listening", principal(admin), recorder)

    consultation_service.send_message(db, consultation_id, "thank you", principal(alice), recorder)

    event = recorder.events[-1]
    assert (event.recipient_id, event.sender_id) == (admin.id, None)
    # the counselor still signs their own messages
    assert recorder.events[0].sender_id == admin.id


def test_anonymous_asker_hidden_in_counselor_notifications(client, alice, admin):
    created = client.post(
        "/api/v1/consultations", json={"question": "Private", "isAnonymous": True}, headers=auth(alice)
    )
    consultation_id = created.json()["data"]["id"]
    client.post(f"/api/v1/consultations/{consultation_id}/messages", json={"content": "Hi"}, headers=auth(admin))
    client.post(f"/api/v1/consultations/{consultation_id}/messages", json={"content": "Hello"}, headers=auth(alice))

    inbox = client.get("/api/v1/notifications/all", headers=auth(admin)).json()["data"]
    assert len(inbox) == 1
    assert inbox[0]["sender"] is None
    assert inbox[0]["consultation"]["id"] == consultation_id
