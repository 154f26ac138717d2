from unittest.mock import MagicMock

import pytest
import redis

from mindcare.core.exceptions import NotFoundError
from mindcare.models.notification import Notification
from mindcare.services import articles as article_service
from mindcare.services import notifications as notification_service
from mindcare.services.notifications import InlineDispatcher, NotificationEvent, RedisQueueDispatcher
from mindcare.tasks.jobs import drain_notification_queue

from conftest import auth, principal


def _notify(db, recipient, sender=None, type="comment", **refs):
    notification = Notification(
        recipient_id=recipient.id,
        sender_id=sender.id if sender else None,
        type=type,
        content="hello",
        **refs
    )
    db.add(notification)
    db.commit()
    return notification.id


def test_inline_dispatcher_persists(db, dispatcher, alice, bob):
    dispatcher.dispatch([NotificationEvent(recipient_id=alice.id, sender_id=bob.id, type="like", article_id=1)])

    rows = db.query(Notification).all()
    assert len(rows) == 1
    assert (rows[0].recipient_id, rows[0].sender_id, rows[0].is_read) == (alice.id, bob.id, False)


def test_inline_dispatch_failure_is_swallowed(db, alice):
    session = MagicMock()
    session.commit.side_effect = RuntimeError("database is gone")
    failing = InlineDispatcher(session_factory=lambda: session)

    failing.dispatch([NotificationEvent(recipient_id=alice.id, type="like")])

    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_dispatch_failure_keeps_content_change(db, article, alice):
    broken = MagicMock()
    broken.add_all.side_effect = RuntimeError("insert failed")
    failing = InlineDispatcher(session_factory=lambda: broken)

    updated = article_service.add_comment(db, article.id, "kept", principal(alice), failing)

    assert [c.content for c in updated.comments] == ["kept"]
    assert db.query(Notification).count() == 0


def test_redis_dispatcher_pushes_json():
    client = MagicMock()
    queued = RedisQueueDispatcher(client=client, queue_key="test:queue")
    events = [NotificationEvent(recipient_id=1, type="like", sender_id=2, article_id=3)]

    queued.dispatch(events)

    client.rpush.assert_called_once_with("test:queue", events[0].to_json())


def test_redis_dispatcher_swallows_errors():
    client = MagicMock()
    client.rpush.side_effect = redis.ConnectionError("down")
    queued = RedisQueueDispatcher(client=client, queue_key="test:queue")

    queued.dispatch([NotificationEvent(recipient_id=1, type="like")])

    client.rpush.assert_called_once()


def test_redis_dispatcher_skips_empty_batches():
    client = MagicMock()
    RedisQueueDispatcher(client=client, queue_key="test:queue").dispatch([])
    client.rpush.assert_not_called()


def test_drain_persists_queued_events(db, session_factory, alice, bob):
    raw = [
        NotificationEvent(recipient_id=alice.id, sender_id=bob.id, type="comment", article_id=1).to_json(),
        NotificationEvent(recipient_id=bob.id, sender_id=alice.id, type="reply", article_id=1).to_json(),
    ]
    client = MagicMock()
    client.pipeline.return_value.execute.return_value = [raw, True]

    drained = drain_notification_queue(client=client, session_factory=session_factory, batch_size=10, queue_key="q")

    assert drained == 2
    pipe = client.pipeline.return_value
    pipe.lrange.assert_called_once_with("q", 0, 9)
    pipe.ltrim.assert_called_once_with("q", 10, -1)
    assert sorted(n.type for n in db.query(Notification).all()) == ["comment", "reply"]


def test_drain_requeues_on_failure(alice):
    raw = [NotificationEvent(recipient_id=alice.id, type="like").to_json()]
    client = MagicMock()
    client.pipeline.return_value.execute.return_value = [raw, True]
    session = MagicMock()
    session.commit.side_effect = RuntimeError("locked")

    drained = drain_notification_queue(client=client, session_factory=lambda: session, batch_size=5, queue_key="q")

    assert drained == 0
    client.lpush.assert_called_once_with("q", raw[0])
    session.rollback.assert_called_once()


def test_drain_empty_queue(session_factory):
    client = MagicMock()
    client.pipeline.return_value.execute.return_value = [[], True]
    assert drain_notification_queue(client=client, session_factory=session_factory, queue_key="q") == 0


def test_mark_as_read_is_idempotent_and_private(db, alice, bob):
    notification_id = _notify(db, alice, bob)

    first = notification_service.mark_as_read(db, notification_id, principal(alice))
    second = notification_service.mark_as_read(db, notification_id, principal(alice))
    assert first.is_read and second.is_read

    with pytest.raises(NotFoundError):
        notification_service.mark_as_read(db, notification_id, principal(bob))


def test_mark_all_as_read(db, alice, bob):
    _notify(db, alice, bob)
    _notify(db, alice, bob)
    _notify(db, bob, alice)

    assert notification_service.mark_all_as_read(db, principal(alice)) == 2
    assert notification_service.unread_count(db, alice.id) == 0
    assert notification_service.unread_count(db, bob.id) == 1
    assert notification_service.mark_all_as_read(db, principal(alice)) == 0


# ============ API ============

def test_list_resolves_references(client, db, article, alice, bob):
    article_id = article.id
    _notify(db, alice, bob, type="comment", article_id=article_id, comment_id=99)
    _notify(db, alice, None, type="forum_reply", forum_id=4242)

    resp = client.get("/api/v1/notifications/all", headers=auth(alice))
    assert resp.status_code == 200
    newest, oldest = resp.json()["data"]

    assert newest["type"] == "forum_reply"
    assert newest["sender"] is None
    # the thread never existed: rendered as a dangling reference
    assert newest["forum"] is None and newest["forumId"] == 4242

    assert oldest["sender"]["username"] == "bob"
    assert oldest["article"] == {"id": article_id, "title": "Coping with exam stress"}
    assert oldest["commentId"] == 99


def test_unread_count_and_read_endpoints(client, db, alice, bob):
    first = _notify(db, alice, bob)
    _notify(db, alice, bob)

    assert client.get("/api/v1/notifications/unread-count", headers=auth(alice)).json()["data"] == {"unread": 2}

    read = client.patch(f"/api/v1/notifications/{first}/read", headers=auth(alice))
    assert read.status_code == 200 and read.json()["data"]["isRead"] is True

    unread = client.get("/api/v1/notifications/all", params={"unread_only": True}, headers=auth(alice))
    assert len(unread.json()["data"]) == 1

    everything = client.patch("/api/v1/notifications/read-all", headers=auth(alice))
    assert everything.json()["data"] == {"updated": 1}
    assert client.get("/api/v1/notifications/unread-count", headers=auth(alice)).json()["data"] == {"unread": 0}


def test_reading_someone_elses_notification(client, db, alice, bob):
    notification_id = _notify(db, alice, bob)
    resp = client.patch(f"/api/v1/notifications/{notification_id}/read", headers=auth(bob))
    assert resp.status_code == 404


def test_hidden_thread_title_is_withheld(client, db, thread, alice, bob, admin):
    thread_id = thread.id
    client.post(f"/api/v1/forum/{thread_id}/replies", json={"content": "me too"}, headers=auth(bob))
    client.post(f"/api/v1/forum/{thread_id}/replies", json={"content": "same"}, headers=auth(alice))
    client.patch(f"/api/v1/forum/{thread_id}/moderate", json={"status": "hidden"}, headers=auth(admin))

    as_bob = client.get("/api/v1/notifications/all", headers=auth(bob)).json()["data"]
    assert len(as_bob) == 1
    assert as_bob[0]["forum"] is None
    assert as_bob[0]["forumId"] == thread_id

    # the thread author can still see their own hidden thread
    as_alice = client.get("/api/v1/notifications/all", headers=auth(alice)).json()["data"]
    assert as_alice[0]["forum"]["title"] == "Can't sleep before exams"
