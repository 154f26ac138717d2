import logging
from typing import Optional

import redis
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from mindcare.core.database import SessionLocal
from mindcare.core.cache import RedisClient
from mindcare.core.config import settings
from mindcare.services.notifications import NotificationEvent, persist_events

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def drain_notification_queue(
    client: Optional[redis.Redis] = None,
    session_factory=SessionLocal,
    batch_size: int = settings.NOTIFICATION_DRAIN_BATCH_SIZE,
    queue_key: str = settings.NOTIFICATION_QUEUE_KEY,
) -> int:
    """
    Scheduled job: move queued notification events into the database.

    Takes one batch off the head of the list atomically. A batch that fails
    to persist is pushed back so the next run retries it.
    """
    r = client if client is not None else RedisClient().get_client()

    try:
        pipe = r.pipeline()
        pipe.lrange(queue_key, 0, batch_size - 1)
        pipe.ltrim(queue_key, batch_size, -1)
        raw_events, _ = pipe.execute()
    except redis.RedisError as e:
        logger.error(f"Error reading notification queue {queue_key}: {e}", exc_info=True)
        return 0

    if not raw_events:
        return 0

    events = []
    for raw in raw_events:
        try:
            events.append(NotificationEvent.from_json(raw))
        except (ValueError, TypeError) as e:
            logger.error(f"Dropping malformed notification event {raw!r}: {e}")

    db = session_factory()
    try:
        persist_events(db, events)
        logger.info(f"Drained {len(events)} notification(s) from {queue_key}")
        return len(events)
    except Exception as e:
        db.rollback()
        logger.error(f"Error persisting notifications, re-queueing {len(events)}: {e}", exc_info=True)
        try:
            r.lpush(queue_key, *reversed([event.to_json() for event in events]))
        except redis.RedisError as push_error:
            logger.error(f"Lost {len(events)} notification(s): {push_error}", exc_info=True)
        return 0
    finally:
        db.close()


def start_scheduler():
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")

        scheduler.add_job(
            drain_notification_queue,
            trigger=IntervalTrigger(seconds=settings.NOTIFICATION_DRAIN_INTERVAL_SECONDS),
            id="drain_notifications_job",
            replace_existing=True,
            name="Drain Notification Queue"
        )
        logger.info(
            f"Added drain_notifications_job with interval {settings.NOTIFICATION_DRAIN_INTERVAL_SECONDS} seconds"
        )


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler shutdown")
