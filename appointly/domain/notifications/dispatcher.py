"""
Notification dispatch

The booking core calls ``notify`` after its transaction has committed. The
queue dispatcher defers the hand-off to the ARQ worker until the HTTP response
is sent; delivery and retries happen in the worker. Nothing here raises into
the caller.
"""

import logging
from typing import Optional

from arq import create_pool
from fastapi import BackgroundTasks

from ...models import Appointment

logger = logging.getLogger(__name__)

NOTIFICATION_KINDS = ("created", "confirmed", "rescheduled", "cancelled", "reminder")
NOTIFICATION_TASK = "send_appointment_notification_task"


class NotificationDispatcher:
    """Interface the booking core notifies through"""

    def notify(self, kind: str, appointment: Appointment, business_name: str, token: Optional[str] = None) -> None:
        raise NotImplementedError


async def enqueue_notification(kind: str, appointment_id: int, token: Optional[str] = None) -> None:
    """Push one notification job onto the ARQ queue; failures are logged only"""
    from ...worker import get_redis_settings

    try:
        pool = await create_pool(get_redis_settings())
        try:
            job = await pool.enqueue_job(NOTIFICATION_TASK, kind, appointment_id, token)
            job_id = job.job_id if job else "duplicate"
            logger.info(f"📋 Notification job queued: {kind} for appointment {appointment_id} ({job_id})")
        finally:
            await pool.close()
    except Exception as e:
        logger.error(f"❌ Failed to queue {kind} notification for appointment {appointment_id}: {e}")


class QueueNotificationDispatcher(NotificationDispatcher):
    """Hands notifications to the ARQ worker once the response has been sent"""

    def __init__(self, background_tasks: BackgroundTasks):
        self.background_tasks = background_tasks

    def notify(self, kind: str, appointment: Appointment, business_name: str, token: Optional[str] = None) -> None:
        if kind not in NOTIFICATION_KINDS:
            raise ValueError(f"Unknown notification kind: {kind}")
        logger.info(f"📨 Scheduling {kind} notification for appointment {appointment.id} ({business_name})")
        self.background_tasks.add_task(enqueue_notification, kind, appointment.id, token)
