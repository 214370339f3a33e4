"""
Tests for notification dispatch, the retry policy and appointment emails
"""

import asyncio
import unittest
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from appointly.domain.notifications.dispatcher import (
    NOTIFICATION_TASK,
    QueueNotificationDispatcher,
    enqueue_notification,
)
from appointly.domain.notifications.retry import RetryPolicy
from appointly.email_service import (
    EmailDeliveryError,
    build_appointment_email,
    manage_appointment_url,
    send_email,
)


def sample_appointment():
    return SimpleNamespace(
        id=42,
        client_name="Jane <b>Doe</b>",
        client_email="jane@example.com",
        start_time=datetime(2025, 7, 7, 13, 0),
        end_time=datetime(2025, 7, 7, 13, 30),
    )


class TestRetryPolicy(unittest.TestCase):
    """Tests for exponential backoff."""

    def test_delays_double_until_attempts_run_out(self):
        policy = RetryPolicy(max_attempts=3, base_delay_seconds=5, max_delay_seconds=300)

        self.assertEqual(policy.delay_for(1), 5)
        self.assertEqual(policy.delay_for(2), 10)
        self.assertIsNone(policy.delay_for(3))

    def test_delay_is_capped(self):
        policy = RetryPolicy(max_attempts=10, base_delay_seconds=5, max_delay_seconds=30)

        self.assertEqual(policy.delay_for(4), 30)
        self.assertEqual(policy.delay_for(9), 30)

    def test_invalid_attempt_has_no_delay(self):
        self.assertIsNone(RetryPolicy().delay_for(0))


class TestQueueDispatcher(unittest.TestCase):
    """Tests for handing notifications to the queue."""

    def test_notify_schedules_background_enqueue(self):
        background_tasks = MagicMock()
        dispatcher = QueueNotificationDispatcher(background_tasks)

        dispatcher.notify("created", sample_appointment(), "Acme", "tok")

        background_tasks.add_task.assert_called_once_with(enqueue_notification, "created", 42, "tok")

    def test_unknown_kind_is_rejected(self):
        dispatcher = QueueNotificationDispatcher(MagicMock())

        with self.assertRaises(ValueError):
            dispatcher.notify("deleted", sample_appointment(), "Acme")

    def test_enqueue_pushes_job_and_closes_pool(self):
        pool = MagicMock()
        pool.enqueue_job = AsyncMock(return_value=SimpleNamespace(job_id="job-1"))
        pool.close = AsyncMock()

        with patch("appointly.domain.notifications.dispatcher.create_pool", AsyncMock(return_value=pool)):
            asyncio.run(enqueue_notification("cancelled", 42))

        pool.enqueue_job.assert_awaited_once_with(NOTIFICATION_TASK, "cancelled", 42, None)
        pool.close.assert_awaited_once()

    def test_enqueue_failure_is_logged_not_raised(self):
        failing = AsyncMock(side_effect=ConnectionError("redis down"))

        with patch("appointly.domain.notifications.dispatcher.create_pool", failing):
            with self.assertLogs("appointly.domain.notifications.dispatcher", level="ERROR"):
                asyncio.run(enqueue_notification("created", 42, "tok"))


class TestAppointmentEmails(unittest.TestCase):
    """Tests for appointment email content."""

    def test_created_email_links_manage_page(self):
        subject, mjml = build_appointment_email("created", sample_appointment(), "Acme", "UTC", token="tok123")

        self.assertEqual(subject, "Appointment Requested - Acme")
        self.assertIn(manage_appointment_url(42, "tok123"), mjml)
        self.assertIn("13:00 - 13:30", mjml)

    def test_times_are_shown_in_business_timezone(self):
        _, mjml = build_appointment_email("confirmed", sample_appointment(), "Acme", "America/New_York")

        self.assertIn("09:00 - 09:30", mjml)
        self.assertIn("Monday, July 07, 2025", mjml)

    def test_client_name_is_escaped(self):
        _, mjml = build_appointment_email("cancelled", sample_appointment(), "Acme", "UTC")

        self.assertNotIn("<b>Doe</b>", mjml)

    def test_every_kind_has_a_subject(self):
        for kind in ("created", "confirmed", "rescheduled", "cancelled", "reminder"):
            subject, _ = build_appointment_email(kind, sample_appointment(), "Acme", "UTC", token="t")
            self.assertTrue(subject.endswith("Acme"))

    def test_unknown_kind_is_rejected(self):
        with self.assertRaises(ValueError):
            build_appointment_email("deleted", sample_appointment(), "Acme", "UTC")

    def test_send_email_requires_api_key(self):
        with patch("appointly.email_service.RESEND_API_KEY", None):
            with self.assertRaises(EmailDeliveryError):
                asyncio.run(send_email("jane@example.com", "Hi", "<mjml></mjml>"))

    def test_send_email_hands_html_to_resend(self):
        with (
            patch("appointly.email_service.RESEND_API_KEY", "re_test"),
            patch("appointly.email_service.compile_mjml_to_html", return_value="<html></html>"),
            patch("appointly.email_service.resend.Emails.send", return_value={"id": "email-1"}) as send,
        ):
            response = asyncio.run(send_email("jane@example.com", "Hi", "<mjml></mjml>"))

        self.assertEqual(response, {"id": "email-1"})
        payload = send.call_args.args[0]
        self.assertEqual(payload["to"], ["jane@example.com"])
        self.assertEqual(payload["html"], "<html></html>")

    def test_provider_failure_becomes_delivery_error(self):
        with (
            patch("appointly.email_service.RESEND_API_KEY", "re_test"),
            patch("appointly.email_service.compile_mjml_to_html", return_value="<html></html>"),
            patch("appointly.email_service.resend.Emails.send", side_effect=RuntimeError("rate limited")),
        ):
            with self.assertRaises(EmailDeliveryError):
                asyncio.run(send_email("jane@example.com", "Hi", "<mjml></mjml>"))
