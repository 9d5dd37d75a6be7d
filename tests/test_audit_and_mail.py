import threading
import unittest
from unittest import mock

from flask import Flask

from extensions import mail
from models import AuditLog
from services.audit_service import BulkReminder, OverdueCheck, OverdueRef, UploadDocument
from tests.helpers import DrmsTestCase, RecordingMailer
from utils.mail_queue import EmailJob, InlineDispatcher, QueuedDispatcher
from utils.mailer import FlaskMailMailer


class TestAuditSink(DrmsTestCase):
    def test_records_typed_payload(self):
        ok = self.services.audit.record(
            UploadDocument(file_name="a.pdf", request_title="Passport", version=2),
            actor_id=None, entity_id=5, ip_address="1.2.3.4",
        )

        self.assertTrue(ok)
        entry = AuditLog.query.one()
        self.assertEqual((entry.action, entry.entity_type, entry.entity_id), ("UPLOAD_DOCUMENT", "document", 5))
        self.assertEqual(entry.details, {"fileName": "a.pdf", "requestTitle": "Passport", "version": 2})

    def test_nested_payload_is_camelised(self):
        payload = OverdueCheck(overdue_count=1, assignments=(OverdueRef(id=3, employee="Ann", request="ID"),))
        self.assertEqual(
            payload.to_details(),
            {"overdueCount": 1, "assignments": [{"id": 3, "employee": "Ann", "request": "ID"}]},
        )

    def test_storage_failure_is_swallowed(self):
        with mock.patch.object(self.services.store, "commit", side_effect=RuntimeError("disk full")):
            ok = self.services.audit.record(BulkReminder(total_sent=1, total_failed=0, assignment_count=1))

        self.assertFalse(ok)
        self.assertEqual(AuditLog.query.count(), 0)


class FlakyMailer:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def send(self, to, subject, html):
        self.calls += 1
        return self.calls > self.failures


class TestDispatchers(unittest.TestCase):
    def setUp(self):
        self.app = Flask(__name__)

    def test_inline_counts(self):
        mailer = RecordingMailer(ok=False)
        dispatcher = InlineDispatcher(mailer)

        self.assertFalse(dispatcher.dispatch(EmailJob(to="a@x.test", subject="s", html="h")))
        self.assertEqual(dispatcher.stats["failed"], 1)

    def test_queue_retries_until_success(self):
        mailer = FlakyMailer(failures=2)
        dispatcher = QueuedDispatcher(mailer, self.app, retry_attempts=3, retry_delay=0)

        self.assertTrue(dispatcher.dispatch(EmailJob(to="a@x.test", subject="s", html="h")))
        dispatcher.join()
        dispatcher.stop()

        self.assertEqual(mailer.calls, 3)
        self.assertEqual(dispatcher.stats["sent"], 1)

    def test_queue_gives_up(self):
        mailer = RecordingMailer(ok=False)
        dispatcher = QueuedDispatcher(mailer, self.app, retry_attempts=2, retry_delay=0)

        dispatcher.dispatch(EmailJob(to="a@x.test", subject="s", html="h"))
        dispatcher.join()
        dispatcher.stop()

        self.assertEqual(len(mailer.sent), 2)
        self.assertEqual(dispatcher.stats["failed"], 1)

    def test_full_queue_drops_without_blocking(self):
        gate = threading.Event()

        class BlockingMailer:
            def send(self, to, subject, html):
                gate.wait(5)
                return True

        dispatcher = QueuedDispatcher(BlockingMailer(), self.app, maxsize=1, retry_delay=0)
        results = [dispatcher.dispatch(EmailJob(to="a@x.test", subject=str(i), html="h")) for i in range(5)]
        gate.set()
        dispatcher.join()
        dispatcher.stop()

        self.assertIn(False, results)
        self.assertEqual(dispatcher.stats["dropped"], results.count(False))


class TestFlaskMailMailer(unittest.TestCase):
    def setUp(self):
        self.app = Flask(__name__)
        self.app.config.update(
            APP_NAME="DRMS",
            MAIL_SUPPRESS_SEND=True,
            MAIL_DEFAULT_SENDER="noreply@corp.test",
        )
        mail.init_app(self.app)
        self.mailer = FlaskMailMailer(mail)

    def test_single_recipient(self):
        with self.app.app_context(), mail.record_messages() as outbox:
            self.assertTrue(self.mailer.send("a@corp.test", "Hello", "<p>x</p>"))

        self.assertEqual(len(outbox), 1)
        self.assertEqual(outbox[0].subject, "[DRMS] Hello")
        self.assertEqual(outbox[0].recipients, ["a@corp.test"])

    def test_group_goes_to_bcc(self):
        with self.app.app_context(), mail.record_messages() as outbox:
            self.assertTrue(self.mailer.send(["a@corp.test", "b@corp.test"], "Reminder", "<p>x</p>"))

        self.assertEqual(outbox[0].bcc, ["a@corp.test", "b@corp.test"])
        self.assertEqual(outbox[0].recipients, ["noreply@corp.test"])

    def test_unconfigured_smtp_returns_false(self):
        self.app.config["MAIL_SUPPRESS_SEND"] = False
        with self.app.app_context():
            self.assertFalse(self.mailer.send("a@corp.test", "Hello", "<p>x</p>"))

    def test_transport_error_returns_false(self):
        with self.app.app_context(), mock.patch.object(mail, "send", side_effect=OSError("smtp down")):
            self.assertFalse(self.mailer.send("a@corp.test", "Hello", "<p>x</p>"))
