"""
tests/helpers.py

Shared fixtures: an app on in-memory SQLite with a recording mailer, a
fixed clock and a throwaway upload directory.
"""

import shutil
import tempfile
import unittest
from datetime import datetime, timedelta

from flask_login import FlaskLoginClient

from app import create_app
from extensions import db
from models import (
    AssignmentStatus,
    DocumentRequest,
    RequestAssignment,
    RequestStatus,
    Role,
    SystemSetting,
    TargetType,
    User,
)
from permissions.check import principal_for
from utils.clock import FixedClock
from utils.file_store import LocalFileStore
from utils.uploads import UploadFile

NOW = datetime(2026, 3, 10, 9, 30)


class RecordingMailer:
    """Mailer double: keeps every send, answers with `ok`."""

    def __init__(self, ok=True):
        self.ok = ok
        self.sent = []

    def send(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})
        return self.ok

    def subjects(self):
        return [m["subject"] for m in self.sent]


def pdf(name="passport.pdf", content=b"%PDF-1.4 test document"):
    return UploadFile(file_name=name, content=content, mime_type="application/pdf")


class DrmsTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp(prefix="drms-test-")
        self.mailer = RecordingMailer()
        self.clock = FixedClock(NOW)
        self.file_store = LocalFileStore(self.tmp)

        self.app = create_app(
            "config.TestConfig",
            mailer=self.mailer,
            clock=self.clock,
            file_store=self.file_store,
        )
        self.app.test_client_class = FlaskLoginClient

        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()
        db.session.add(SystemSetting(key="reminder_days_before", value="3,1"))
        db.session.commit()

        self.services = self.app.extensions["drms"]

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()
        shutil.rmtree(self.tmp, ignore_errors=True)

    # =========================
    # builders
    # =========================
    def make_user(self, email, role=Role.EMPLOYEE, department="Finance", managed_department=None, name=None):
        user = User(
            email=email,
            name=name or email.split("@")[0].title(),
            role=role,
            department=department,
            managed_department=managed_department,
            is_active=True,
        )
        db.session.add(user)
        db.session.commit()
        return user

    def make_request(
        self,
        creator,
        employees,
        title="Passport copy",
        deadline=None,
        accepted_formats="pdf,png",
        max_file_size_mb=1,
        status=RequestStatus.OPEN,
        assignment_status=AssignmentStatus.PENDING,
    ):
        deadline = deadline or NOW + timedelta(days=14)
        doc_request = DocumentRequest(
            title=title,
            description="Please upload a scan",
            deadline=deadline,
            status=status,
            target_type=TargetType.SPECIFIC,
            accepted_formats=accepted_formats,
            max_file_size_mb=max_file_size_mb,
            created_by_id=creator.id,
        )
        doc_request.assignments = [
            RequestAssignment(employee_id=e.id, due_date=deadline, status=assignment_status)
            for e in employees
        ]
        db.session.add(doc_request)
        db.session.commit()
        return doc_request

    def principal(self, user):
        return principal_for(user)

    def reload(self, model, pk):
        db.session.expire_all()
        return db.session.get(model, pk)
