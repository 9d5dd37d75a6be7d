import io
from datetime import timedelta

from extensions import db
from models import AssignmentStatus, AuditLog, Document, Notification, RequestAssignment, Role
from tests.helpers import NOW, DrmsTestCase


class ApiTestCase(DrmsTestCase):
    """Requests run without an outer app context so each one gets its own `g`."""

    def setUp(self):
        super().setUp()
        self.hr = self.make_user("hr@corp.test", role=Role.HR)
        self.alice = self.make_user("alice@corp.test")
        self.bob = self.make_user("bob@corp.test")
        doc_request = self.make_request(self.hr, [self.alice, self.bob])
        self.request_id = doc_request.id
        self.assignment_id = doc_request.assignments[0].id
        self.alice_id, self.bob_id, self.hr_id = self.alice.id, self.bob.id, self.hr.id

        self.as_hr = self.app.test_client(user=self.hr)
        self.as_alice = self.app.test_client(user=self.alice)
        self.as_bob = self.app.test_client(user=self.bob)
        self.anonymous = self.app.test_client()
        self.ctx.pop()

    def tearDown(self):
        self.ctx.push()
        super().tearDown()

    def upload(self, client, name="scan.pdf", content=b"%PDF-1.4 data", mimetype="application/pdf"):
        return client.post(
            f"/api/assignments/{self.assignment_id}/upload",
            data={"file": (io.BytesIO(content), name, mimetype), "note": "here you go"},
            content_type="multipart/form-data",
        )

    def status(self):
        with self.app.app_context():
            return db.session.get(RequestAssignment, self.assignment_id).status


class TestSubmissionRoutes(ApiTestCase):
    def test_upload(self):
        res = self.upload(self.as_alice)

        self.assertEqual(res.status_code, 201)
        body = res.get_json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["version"], 1)
        self.assertEqual(body["data"]["note"], "here you go")
        self.assertEqual(self.status(), AssignmentStatus.SUBMITTED)

    def test_upload_requires_login(self):
        res = self.upload(self.anonymous)
        self.assertEqual(res.status_code, 401)
        self.assertFalse(res.get_json()["success"])

    def test_upload_by_other_employee(self):
        res = self.upload(self.as_bob)
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.get_json(), {"success": False, "error": "Access denied"})

    def test_upload_wrong_type(self):
        res = self.upload(self.as_alice, name="notes.txt", content=b"hi", mimetype="text/plain")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.get_json()["error"], "File type not accepted. Allowed formats: pdf,png")

    def test_upload_without_file(self):
        res = self.as_alice.post(f"/api/assignments/{self.assignment_id}/upload", data={})
        self.assertEqual(res.status_code, 400)

    def test_delete_and_download(self):
        doc_id = self.upload(self.as_alice).get_json()["data"]["id"]

        res = self.as_hr.get(f"/api/documents/{doc_id}/download")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, b"%PDF-1.4 data")
        self.assertEqual(self.as_bob.get(f"/api/documents/{doc_id}/download").status_code, 403)

        res = self.as_alice.delete(f"/api/documents/{doc_id}")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.get_json()["revertedToPending"])
        self.assertEqual(self.status(), AssignmentStatus.PENDING)
        with self.app.app_context():
            self.assertEqual(Document.query.count(), 0)


class TestReviewRoutes(ApiTestCase):
    def test_reject_then_approve(self):
        self.upload(self.as_alice)

        res = self.as_hr.post(f"/api/assignments/{self.assignment_id}/review", json={"decision": "REJECTED"})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.get_json()["error"], "Rejection reason is required")

        res = self.as_hr.post(
            f"/api/assignments/{self.assignment_id}/review", json={"decision": "REJECTED", "note": "Blurry"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["data"]["status"], AssignmentStatus.REJECTED)

        self.upload(self.as_alice)
        res = self.as_hr.post(f"/api/assignments/{self.assignment_id}/review", json={"decision": "APPROVED"})
        self.assertEqual(res.get_json()["data"]["status"], AssignmentStatus.APPROVED)

        res = self.upload(self.as_alice)
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.get_json()["error"], "This assignment has already been approved")

    def test_employee_cannot_review(self):
        self.upload(self.as_alice)
        res = self.as_alice.post(f"/api/assignments/{self.assignment_id}/review", json={"decision": "APPROVED"})
        self.assertEqual(res.status_code, 403)

    def test_review_pending_is_conflict(self):
        res = self.as_hr.post(f"/api/assignments/{self.assignment_id}/review", json={"decision": "APPROVED"})
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.get_json()["error"], "Can only review submitted assignments")


class TestRequestAndReminderRoutes(ApiTestCase):
    def test_create_and_cancel(self):
        res = self.as_hr.post("/api/requests", json={
            "title": "Bank details",
            "deadline": (NOW + timedelta(days=5)).isoformat(),
            "priority": "URGENT",
            "employeeIds": [self.alice_id],
            "slots": ["IBAN letter"],
        })
        self.assertEqual(res.status_code, 201)
        data = res.get_json()["data"]
        self.assertEqual((data["assignedCount"], data["slots"]), (1, ["IBAN letter"]))

        res = self.as_alice.post(f"/api/requests/{data['id']}/cancel")
        self.assertEqual(res.status_code, 403)

        res = self.as_hr.post(f"/api/requests/{data['id']}/cancel")
        self.assertEqual(res.get_json()["data"]["status"], "CANCELLED")

    def test_send_reminders(self):
        res = self.as_hr.post("/api/tracking/send-reminders", json={"requestId": self.request_id})

        body = res.get_json()
        self.assertEqual(res.status_code, 200)
        self.assertEqual((body["sent"], body["failed"], body["total"]), (1, 0, 2))
        self.assertEqual(len(self.mailer.sent), 1)
        with self.app.app_context():
            self.assertEqual(AuditLog.query.filter_by(action="BULK_REMINDER").count(), 1)

    def test_employee_cannot_send_reminders(self):
        res = self.as_alice.post("/api/tracking/send-reminders", json={})
        self.assertEqual(res.status_code, 403)


class TestNotificationRoutes(ApiTestCase):
    def test_list_and_mark(self):
        self.as_hr.post("/api/tracking/send-reminders", json={})

        res = self.as_alice.get("/api/notifications?unread=1")
        items = res.get_json()["data"]
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["type"], "REMINDER")

        res = self.as_bob.patch("/api/notifications/read", json={"notificationId": items[0]["id"]})
        self.assertEqual(res.status_code, 404)

        res = self.as_alice.patch("/api/notifications/read", json={"notificationId": items[0]["id"]})
        self.assertEqual(res.get_json()["updated"], 1)
        with self.app.app_context():
            self.assertTrue(db.session.get(Notification, items[0]["id"]).is_read)

    def test_mark_all(self):
        self.as_hr.post("/api/tracking/send-reminders", json={})

        res = self.as_bob.patch("/api/notifications/read", json={"markAll": True})

        self.assertEqual(res.get_json()["updated"], 1)
        self.assertEqual(self.as_bob.get("/api/notifications?unread=1").get_json()["data"], [])
