from sqlalchemy import func, update

from models import (
    AssignmentStatus,
    AuditLog,
    Document,
    DocumentRequest,
    Notification,
    RequestAssignment,
    RequestStatus,
    SystemSetting,
    User,
)
from repository.base import Store


class SqlStore(Store):
    """Store over a (Flask-)SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    # =========================
    # Transactions
    # =========================
    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    def flush(self):
        self.session.flush()

    # =========================
    # Users
    # =========================
    def get_user(self, user_id):
        return self.session.get(User, user_id)

    def get_user_by_email(self, email):
        return (
            self.session.query(User)
            .filter(func.lower(User.email) == (email or "").strip().lower())
            .first()
        )

    def add_user(self, user):
        self.session.add(user)
        return user

    def list_users(self, roles=None, department=None, ids=None, active_only=True):
        q = self.session.query(User)
        if roles:
            q = q.filter(User.role.in_(list(roles)))
        if department:
            q = q.filter(User.department == department)
        if ids is not None:
            q = q.filter(User.id.in_(list(ids)))
        if active_only:
            q = q.filter(User.is_active.is_(True))
        return q.order_by(User.id.asc()).all()

    # =========================
    # Requests
    # =========================
    def get_request(self, request_id):
        return self.session.get(DocumentRequest, request_id)

    def add_request(self, doc_request):
        self.session.add(doc_request)
        return doc_request

    # =========================
    # Assignments
    # =========================
    def get_assignment(self, assignment_id, for_update=False):
        q = self.session.query(RequestAssignment).filter(RequestAssignment.id == assignment_id)
        if for_update:
            q = q.with_for_update().populate_existing()
        return q.first()

    def list_assignments(self, request_id):
        return (
            self.session.query(RequestAssignment)
            .filter(RequestAssignment.request_id == request_id)
            .order_by(RequestAssignment.id.asc())
            .all()
        )

    def pending_due_before(self, cutoff):
        return (
            self.session.query(RequestAssignment)
            .filter(
                RequestAssignment.status == AssignmentStatus.PENDING,
                RequestAssignment.due_date < cutoff,
            )
            .order_by(RequestAssignment.id.asc())
            .all()
        )

    def pending_due_between(self, start, end):
        return (
            self.session.query(RequestAssignment)
            .filter(
                RequestAssignment.status == AssignmentStatus.PENDING,
                RequestAssignment.due_date >= start,
                RequestAssignment.due_date < end,
            )
            .order_by(RequestAssignment.id.asc())
            .all()
        )

    def mark_overdue(self, assignment_ids):
        if not assignment_ids:
            return 0
        # Re-check PENDING so a row submitted since selection is left alone
        result = self.session.execute(
            update(RequestAssignment)
            .where(
                RequestAssignment.id.in_(list(assignment_ids)),
                RequestAssignment.status == AssignmentStatus.PENDING,
            )
            .values(status=AssignmentStatus.OVERDUE)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def find_reminder_targets(
        self,
        statuses,
        request_id=None,
        request_owner_id=None,
        departments=None,
        employee_ids=None,
    ):
        q = (
            self.session.query(RequestAssignment)
            .join(DocumentRequest, RequestAssignment.request_id == DocumentRequest.id)
            .join(User, RequestAssignment.employee_id == User.id)
            .filter(
                RequestAssignment.status.in_(list(statuses)),
                DocumentRequest.status == RequestStatus.OPEN,
                User.is_active.is_(True),
            )
        )
        if request_id is not None:
            q = q.filter(RequestAssignment.request_id == request_id)
        if request_owner_id is not None:
            q = q.filter(DocumentRequest.created_by_id == request_owner_id)
        if departments is not None:
            q = q.filter(User.department.in_(list(departments)))
        if employee_ids is not None:
            q = q.filter(RequestAssignment.employee_id.in_(list(employee_ids)))
        return q.order_by(RequestAssignment.request_id.asc(), RequestAssignment.id.asc()).all()

    def increment_reminders(self, assignment_ids, at):
        if not assignment_ids:
            return 0
        result = self.session.execute(
            update(RequestAssignment)
            .where(RequestAssignment.id.in_(list(assignment_ids)))
            .values(
                reminder_count=RequestAssignment.reminder_count + 1,
                last_reminder_at=at,
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    # =========================
    # Documents
    # =========================
    def get_document(self, document_id):
        return self.session.get(Document, document_id)

    def max_document_version(self, assignment_id):
        return (
            self.session.query(func.max(Document.version))
            .filter(Document.assignment_id == assignment_id)
            .scalar()
        ) or 0

    def clear_latest(self, assignment_id):
        result = self.session.execute(
            update(Document)
            .where(Document.assignment_id == assignment_id, Document.is_latest.is_(True))
            .values(is_latest=False)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def add_document(self, document):
        self.session.add(document)
        return document

    def delete_document(self, document):
        self.session.delete(document)

    def highest_version_document(self, assignment_id):
        return (
            self.session.query(Document)
            .filter(Document.assignment_id == assignment_id)
            .order_by(Document.version.desc())
            .first()
        )

    # =========================
    # Notifications
    # =========================
    def add_notifications(self, notifications):
        self.session.add_all(list(notifications))

    def get_notification(self, notification_id):
        return self.session.get(Notification, notification_id)

    def list_notifications(self, user_id, unread_only=False, limit=50):
        q = self.session.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            q = q.filter(Notification.is_read.is_(False))
        return q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    def mark_all_notifications_read(self, user_id):
        result = self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    # =========================
    # Audit / Settings
    # =========================
    def add_audit(self, entry):
        self.session.add(entry)
        return entry

    def get_setting(self, key):
        s = self.session.query(SystemSetting).filter_by(key=key).first()
        return s.value if s else None

    def set_setting(self, key, value):
        s = self.session.query(SystemSetting).filter_by(key=key).first()
        if s:
            s.value = value
        else:
            s = SystemSetting(key=key, value=value)
            self.session.add(s)
        return s
