from datetime import datetime

from extensions import db
from flask_login import UserMixin


# ======================
# Enumerations (stored as strings)
# ======================
class Role:
    ADMIN = "ADMIN"
    HR = "HR"
    DEPARTMENT_HEAD = "DEPARTMENT_HEAD"
    EMPLOYEE = "EMPLOYEE"

    ALL = (ADMIN, HR, DEPARTMENT_HEAD, EMPLOYEE)
    REVIEWERS = (ADMIN, HR)


class RequestStatus:
    OPEN = "OPEN"
    PENDING_HR = "PENDING_HR"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"

    ALL = (OPEN, PENDING_HR, CLOSED, CANCELLED)


class TargetType:
    ALL_EMPLOYEES = "ALL_EMPLOYEES"
    DEPARTMENT = "DEPARTMENT"
    SPECIFIC = "SPECIFIC"

    ALL = (ALL_EMPLOYEES, DEPARTMENT, SPECIFIC)


class Priority:
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    ALL = (LOW, MEDIUM, HIGH, URGENT)


class AssignmentStatus:
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    OVERDUE = "OVERDUE"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    ALL = (PENDING, SUBMITTED, OVERDUE, APPROVED, REJECTED)
    OUTSTANDING = (PENDING, OVERDUE)


class NotificationType:
    NEW_REQUEST = "NEW_REQUEST"
    DEADLINE_APPROACHING = "DEADLINE_APPROACHING"
    OVERDUE = "OVERDUE"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REMINDER = "REMINDER"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"
    SYSTEM = "SYSTEM"


# ======================
# Users
# ======================
class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    name = db.Column(db.String(200), nullable=True)
    job_title = db.Column(db.String(200), nullable=True)
    role = db.Column(db.String(50), index=True, nullable=False, default=Role.EMPLOYEE)
    department = db.Column(db.String(120), index=True, nullable=True)
    # Only meaningful for DEPARTMENT_HEAD
    managed_department = db.Column(db.String(120), nullable=True)
    # Never hard-deleted; deactivated instead. Overrides UserMixin.is_active.
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def label(self):
        return (self.name or self.email or f"User #{self.id}").strip()


# ======================
# Document Requests
# ======================
class DocumentRequest(db.Model):
    __tablename__ = "document_requests"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    deadline = db.Column(db.DateTime, nullable=False)
    priority = db.Column(db.String(20), nullable=False, default=Priority.MEDIUM)
    status = db.Column(db.String(20), nullable=False, default=RequestStatus.OPEN, index=True)

    target_type = db.Column(db.String(20), nullable=False, default=TargetType.SPECIFIC)
    target_department = db.Column(db.String(120), nullable=True)

    # Comma-separated extensions, e.g. "pdf,docx". NULL/empty => no restriction.
    accepted_formats = db.Column(db.String(255), nullable=True)
    max_file_size_mb = db.Column(db.Integer, nullable=False, default=10)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    # Optional HR owner processing the request
    assigned_to_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    created_by = db.relationship("User", foreign_keys=[created_by_id])
    assigned_to = db.relationship("User", foreign_keys=[assigned_to_id])

    slots = db.relationship(
        "DocumentSlot",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="DocumentSlot.sort_order",
    )
    assignments = db.relationship(
        "RequestAssignment",
        back_populates="request",
        cascade="all, delete-orphan",
    )


class DocumentSlot(db.Model):
    __tablename__ = "document_slots"

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("document_requests.id"), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    request = db.relationship("DocumentRequest", back_populates="slots")


# ======================
# Assignments (one per request/employee)
# ======================
class RequestAssignment(db.Model):
    __tablename__ = "request_assignments"
    __table_args__ = (
        db.UniqueConstraint("request_id", "employee_id", name="uq_assignment_request_employee"),
        db.Index("ix_assignment_status_due", "status", "due_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("document_requests.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    due_date = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=AssignmentStatus.PENDING)

    review_note = db.Column(db.Text, nullable=True)
    reviewed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)

    reminder_count = db.Column(db.Integer, nullable=False, default=0)
    last_reminder_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    request = db.relationship("DocumentRequest", back_populates="assignments")
    employee = db.relationship("User", foreign_keys=[employee_id])
    reviewed_by = db.relationship("User", foreign_keys=[reviewed_by_id])

    documents = db.relationship(
        "Document",
        back_populates="assignment",
        cascade="all, delete-orphan",
        order_by="Document.version",
    )


class Document(db.Model):
    __tablename__ = "documents"
    __table_args__ = (
        db.UniqueConstraint("assignment_id", "version", name="uq_document_assignment_version"),
        db.Index("ix_document_assignment_latest", "assignment_id", "is_latest"),
    )

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey("request_assignments.id"), nullable=False)
    uploaded_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    file_name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    file_size = db.Column(db.Integer, nullable=False)
    mime_type = db.Column(db.String(120), nullable=True)
    note = db.Column(db.Text, nullable=True)

    version = db.Column(db.Integer, nullable=False)
    is_latest = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    assignment = db.relationship("RequestAssignment", back_populates="documents")
    uploaded_by = db.relationship("User", foreign_keys=[uploaded_by_id])


# ======================
# Notifications / Audit / Settings
# ======================
class Notification(db.Model):
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notification_user_read", "user_id", "is_read"),
        db.Index("ix_notification_created", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    type = db.Column(db.String(50), nullable=False, default=NotificationType.SYSTEM)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.String(500), nullable=False)
    link = db.Column(db.String(255), nullable=True)

    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class AuditLog(db.Model):
    __tablename__ = "audit_log"

    id = db.Column(db.Integer, primary_key=True)

    # NULL => system-initiated (scheduler)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    action = db.Column(db.String(100), nullable=False, index=True)
    entity_type = db.Column(db.String(50), nullable=True)
    entity_id = db.Column(db.Integer, nullable=True)
    details = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True
    )

    user = db.relationship("User", foreign_keys=[user_id])


class SystemSetting(db.Model):
    __tablename__ = "system_setting"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    key = db.Column(db.String(100), unique=True, nullable=False)
    value = db.Column(db.String(255), nullable=True)
