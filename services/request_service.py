import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from models import (
    DocumentRequest,
    DocumentSlot,
    Priority,
    RequestAssignment,
    RequestStatus,
    Role,
    TargetType,
)
from permissions.principals import ALL_DEPARTMENTS
from services.audit_service import CancelRequest, CreateRequest
from services.errors import (
    DependencyFailure,
    Forbidden,
    InvalidState,
    NotFound,
    ValidationError,
)
from utils.uploads import parse_formats

logger = logging.getLogger(__name__)

MAX_SLOTS = 5
MIN_FILE_SIZE_MB = 1
MAX_FILE_SIZE_MB = 100


def _parse_deadline(value):
    if isinstance(value, datetime):
        return value
    if not value:
        raise ValidationError("Deadline is required")
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        raise ValidationError("Deadline must be an ISO date")


def _clean_slots(slots):
    names = [str(s).strip() for s in (slots or []) if str(s or "").strip()]
    if len(names) > MAX_SLOTS:
        raise ValidationError(f"A request can have at most {MAX_SLOTS} document slots")
    return names


class RequestService:
    """Creating and cancelling document requests."""

    def __init__(self, store, fanout, audit, clock, default_max_file_size_mb=10, default_formats=None):
        self.store = store
        self.fanout = fanout
        self.audit = audit
        self.clock = clock
        self.default_max_file_size_mb = default_max_file_size_mb
        self.default_formats = default_formats

    # =========================
    # Create
    # =========================
    def create_request(
        self,
        principal,
        title,
        deadline,
        description=None,
        priority=Priority.MEDIUM,
        target_type=TargetType.SPECIFIC,
        department=None,
        employee_ids=None,
        accepted_formats=None,
        max_file_size_mb=None,
        notes=None,
        slots=None,
        ip_address=None,
    ):
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if len(title) > 200:
            raise ValidationError("Title must be at most 200 characters")

        deadline = _parse_deadline(deadline)

        priority = (priority or Priority.MEDIUM).strip().upper()
        if priority not in Priority.ALL:
            raise ValidationError("Priority must be one of " + ", ".join(Priority.ALL))

        if max_file_size_mb in (None, ""):
            max_file_size_mb = self.default_max_file_size_mb
        try:
            max_file_size_mb = int(max_file_size_mb)
        except (TypeError, ValueError):
            raise ValidationError("Maximum file size must be a number")
        if not MIN_FILE_SIZE_MB <= max_file_size_mb <= MAX_FILE_SIZE_MB:
            raise ValidationError(
                f"Maximum file size must be between {MIN_FILE_SIZE_MB} and {MAX_FILE_SIZE_MB} MB"
            )

        slot_names = _clean_slots(slots)

        target_type = (target_type or TargetType.SPECIFIC).strip().upper()
        if target_type not in TargetType.ALL:
            raise ValidationError("Target type must be one of " + ", ".join(TargetType.ALL))
        if target_type not in principal.allowed_target_types():
            raise Forbidden("Not allowed to target " + target_type)

        employees = self._resolve_targets(principal, target_type, department, employee_ids)
        if not employees:
            raise ValidationError("No employees selected for assignment")

        formats = parse_formats(accepted_formats) if accepted_formats is not None else parse_formats(self.default_formats)
        now = self.clock.now()

        try:
            doc_request = self.store.add_request(DocumentRequest(
                title=title,
                description=(description or "").strip() or None,
                notes=(notes or "").strip() or None,
                deadline=deadline,
                priority=priority,
                status=RequestStatus.OPEN,
                target_type=target_type,
                target_department=department if target_type == TargetType.DEPARTMENT else None,
                accepted_formats=",".join(formats) or None,
                max_file_size_mb=max_file_size_mb,
                created_by_id=principal.id,
                created_at=now,
                updated_at=now,
            ))
            doc_request.slots = [
                DocumentSlot(name=name, sort_order=i) for i, name in enumerate(slot_names)
            ]
            doc_request.assignments = [
                RequestAssignment(employee_id=e.id, due_date=deadline, created_at=now, updated_at=now)
                for e in employees
            ]
            self.store.commit()
        except SQLAlchemyError:
            logger.exception("Could not create request %r", title)
            self.store.rollback()
            raise DependencyFailure("Failed to create request")

        logger.info(
            "Request %s created by user %s with %s assignment(s)",
            doc_request.id, principal.id, len(employees),
        )

        self.fanout.new_request(doc_request, employees)
        self.audit.record(
            CreateRequest(title=doc_request.title, assigned_count=len(employees)),
            actor_id=principal.id,
            entity_id=doc_request.id,
            ip_address=ip_address,
        )
        return doc_request

    def _resolve_targets(self, principal, target_type, department, employee_ids):
        if target_type == TargetType.ALL_EMPLOYEES:
            return self.store.list_users(roles=(Role.EMPLOYEE,))

        if target_type == TargetType.DEPARTMENT:
            department = (department or "").strip()
            if not department:
                raise ValidationError("Department is required")
            if not principal.can_create_for(department):
                raise Forbidden("Not authorized for this department")
            return self.store.list_users(roles=(Role.EMPLOYEE,), department=department)

        ids = set()
        for raw in employee_ids or []:
            try:
                ids.add(int(raw))
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid employee id: {raw}")
        if not ids:
            return []

        users = self.store.list_users(ids=ids)
        if principal.accessible_departments() != ALL_DEPARTMENTS:
            # Department heads may only pick members of their own department
            if any(not principal.can_create_for(u.department) for u in users):
                raise Forbidden("Employees outside your department were selected")
        return users

    # =========================
    # Cancel
    # =========================
    def cancel_request(self, principal, request_id, ip_address=None):
        doc_request = self.store.get_request(request_id)
        if doc_request is None:
            raise NotFound("Request not found")
        if not principal.can_manage_request(doc_request):
            raise Forbidden("Access denied")
        if doc_request.status not in (RequestStatus.OPEN, RequestStatus.PENDING_HR):
            raise InvalidState("Only open requests can be cancelled")

        try:
            doc_request.status = RequestStatus.CANCELLED
            doc_request.updated_at = self.clock.now()
            self.store.commit()
        except SQLAlchemyError:
            logger.exception("Could not cancel request %s", request_id)
            self.store.rollback()
            raise DependencyFailure("Failed to cancel request")

        employee_ids = [a.employee_id for a in doc_request.assignments]
        self.fanout.request_cancelled(doc_request, employee_ids)
        self.audit.record(
            CancelRequest(title=doc_request.title, notified_count=len(employee_ids)),
            actor_id=principal.id,
            entity_id=doc_request.id,
            ip_address=ip_address,
        )
        logger.info("Request %s cancelled by user %s", doc_request.id, principal.id)
        return doc_request
