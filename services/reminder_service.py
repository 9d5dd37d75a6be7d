import logging
from collections import OrderedDict
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from models import AssignmentStatus
from permissions.principals import ALL_DEPARTMENTS
from services.audit_service import BulkReminder
from services.errors import DependencyFailure, Forbidden, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ReminderReport:
    emails_sent: int = 0
    emails_failed: int = 0
    assignment_count: int = 0
    request_count: int = 0

    def as_dict(self):
        return {
            "sent": self.emails_sent,
            "failed": self.emails_failed,
            "total": self.assignment_count,
            "requests": self.request_count,
        }


class ReminderService:
    """Manual reminder dispatch, one grouped email per request."""

    def __init__(self, store, fanout, audit, clock):
        self.store = store
        self.fanout = fanout
        self.audit = audit
        self.clock = clock

    def send_reminders(
        self,
        principal,
        request_id=None,
        department=None,
        employee_ids=None,
        status=None,
        ip_address=None,
    ):
        if not principal.can_send_reminders():
            raise Forbidden("Not authorized to send reminders")

        if status:
            status = status.strip().upper()
            if status not in AssignmentStatus.OUTSTANDING:
                raise ValidationError("Status filter must be PENDING or OVERDUE")
            statuses = (status,)
        else:
            statuses = AssignmentStatus.OUTSTANDING

        if employee_ids is not None and not list(employee_ids):
            raise ValidationError("No employees selected")

        accessible = principal.accessible_departments()
        if department:
            if not principal.can_access_department(department):
                raise Forbidden("Not authorized for this department")
            departments = [department]
        elif accessible == ALL_DEPARTMENTS:
            departments = None
        else:
            departments = list(accessible)

        targets = self.store.find_reminder_targets(
            statuses,
            request_id=request_id,
            request_owner_id=principal.reminder_request_owner(),
            departments=departments,
            employee_ids=employee_ids,
        )

        report = ReminderReport(assignment_count=len(targets))
        if not targets:
            logger.info("Reminder dispatch by user %s matched no assignments", principal.id)
            return report

        groups = OrderedDict()
        for a in targets:
            groups.setdefault(a.request_id, []).append(a)
        report.request_count = len(groups)

        # Groups already sent stay sent; the audit records how far the run got
        completed = False
        try:
            for group in groups.values():
                doc_request = group[0].request
                try:
                    self.store.increment_reminders([a.id for a in group], self.clock.now())
                    self.store.commit()
                except SQLAlchemyError:
                    logger.exception("Could not record reminders for request %s", doc_request.id)
                    self.store.rollback()
                    raise DependencyFailure("Failed to record reminders")

                employees = [a.employee for a in group]
                if self.fanout.reminder_batch(doc_request, employees, wait=True):
                    report.emails_sent += 1
                else:
                    report.emails_failed += 1
            completed = True
        finally:
            logger.info(
                "Reminders by user %s: %s assignment(s) across %s request(s), %s sent, %s failed%s",
                principal.id, report.assignment_count, report.request_count,
                report.emails_sent, report.emails_failed, "" if completed else ", interrupted",
            )
            self.audit.record(
                BulkReminder(
                    total_sent=report.emails_sent,
                    total_failed=report.emails_failed,
                    assignment_count=report.assignment_count,
                    request_id=request_id,
                    department_filter=department,
                    completed=completed,
                ),
                actor_id=principal.id,
                ip_address=ip_address,
            )
        return report
