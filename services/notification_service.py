import logging

from flask import render_template

from models import AssignmentStatus, Notification, NotificationType, Role
from utils.mail_queue import EmailJob

logger = logging.getLogger(__name__)


def _fmt_date(value):
    return value.strftime("%b %d, %Y") if value else ""


def _plural_days(days):
    return f"{days} day{'' if days == 1 else 's'}"


def employee_link(request_id):
    return f"/employee/requests/{request_id}"


def hr_link(request_id):
    return f"/hr/requests/{request_id}"


class NotificationFanout:
    """Turns a transition into Notification rows plus best-effort emails.

    Rows are committed on their own after the transition has committed, so
    a failure here is logged and reported as False, never raised. Emails go
    through the dispatcher (queued) unless the caller passes wait=True, in
    which case they are sent inline and the outcome is returned for counting.
    """

    def __init__(self, store, dispatcher, mailer, clock):
        self.store = store
        self.dispatcher = dispatcher
        self.mailer = mailer
        self.clock = clock

    # =========================
    # plumbing
    # =========================
    def _persist(self, notifications):
        if not notifications:
            return True
        now = self.clock.now()
        for n in notifications:
            n.created_at = now
        try:
            self.store.add_notifications(notifications)
            self.store.commit()
            return True
        except Exception:
            logger.exception("Failed to persist %s notification(s)", len(notifications))
            try:
                self.store.rollback()
            except Exception:
                logger.exception("Rollback after notification failure also failed")
            return False

    def _email(self, to, subject, template, kind, wait=False, **context):
        if not to:
            return False
        try:
            html = render_template(f"email/{template}", **context)
            if wait:
                ok = self.mailer.send(to, subject, html)
                if not ok:
                    logger.warning("Email %s to %s failed", kind, to)
                return ok
            return self.dispatcher.dispatch(EmailJob(to=to, subject=subject, html=html, kind=kind))
        except Exception:
            logger.exception("Could not prepare %s email for %s", kind, to)
            return False

    def reviewers(self, exclude_id=None):
        users = self.store.list_users(roles=Role.REVIEWERS)
        return [u for u in users if u.id != exclude_id]

    # =========================
    # submission / review
    # =========================
    def submission_received(self, assignment, doc_request, uploader):
        who = uploader.label if uploader else "An employee"
        rows = [
            Notification(
                user_id=u.id,
                type=NotificationType.SYSTEM,
                title="New Document Submission",
                message=f'{who} submitted a document for "{doc_request.title}"',
                link=hr_link(doc_request.id),
            )
            for u in self.reviewers(exclude_id=uploader.id if uploader else None)
        ]
        return self._persist(rows)

    def review_decided(self, assignment, doc_request, employee, decision, note=None):
        approved = decision == AssignmentStatus.APPROVED
        if approved:
            row = Notification(
                user_id=employee.id,
                type=NotificationType.APPROVED,
                title="Document Approved",
                message=f'Your submission for "{doc_request.title}" has been approved.',
                link=employee_link(doc_request.id),
            )
        else:
            row = Notification(
                user_id=employee.id,
                type=NotificationType.REJECTED,
                title="Document Rejected",
                message=f'Your submission for "{doc_request.title}" has been rejected. Reason: {note}',
                link=employee_link(doc_request.id),
            )
        self._persist([row])

        if approved:
            return self._email(
                employee.email,
                f"Approved: {doc_request.title}",
                "approved.html",
                kind="approved",
                employee_name=employee.label,
                request=doc_request,
                link=employee_link(doc_request.id),
            )
        return self._email(
            employee.email,
            f"Rejected: {doc_request.title} - Action Required",
            "rejected.html",
            kind="rejected",
            employee_name=employee.label,
            request=doc_request,
            reason=note,
            link=employee_link(doc_request.id),
        )

    # =========================
    # batch job
    # =========================
    def overdue_notice(self, assignment, doc_request, employee):
        return self._persist([
            Notification(
                user_id=employee.id,
                type=NotificationType.OVERDUE,
                title="Document Request Overdue",
                message=f'"{doc_request.title}" is now overdue. Please submit as soon as possible.',
                link=employee_link(doc_request.id),
            )
        ])

    def overdue_email(self, assignment, doc_request, employee, wait=True):
        return self._email(
            employee.email,
            f"OVERDUE: {doc_request.title}",
            "overdue.html",
            kind="overdue",
            wait=wait,
            employee_name=employee.label,
            request=doc_request,
            deadline=_fmt_date(assignment.due_date),
            link=employee_link(doc_request.id),
        )

    def overdue_summary(self, overdue_count):
        if overdue_count <= 0:
            return True
        rows = [
            Notification(
                user_id=u.id,
                type=NotificationType.OVERDUE,
                title="New Overdue Submissions",
                message=f"{overdue_count} assignment(s) became overdue today.",
                link="/hr/requests?status=OVERDUE",
            )
            for u in self.reviewers()
        ]
        return self._persist(rows)

    def deadline_approaching(self, assignment, doc_request, employee, days, wait=True):
        self._persist([
            Notification(
                user_id=employee.id,
                type=NotificationType.DEADLINE_APPROACHING,
                title="Deadline Approaching",
                message=f'"{doc_request.title}" is due in {days} day(s)',
                link=employee_link(doc_request.id),
            )
        ])
        return self._email(
            employee.email,
            f"Reminder: {doc_request.title} - Due in {_plural_days(days)}",
            "deadline_approaching.html",
            kind="deadline",
            wait=wait,
            employee_name=employee.label,
            request=doc_request,
            days=days,
            days_label=_plural_days(days),
            deadline=_fmt_date(assignment.due_date),
            link=employee_link(doc_request.id),
        )

    # =========================
    # manual reminders / requests
    # =========================
    def reminder_batch(self, doc_request, employees, wait=True):
        """One REMINDER row per employee and a single grouped email."""
        self._persist([
            Notification(
                user_id=e.id,
                type=NotificationType.REMINDER,
                title="Reminder: Document Request",
                message=f'You have been sent a reminder to submit "{doc_request.title}"',
                link=employee_link(doc_request.id),
            )
            for e in employees
        ])
        recipients = [e.email for e in employees if e.email]
        return self._email(
            recipients,
            f"Reminder: {doc_request.title}",
            "reminder.html",
            kind="reminder",
            wait=wait,
            request=doc_request,
            description=(doc_request.description or "")[:200],
            deadline=_fmt_date(doc_request.deadline),
            link=employee_link(doc_request.id),
        )

    def new_request(self, doc_request, employees):
        deadline = _fmt_date(doc_request.deadline)
        self._persist([
            Notification(
                user_id=e.id,
                type=NotificationType.NEW_REQUEST,
                title="New Document Request",
                message=f'You have been assigned a new document request: "{doc_request.title}". Deadline: {deadline}',
                link=employee_link(doc_request.id),
            )
            for e in employees
        ])
        for e in employees:
            self._email(
                e.email,
                f"New Request: {doc_request.title}",
                "new_request.html",
                kind="new_request",
                employee_name=e.label,
                request=doc_request,
                deadline=deadline,
                link=employee_link(doc_request.id),
            )

    def request_cancelled(self, doc_request, employee_ids):
        rows = [
            Notification(
                user_id=uid,
                type=NotificationType.REQUEST_CANCELLED,
                title="Request Cancelled",
                message=f'The document request "{doc_request.title}" has been cancelled.',
                link=None,
            )
            for uid in employee_ids
        ]
        return self._persist(rows)
