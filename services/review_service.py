import logging

from sqlalchemy.exc import SQLAlchemyError

from assignments import state_machine
from assignments.state_machine import DECISION_EVENTS
from models import AssignmentStatus
from services.audit_service import ApproveDocument, RejectDocument
from services.errors import (
    DependencyFailure,
    DrmsError,
    Forbidden,
    NotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(self, store, fanout, audit, clock):
        self.store = store
        self.fanout = fanout
        self.audit = audit
        self.clock = clock

    def review(self, assignment_id, principal, decision, note=None, ip_address=None):
        """Approve or reject a SUBMITTED assignment.

        Checks run in a fixed order: role, decision/note, existence, state.
        The employee is notified and the audit row written only after the
        decision has been committed.
        """
        if not principal.can_review():
            raise Forbidden("Access denied")

        decision = (decision or "").strip().upper()
        if decision not in DECISION_EVENTS:
            raise ValidationError("Decision must be APPROVED or REJECTED")

        note = (note or "").strip() or None
        if decision == AssignmentStatus.REJECTED and not note:
            raise ValidationError("Rejection reason is required")

        assignment = self.store.get_assignment(assignment_id)
        if assignment is None:
            raise NotFound("Assignment not found")

        try:
            state_machine.apply(assignment, DECISION_EVENTS[decision])
            assignment.reviewed_by_id = principal.id
            assignment.reviewed_at = self.clock.now()
            assignment.review_note = note
            self.store.commit()
        except DrmsError:
            self.store.rollback()
            raise
        except SQLAlchemyError:
            logger.exception("Review transaction failed for assignment %s", assignment_id)
            self.store.rollback()
            raise DependencyFailure("Failed to save the review")

        doc_request = assignment.request
        employee = assignment.employee
        logger.info("Assignment %s %s by user %s", assignment.id, decision, principal.id)

        self.fanout.review_decided(assignment, doc_request, employee, decision, note)

        if decision == AssignmentStatus.APPROVED:
            payload = ApproveDocument(
                request_title=doc_request.title, employee_name=employee.label, note=note,
            )
        else:
            payload = RejectDocument(
                request_title=doc_request.title, employee_name=employee.label, note=note,
            )
        self.audit.record(payload, actor_id=principal.id, entity_id=assignment.id, ip_address=ip_address)
        return assignment
