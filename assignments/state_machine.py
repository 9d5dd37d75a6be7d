"""Assignment lifecycle.

    PENDING   --upload-->   SUBMITTED
    PENDING   --overdue-->  OVERDUE      (batch job only)
    OVERDUE   --upload-->   SUBMITTED
    SUBMITTED --upload-->   SUBMITTED    (new version replaces the latest)
    SUBMITTED --approve-->  APPROVED     (terminal)
    SUBMITTED --reject-->   REJECTED
    REJECTED  --upload-->   SUBMITTED
    SUBMITTED / REJECTED --revert--> PENDING   (last document deleted)

SUBMITTED and REJECTED never become OVERDUE, whatever their due date.
"""

from models import AssignmentStatus as S
from services.errors import InvalidState


class Event:
    UPLOAD = "UPLOAD"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    MARK_OVERDUE = "MARK_OVERDUE"
    REVERT = "REVERT"


TRANSITIONS = {
    (S.PENDING, Event.UPLOAD): S.SUBMITTED,
    (S.PENDING, Event.MARK_OVERDUE): S.OVERDUE,
    (S.OVERDUE, Event.UPLOAD): S.SUBMITTED,
    (S.SUBMITTED, Event.UPLOAD): S.SUBMITTED,
    (S.SUBMITTED, Event.APPROVE): S.APPROVED,
    (S.SUBMITTED, Event.REJECT): S.REJECTED,
    (S.REJECTED, Event.UPLOAD): S.SUBMITTED,
    (S.SUBMITTED, Event.REVERT): S.PENDING,
    (S.REJECTED, Event.REVERT): S.PENDING,
}

# Reason strings surfaced to the caller on a refused event
REFUSALS = {
    Event.UPLOAD: "This assignment has already been approved",
    Event.APPROVE: "Can only review submitted assignments",
    Event.REJECT: "Can only review submitted assignments",
    Event.MARK_OVERDUE: "Only pending assignments can become overdue",
    Event.REVERT: "Assignment cannot be reverted to pending",
}

DECISION_EVENTS = {
    S.APPROVED: Event.APPROVE,
    S.REJECTED: Event.REJECT,
}


def next_status(current, event):
    """Target status for `event` from `current`, or None if not allowed."""
    return TRANSITIONS.get((current, event))


def can_apply(assignment, event):
    return next_status(assignment.status, event) is not None


def apply(assignment, event):
    """Moves the assignment along the edge for `event`; InvalidState otherwise."""
    target = next_status(assignment.status, event)
    if target is None:
        raise InvalidState(REFUSALS.get(event, "Invalid assignment transition"))
    assignment.status = target
    return target
