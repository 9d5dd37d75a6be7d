import unittest
from types import SimpleNamespace

from assignments import state_machine
from assignments.state_machine import Event
from models import AssignmentStatus as S
from services.errors import InvalidState


def _assignment(status):
    return SimpleNamespace(status=status)


class TestTransitions(unittest.TestCase):
    def test_happy_path(self):
        a = _assignment(S.PENDING)
        state_machine.apply(a, Event.UPLOAD)
        self.assertEqual(a.status, S.SUBMITTED)
        state_machine.apply(a, Event.APPROVE)
        self.assertEqual(a.status, S.APPROVED)

    def test_rejected_can_be_resubmitted(self):
        a = _assignment(S.SUBMITTED)
        state_machine.apply(a, Event.REJECT)
        state_machine.apply(a, Event.UPLOAD)
        self.assertEqual(a.status, S.SUBMITTED)

    def test_overdue_only_from_pending(self):
        self.assertEqual(state_machine.next_status(S.PENDING, Event.MARK_OVERDUE), S.OVERDUE)
        for status in (S.SUBMITTED, S.REJECTED, S.APPROVED, S.OVERDUE):
            self.assertIsNone(state_machine.next_status(status, Event.MARK_OVERDUE), status)

    def test_overdue_can_still_upload(self):
        a = _assignment(S.OVERDUE)
        state_machine.apply(a, Event.UPLOAD)
        self.assertEqual(a.status, S.SUBMITTED)

    def test_approved_is_terminal(self):
        for event in (Event.UPLOAD, Event.APPROVE, Event.REJECT, Event.MARK_OVERDUE, Event.REVERT):
            self.assertFalse(state_machine.can_apply(_assignment(S.APPROVED), event), event)

    def test_refused_upload_message(self):
        a = _assignment(S.APPROVED)
        with self.assertRaises(InvalidState) as cm:
            state_machine.apply(a, Event.UPLOAD)
        self.assertEqual(cm.exception.message, "This assignment has already been approved")
        self.assertEqual(a.status, S.APPROVED)

    def test_review_requires_submitted(self):
        for status in (S.PENDING, S.OVERDUE, S.REJECTED):
            with self.assertRaises(InvalidState) as cm:
                state_machine.apply(_assignment(status), Event.APPROVE)
            self.assertEqual(cm.exception.message, "Can only review submitted assignments")

    def test_revert_to_pending(self):
        for status in (S.SUBMITTED, S.REJECTED):
            a = _assignment(status)
            state_machine.apply(a, Event.REVERT)
            self.assertEqual(a.status, S.PENDING)
        self.assertFalse(state_machine.can_apply(_assignment(S.PENDING), Event.REVERT))

    def test_every_edge_targets_a_known_status(self):
        for (source, _event), target in state_machine.TRANSITIONS.items():
            self.assertIn(source, S.ALL)
            self.assertIn(target, S.ALL)


if __name__ == "__main__":
    unittest.main()
