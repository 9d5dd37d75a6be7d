import unittest
from types import SimpleNamespace

from models import Role, TargetType
from permissions.check import principal_for
from permissions.principals import (
    ALL_DEPARTMENTS,
    AdminPrincipal,
    DepartmentHeadPrincipal,
    EmployeePrincipal,
    HrPrincipal,
)


def _user(uid, role, department="Finance", managed_department=None):
    return SimpleNamespace(
        id=uid, role=role, department=department,
        managed_department=managed_department, name=f"user{uid}", email=f"u{uid}@x.test",
    )


class TestPrincipalFor(unittest.TestCase):
    def test_maps_each_role(self):
        expected = {
            Role.ADMIN: AdminPrincipal,
            Role.HR: HrPrincipal,
            Role.DEPARTMENT_HEAD: DepartmentHeadPrincipal,
            Role.EMPLOYEE: EmployeePrincipal,
        }
        for role, cls in expected.items():
            self.assertIsInstance(principal_for(_user(1, role)), cls)

    def test_role_is_normalised(self):
        self.assertIsInstance(principal_for(_user(1, " hr ")), HrPrincipal)

    def test_unknown_role_is_rejected(self):
        with self.assertRaises(ValueError):
            principal_for(_user(1, "SUPERUSER"))


class TestCapabilities(unittest.TestCase):
    def setUp(self):
        self.admin = principal_for(_user(1, Role.ADMIN))
        self.hr = principal_for(_user(2, Role.HR))
        self.head = principal_for(_user(3, Role.DEPARTMENT_HEAD, managed_department="Finance"))
        self.employee = principal_for(_user(4, Role.EMPLOYEE))

    def test_only_admin_and_hr_review(self):
        self.assertTrue(self.admin.can_review())
        self.assertTrue(self.hr.can_review())
        self.assertFalse(self.head.can_review())
        self.assertFalse(self.employee.can_review())

    def test_department_scope(self):
        self.assertEqual(self.hr.accessible_departments(), ALL_DEPARTMENTS)
        self.assertEqual(self.head.accessible_departments(), ["Finance"])
        self.assertTrue(self.head.can_access_department("Finance"))
        self.assertFalse(self.head.can_access_department("Legal"))
        self.assertFalse(self.employee.can_access_department("Finance"))

    def test_create_for(self):
        self.assertTrue(self.admin.can_create_for("Legal"))
        self.assertTrue(self.head.can_create_for("Finance"))
        self.assertFalse(self.head.can_create_for("Legal"))
        self.assertFalse(self.employee.can_create_for("Finance"))
        self.assertEqual(self.head.allowed_target_types(), (TargetType.DEPARTMENT, TargetType.SPECIFIC))

    def test_reminder_scope(self):
        self.assertIsNone(self.admin.reminder_request_owner())
        self.assertEqual(self.hr.reminder_request_owner(), 2)
        self.assertFalse(self.employee.can_send_reminders())

    def test_upload_rights(self):
        own = SimpleNamespace(employee_id=4, request=SimpleNamespace(created_by_id=2))
        other = SimpleNamespace(employee_id=9, request=SimpleNamespace(created_by_id=3))
        self.assertTrue(self.employee.can_upload_to(own))
        self.assertFalse(self.employee.can_upload_to(other))
        # Department head may upload for requests it created
        self.assertTrue(self.head.can_upload_to(other))
        self.assertFalse(self.head.can_upload_to(own))
        self.assertTrue(self.hr.can_upload_to(other))

    def test_delete_rights(self):
        mine = SimpleNamespace(uploaded_by_id=4)
        theirs = SimpleNamespace(uploaded_by_id=5)
        self.assertTrue(self.employee.can_delete_document(mine))
        self.assertFalse(self.employee.can_delete_document(theirs))
        self.assertTrue(self.admin.can_delete_document(theirs))

    def test_manage_request(self):
        req = SimpleNamespace(created_by_id=3, assigned_to_id=None)
        self.assertTrue(self.head.can_manage_request(req))
        self.assertFalse(self.hr.can_manage_request(req))
        self.assertTrue(self.admin.can_manage_request(req))
        req.assigned_to_id = 2
        self.assertTrue(self.hr.can_manage_request(req))


if __name__ == "__main__":
    unittest.main()
