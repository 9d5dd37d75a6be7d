from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from models import Role, TargetType


# Returned by accessible_departments() when no department restriction applies
ALL_DEPARTMENTS = "ALL"


@dataclass(frozen=True)
class Principal(ABC):
    """Authenticated actor with the capabilities of its role.

    One concrete variant per role; every capability is abstract so a new
    role cannot be added without deciding each of them.
    """

    id: int
    department: Optional[str] = None
    managed_department: Optional[str] = None
    name: Optional[str] = None

    role = None

    def owns(self, assignment) -> bool:
        return assignment.employee_id == self.id

    @abstractmethod
    def can_review(self) -> bool: ...

    @abstractmethod
    def can_create_for(self, department: Optional[str]) -> bool: ...

    @abstractmethod
    def accessible_departments(self): ...

    @abstractmethod
    def allowed_target_types(self) -> tuple: ...

    @abstractmethod
    def can_send_reminders(self) -> bool: ...

    @abstractmethod
    def reminder_request_owner(self) -> Optional[int]:
        """Creator id reminders are restricted to, or None for any request."""

    @abstractmethod
    def can_upload_to(self, assignment) -> bool: ...

    @abstractmethod
    def can_delete_document(self, document) -> bool: ...

    @abstractmethod
    def can_manage_request(self, doc_request) -> bool: ...

    def can_access_department(self, department: Optional[str]) -> bool:
        depts = self.accessible_departments()
        if depts == ALL_DEPARTMENTS:
            return True
        return department is not None and department in depts


@dataclass(frozen=True)
class AdminPrincipal(Principal):
    role = Role.ADMIN

    def can_review(self):
        return True

    def can_create_for(self, department):
        return True

    def accessible_departments(self):
        return ALL_DEPARTMENTS

    def allowed_target_types(self):
        return TargetType.ALL

    def can_send_reminders(self):
        return True

    def reminder_request_owner(self):
        return None

    def can_upload_to(self, assignment):
        return True

    def can_delete_document(self, document):
        return True

    def can_manage_request(self, doc_request):
        return True


@dataclass(frozen=True)
class HrPrincipal(Principal):
    role = Role.HR

    def can_review(self):
        return True

    def can_create_for(self, department):
        return True

    def accessible_departments(self):
        return ALL_DEPARTMENTS

    def allowed_target_types(self):
        return TargetType.ALL

    def can_send_reminders(self):
        return True

    def reminder_request_owner(self):
        # HR may only chase requests they created
        return self.id

    def can_upload_to(self, assignment):
        return True

    def can_delete_document(self, document):
        return True

    def can_manage_request(self, doc_request):
        return self.id in (doc_request.created_by_id, doc_request.assigned_to_id)


@dataclass(frozen=True)
class DepartmentHeadPrincipal(Principal):
    role = Role.DEPARTMENT_HEAD

    def can_review(self):
        return False

    def can_create_for(self, department):
        return bool(self.managed_department) and department == self.managed_department

    def accessible_departments(self):
        if self.managed_department:
            return [self.managed_department]
        return []

    def allowed_target_types(self):
        return (TargetType.DEPARTMENT, TargetType.SPECIFIC)

    def can_send_reminders(self):
        return True

    def reminder_request_owner(self):
        return None

    def can_upload_to(self, assignment):
        if self.owns(assignment):
            return True
        doc_request = assignment.request
        return doc_request is not None and doc_request.created_by_id == self.id

    def can_delete_document(self, document):
        return document.uploaded_by_id == self.id

    def can_manage_request(self, doc_request):
        return doc_request.created_by_id == self.id


@dataclass(frozen=True)
class EmployeePrincipal(Principal):
    role = Role.EMPLOYEE

    def can_review(self):
        return False

    def can_create_for(self, department):
        return False

    def accessible_departments(self):
        return []

    def allowed_target_types(self):
        return ()

    def can_send_reminders(self):
        return False

    def reminder_request_owner(self):
        return None

    def can_upload_to(self, assignment):
        return self.owns(assignment)

    def can_delete_document(self, document):
        return document.uploaded_by_id == self.id

    def can_manage_request(self, doc_request):
        return False
