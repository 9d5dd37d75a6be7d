from models import Role
from permissions.principals import (
    AdminPrincipal,
    DepartmentHeadPrincipal,
    EmployeePrincipal,
    HrPrincipal,
)


PRINCIPAL_BY_ROLE = {
    Role.ADMIN: AdminPrincipal,
    Role.HR: HrPrincipal,
    Role.DEPARTMENT_HEAD: DepartmentHeadPrincipal,
    Role.EMPLOYEE: EmployeePrincipal,
}


def principal_for(user):
    """Builds the capability object for an authenticated user.

    Raises ValueError for a role outside the known set, so a bad row
    never silently falls back to employee rights.
    """
    if user is None:
        raise ValueError("user is required")

    role = (getattr(user, "role", "") or "").strip().upper()
    cls = PRINCIPAL_BY_ROLE.get(role)
    if cls is None:
        raise ValueError(f"Unknown role: {user.role!r}")

    return cls(
        id=user.id,
        department=getattr(user, "department", None),
        managed_department=getattr(user, "managed_department", None),
        name=getattr(user, "name", None) or getattr(user, "email", None),
    )
