import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import Role, User
from services.audit_service import UpdateUser
from services.errors import (
    DependencyFailure,
    Forbidden,
    InvalidState,
    NotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)


class UserService:
    """Account provisioning and role administration.

    Users are never hard-deleted: deactivation keeps their assignments,
    documents and audit history intact and simply blocks sign-in.
    """

    def __init__(self, store, audit, clock):
        self.store = store
        self.audit = audit
        self.clock = clock

    def provision_user(self, email, name=None, department=None, job_title=None):
        """Returns the user for `email`, creating an active EMPLOYEE on first sign-in."""
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise ValidationError("A valid email is required")

        user = self.store.get_user_by_email(email)
        if user is not None:
            if not user.is_active:
                raise Forbidden("This account has been deactivated")
            return user

        try:
            user = self.store.add_user(User(
                email=email,
                name=(name or "").strip() or None,
                department=(department or "").strip() or None,
                job_title=(job_title or "").strip() or None,
                role=Role.EMPLOYEE,
                is_active=True,
                created_at=self.clock.now(),
            ))
            self.store.commit()
        except IntegrityError:
            # Concurrent first sign-in created the same email
            self.store.rollback()
            return self.store.get_user_by_email(email)
        except SQLAlchemyError:
            logger.exception("Could not provision user %s", email)
            self.store.rollback()
            raise DependencyFailure("Failed to create user")

        logger.info("Provisioned user %s (%s)", user.id, email)
        return user

    def change_role(self, principal, user_id, role, managed_department=None, ip_address=None):
        if principal.role != Role.ADMIN:
            raise Forbidden("Only administrators can change roles")

        role = (role or "").strip().upper()
        if role not in Role.ALL:
            raise ValidationError("Role must be one of " + ", ".join(Role.ALL))

        user = self._get(user_id)
        if user.id == principal.id and role != Role.ADMIN:
            raise InvalidState("You cannot remove your own admin role")

        if role == Role.DEPARTMENT_HEAD:
            managed_department = (managed_department or user.department or "").strip()
            if not managed_department:
                raise ValidationError("A department head needs a managed department")
        else:
            managed_department = None

        user.role = role
        user.managed_department = managed_department
        self._save(user, principal, ip_address)
        return user

    def deactivate_user(self, principal, user_id, ip_address=None):
        if principal.role != Role.ADMIN:
            raise Forbidden("Only administrators can deactivate users")

        user = self._get(user_id)
        if user.id == principal.id:
            raise InvalidState("You cannot deactivate your own account")

        user.is_active = False
        self._save(user, principal, ip_address)
        return user

    def _get(self, user_id):
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def _save(self, user, principal, ip_address):
        try:
            self.store.commit()
        except SQLAlchemyError:
            logger.exception("Could not update user %s", user.id)
            self.store.rollback()
            raise DependencyFailure("Failed to update user")

        self.audit.record(
            UpdateUser(email=user.email, role=user.role, is_active=user.is_active),
            actor_id=principal.id,
            entity_id=user.id,
            ip_address=ip_address,
        )
