from abc import ABC, abstractmethod


class Store(ABC):
    """Repository the services and the batch job talk to.

    Mutating methods stage changes; nothing is durable until commit().
    Implementations raise their native error on failure, services map it
    to DependencyFailure and call rollback().
    """

    # ---- transactions ----
    @abstractmethod
    def commit(self): ...

    @abstractmethod
    def rollback(self): ...

    @abstractmethod
    def flush(self): ...

    # ---- users ----
    @abstractmethod
    def get_user(self, user_id): ...

    @abstractmethod
    def get_user_by_email(self, email): ...

    @abstractmethod
    def add_user(self, user): ...

    @abstractmethod
    def list_users(self, roles=None, department=None, ids=None, active_only=True): ...

    # ---- requests ----
    @abstractmethod
    def get_request(self, request_id): ...

    @abstractmethod
    def add_request(self, doc_request): ...

    # ---- assignments ----
    @abstractmethod
    def get_assignment(self, assignment_id, for_update=False): ...

    @abstractmethod
    def list_assignments(self, request_id): ...

    @abstractmethod
    def pending_due_before(self, cutoff): ...

    @abstractmethod
    def pending_due_between(self, start, end): ...

    @abstractmethod
    def mark_overdue(self, assignment_ids): ...

    @abstractmethod
    def find_reminder_targets(
        self,
        statuses,
        request_id=None,
        request_owner_id=None,
        departments=None,
        employee_ids=None,
    ): ...

    @abstractmethod
    def increment_reminders(self, assignment_ids, at): ...

    # ---- documents ----
    @abstractmethod
    def get_document(self, document_id): ...

    @abstractmethod
    def max_document_version(self, assignment_id): ...

    @abstractmethod
    def clear_latest(self, assignment_id): ...

    @abstractmethod
    def add_document(self, document): ...

    @abstractmethod
    def delete_document(self, document): ...

    @abstractmethod
    def highest_version_document(self, assignment_id): ...

    # ---- notifications ----
    @abstractmethod
    def add_notifications(self, notifications): ...

    @abstractmethod
    def get_notification(self, notification_id): ...

    @abstractmethod
    def list_notifications(self, user_id, unread_only=False, limit=50): ...

    @abstractmethod
    def mark_all_notifications_read(self, user_id): ...

    # ---- audit / settings ----
    @abstractmethod
    def add_audit(self, entry): ...

    @abstractmethod
    def get_setting(self, key): ...

    @abstractmethod
    def set_setting(self, key, value): ...
