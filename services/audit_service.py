import logging
from dataclasses import asdict, dataclass
from typing import ClassVar, Optional, Tuple

from models import AuditLog

logger = logging.getLogger(__name__)


def _camel(name):
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


def _camelize(value):
    if isinstance(value, dict):
        return {_camel(k): _camelize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_camelize(v) for v in value]
    return value


@dataclass(frozen=True)
class AuditPayload:
    """Closed set of audit details; one subclass per action."""

    ACTION: ClassVar[str] = ""
    ENTITY_TYPE: ClassVar[Optional[str]] = None

    def to_details(self):
        return _camelize(asdict(self))


# =========================
# Payload variants
# =========================
@dataclass(frozen=True)
class UploadDocument(AuditPayload):
    ACTION = "UPLOAD_DOCUMENT"
    ENTITY_TYPE = "document"

    file_name: str
    request_title: str
    version: int


@dataclass(frozen=True)
class DeleteDocument(AuditPayload):
    ACTION = "DELETE_DOCUMENT"
    ENTITY_TYPE = "document"

    file_name: str
    version: int
    reverted_to_pending: bool = False


@dataclass(frozen=True)
class ApproveDocument(AuditPayload):
    ACTION = "APPROVE_DOCUMENT"
    ENTITY_TYPE = "assignment"

    request_title: str
    employee_name: str
    note: Optional[str] = None


@dataclass(frozen=True)
class RejectDocument(AuditPayload):
    ACTION = "REJECT_DOCUMENT"
    ENTITY_TYPE = "assignment"

    request_title: str
    employee_name: str
    note: str


@dataclass(frozen=True)
class OverdueRef:
    id: int
    employee: str
    request: str


@dataclass(frozen=True)
class OverdueCheck(AuditPayload):
    ACTION = "OVERDUE_CHECK"
    ENTITY_TYPE = "system"

    overdue_count: int
    assignments: Tuple[OverdueRef, ...] = ()


@dataclass(frozen=True)
class BulkReminder(AuditPayload):
    ACTION = "BULK_REMINDER"
    ENTITY_TYPE = "tracking"

    total_sent: int
    total_failed: int
    assignment_count: int
    request_id: Optional[int] = None
    department_filter: Optional[str] = None
    completed: bool = True


@dataclass(frozen=True)
class CreateRequest(AuditPayload):
    ACTION = "CREATE_REQUEST"
    ENTITY_TYPE = "request"

    title: str
    assigned_count: int


@dataclass(frozen=True)
class CancelRequest(AuditPayload):
    ACTION = "CANCEL_REQUEST"
    ENTITY_TYPE = "request"

    title: str
    notified_count: int


@dataclass(frozen=True)
class UpdateUser(AuditPayload):
    ACTION = "UPDATE_USER"
    ENTITY_TYPE = "user"

    email: str
    role: str
    is_active: bool


# =========================
# Sink
# =========================
class AuditSink:
    """Append-only audit trail. record() never raises."""

    def __init__(self, store, clock):
        self.store = store
        self.clock = clock

    def record(self, payload, actor_id=None, entity_id=None, ip_address=None):
        try:
            entry = AuditLog(
                user_id=actor_id,
                action=payload.ACTION,
                entity_type=payload.ENTITY_TYPE,
                entity_id=entity_id,
                details=payload.to_details(),
                ip_address=ip_address,
                created_at=self.clock.now(),
            )
            self.store.add_audit(entry)
            self.store.commit()
            return True
        except Exception:
            logger.exception("Failed to write audit entry %s", getattr(payload, "ACTION", "?"))
            try:
                self.store.rollback()
            except Exception:
                logger.exception("Rollback after audit failure also failed")
            return False
