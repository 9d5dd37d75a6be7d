import logging
from dataclasses import dataclass
from typing import Any

from flask import current_app

from extensions import db, mail
from repository.sql_store import SqlStore
from services.audit_service import AuditSink
from services.inbox_service import InboxService
from services.notification_service import NotificationFanout
from services.reminder_service import ReminderService
from services.request_service import RequestService
from services.review_service import ReviewService
from services.submission_service import SubmissionService
from services.user_service import UserService
from utils.clock import SystemClock
from utils.file_store import LocalFileStore
from utils.mail_queue import InlineDispatcher, QueuedDispatcher
from utils.mailer import FlaskMailMailer

logger = logging.getLogger(__name__)

EXTENSION_KEY = "drms"


@dataclass
class Services:
    store: Any
    file_store: Any
    mailer: Any
    dispatcher: Any
    clock: Any
    fanout: NotificationFanout
    audit: AuditSink
    submissions: SubmissionService
    reviews: ReviewService
    reminders: ReminderService
    requests: RequestService
    users: UserService
    inbox: InboxService


def build_services(app, store=None, mailer=None, clock=None, file_store=None):
    """Wires the collaborators for `app` and stores them in app.extensions.

    Any collaborator can be swapped (tests pass a recording mailer and a
    fixed clock); the rest default to the Flask-SQLAlchemy session,
    Flask-Mail and the local upload directory.
    """
    cfg = app.config
    store = store or SqlStore(db.session)
    mailer = mailer or FlaskMailMailer(mail)
    clock = clock or SystemClock()
    file_store = file_store or LocalFileStore(cfg["UPLOAD_DIR"])

    if (cfg.get("MAIL_DISPATCH") or "queue").lower() == "inline":
        dispatcher = InlineDispatcher(mailer)
    else:
        dispatcher = QueuedDispatcher(
            mailer,
            app,
            maxsize=cfg.get("MAIL_QUEUE_SIZE", 500),
            retry_attempts=cfg.get("MAIL_RETRY_ATTEMPTS", 3),
        )

    fanout = NotificationFanout(store, dispatcher, mailer, clock)
    audit = AuditSink(store, clock)

    services = Services(
        store=store,
        file_store=file_store,
        mailer=mailer,
        dispatcher=dispatcher,
        clock=clock,
        fanout=fanout,
        audit=audit,
        submissions=SubmissionService(store, file_store, fanout, audit, clock),
        reviews=ReviewService(store, fanout, audit, clock),
        reminders=ReminderService(store, fanout, audit, clock),
        requests=RequestService(
            store,
            fanout,
            audit,
            clock,
            default_max_file_size_mb=cfg.get("DEFAULT_MAX_FILE_SIZE_MB", 10),
            default_formats=cfg.get("DEFAULT_ACCEPTED_FORMATS"),
        ),
        users=UserService(store, audit, clock),
        inbox=InboxService(store),
    )
    app.extensions[EXTENSION_KEY] = services
    logger.info("Services ready (mail dispatch: %s)", type(dispatcher).__name__)
    return services


def get_services():
    return current_app.extensions[EXTENSION_KEY]
