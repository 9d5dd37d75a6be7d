import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from models import AssignmentStatus
from services.audit_service import OverdueCheck, OverdueRef
from utils.clock import start_of_day

logger = logging.getLogger(__name__)

REMINDER_DAYS_KEY = "reminder_days_before"
SCHEDULER_ENABLED_KEY = "scheduler_enabled"
DEFAULT_REMINDER_DAYS = (3, 1)

_SCHEDULER_STARTED = False


def parse_reminder_days(raw):
    """'3,1' -> [3, 1]; junk and negatives are dropped, duplicates collapsed."""
    if raw is None or not str(raw).strip():
        return list(DEFAULT_REMINDER_DAYS)

    days = []
    for part in str(raw).split(","):
        part = part.strip()
        if not part.isdigit():
            continue
        value = int(part)
        if value not in days:
            days.append(value)
    return days


@dataclass
class SchedulerReport:
    overdue_marked: int = 0
    overdue_emails_sent: int = 0
    overdue_emails_failed: int = 0
    reminders_created: int = 0
    reminder_emails_sent: int = 0
    reminder_emails_failed: int = 0
    row_errors: int = 0
    budget_exhausted: bool = False
    tiers: list = field(default_factory=list)


class OverdueScheduler:
    """Daily sweep: PENDING past due -> OVERDUE, then tiered deadline reminders.

    Both phases are safe to rerun. Phase A only touches rows still PENDING,
    so a second run the same day changes nothing; phase B never changes
    status. A failure on one row is logged and counted and the sweep moves on.
    """

    def __init__(self, store, fanout, audit, clock, budget_seconds=None):
        self.store = store
        self.fanout = fanout
        self.audit = audit
        self.clock = clock
        self.budget_seconds = budget_seconds

    def run(self):
        report = SchedulerReport()
        self._started = time.monotonic()
        today = start_of_day(self.clock.now())

        logger.info("Overdue check started for %s", today.date())
        self._mark_overdue(today, report)
        self._deadline_reminders(today, report)

        logger.info(
            "Overdue check done: %s marked overdue (emails %s sent / %s failed), "
            "%s deadline reminder(s) (emails %s sent / %s failed), %s row error(s)%s",
            report.overdue_marked, report.overdue_emails_sent, report.overdue_emails_failed,
            report.reminders_created, report.reminder_emails_sent, report.reminder_emails_failed,
            report.row_errors, ", budget exhausted" if report.budget_exhausted else "",
        )
        return report

    def _over_budget(self, report):
        if not self.budget_seconds:
            return False
        if time.monotonic() - self._started > self.budget_seconds:
            if not report.budget_exhausted:
                logger.warning("Overdue check exceeded its %ss budget, stopping", self.budget_seconds)
            report.budget_exhausted = True
            return True
        return False

    # =========================
    # Phase A
    # =========================
    def _mark_overdue(self, today, report):
        candidates = self.store.pending_due_before(today)
        if not candidates:
            logger.info("No new overdue assignments found")
            return

        try:
            self.store.mark_overdue([a.id for a in candidates])
            self.store.commit()
        except SQLAlchemyError:
            logger.exception("Could not mark %s assignment(s) overdue", len(candidates))
            self.store.rollback()
            raise

        # Rows that left PENDING between select and update are skipped
        affected = [a for a in candidates if a.status == AssignmentStatus.OVERDUE]
        report.overdue_marked = len(affected)
        logger.info("Marked %s assignment(s) as OVERDUE", len(affected))

        refs = []
        for a in affected:
            refs.append(OverdueRef(id=a.id, employee=a.employee.label, request=a.request.title))
            # The status change is final, so the in-app notice is never skipped
            try:
                self.fanout.overdue_notice(a, a.request, a.employee)
            except Exception:
                report.row_errors += 1
                logger.exception("Overdue notice failed for assignment %s", a.id)
            if self._over_budget(report):
                continue
            try:
                if self.fanout.overdue_email(a, a.request, a.employee, wait=True):
                    report.overdue_emails_sent += 1
                else:
                    report.overdue_emails_failed += 1
            except Exception:
                report.row_errors += 1
                logger.exception("Overdue notification failed for assignment %s", a.id)

        if affected:
            self.fanout.overdue_summary(len(affected))
            self.audit.record(OverdueCheck(overdue_count=len(affected), assignments=tuple(refs)))

    # =========================
    # Phase B
    # =========================
    def _deadline_reminders(self, today, report):
        days_list = parse_reminder_days(self.store.get_setting(REMINDER_DAYS_KEY))
        report.tiers = days_list

        for days in days_list:
            if self._over_budget(report):
                return
            target = today + timedelta(days=days)
            upcoming = self.store.pending_due_between(target, target + timedelta(days=1))
            if not upcoming:
                continue

            logger.info("Sending %s-day reminders to %s employee(s)", days, len(upcoming))
            for a in upcoming:
                if self._over_budget(report):
                    return
                try:
                    ok = self.fanout.deadline_approaching(a, a.request, a.employee, days, wait=True)
                    report.reminders_created += 1
                    if ok:
                        report.reminder_emails_sent += 1
                    else:
                        report.reminder_emails_failed += 1
                except Exception:
                    report.row_errors += 1
                    logger.exception("Deadline reminder failed for assignment %s", a.id)


# =========================
# Entry points
# =========================
def run_overdue_check(app):
    from services.container import get_services

    with app.app_context():
        services = get_services()
        scheduler = OverdueScheduler(
            services.store,
            services.fanout,
            services.audit,
            services.clock,
            budget_seconds=app.config.get("SCHEDULER_BUDGET_SEC"),
        )
        return scheduler.run()


def _scheduler_enabled(app):
    from services.container import get_services

    raw = get_services().store.get_setting(SCHEDULER_ENABLED_KEY)
    if raw is None:
        return True
    return raw.strip() in ("1", "true", "True", "yes", "YES")


def _worker(app):
    interval = max(60, int(app.config.get("SCHEDULER_INTERVAL_SEC") or 86400))
    while True:
        try:
            with app.app_context():
                if _scheduler_enabled(app):
                    run_overdue_check(app)
                else:
                    logger.info("Overdue check disabled by setting, skipping")
        except Exception:
            # Keep the thread alive; the next tick retries
            logger.exception("Overdue check run failed")
        time.sleep(interval)


def start_scheduler_thread(app):
    global _SCHEDULER_STARTED

    if _SCHEDULER_STARTED:
        return False

    t = threading.Thread(target=_worker, args=(app,), daemon=True, name="OverdueScheduler")
    t.start()
    _SCHEDULER_STARTED = True
    logger.info("Overdue scheduler thread started")
    return True


if __name__ == "__main__":
    from app import create_app

    report = run_overdue_check(create_app("config.ProdConfig"))
    print(
        f"Overdue: {report.overdue_marked}, deadline reminders: {report.reminders_created}, "
        f"row errors: {report.row_errors}"
    )
