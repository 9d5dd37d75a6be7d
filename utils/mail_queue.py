import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import List, Union

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass
class EmailJob:
    to: Union[str, List[str]]
    subject: str
    html: str
    kind: str = "generic"
    attempts: int = field(default=0, compare=False)


class InlineDispatcher:
    """Sends on the caller's thread. Used by tests and the batch job."""

    def __init__(self, mailer):
        self.mailer = mailer
        self.stats = {"sent": 0, "failed": 0, "dropped": 0}

    def dispatch(self, job):
        ok = self.mailer.send(job.to, job.subject, job.html)
        self.stats["sent" if ok else "failed"] += 1
        if not ok:
            logger.warning("Email %s to %s failed", job.kind, job.to)
        return ok

    def stop(self, timeout=None):
        pass


class QueuedDispatcher:
    """Bounded queue drained by one daemon worker.

    dispatch() never blocks: a full queue drops the email and counts it.
    The worker retries a failed send up to `retry_attempts` times.
    """

    def __init__(self, mailer, app, maxsize=500, retry_attempts=3, retry_delay=2.0):
        self.mailer = mailer
        self.app = app
        self.retry_attempts = max(1, int(retry_attempts))
        self.retry_delay = retry_delay
        self.queue = queue.Queue(maxsize=maxsize)
        self.stats = {"sent": 0, "failed": 0, "dropped": 0}
        self._lock = threading.Lock()
        self._thread = None

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._worker, daemon=True, name="MailWorker")
        self._thread.start()

    def dispatch(self, job):
        self.start()
        try:
            self.queue.put_nowait(job)
            return True
        except queue.Full:
            self._count("dropped")
            logger.warning("Mail queue full, dropping %s email to %s", job.kind, job.to)
            return False

    def stop(self, timeout=5.0):
        if not self._thread:
            return
        self.queue.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def join(self):
        """Blocks until every queued email has been handled."""
        self.queue.join()

    def _count(self, key):
        with self._lock:
            self.stats[key] += 1

    def _worker(self):
        while True:
            job = self.queue.get()
            try:
                if job is _STOP:
                    return
                self._deliver(job)
            except Exception:
                # Never let one email kill the worker
                logger.exception("Mail worker crashed on %s email", getattr(job, "kind", "?"))
            finally:
                self.queue.task_done()

    def _deliver(self, job):
        with self.app.app_context():
            while job.attempts < self.retry_attempts:
                job.attempts += 1
                if self.mailer.send(job.to, job.subject, job.html):
                    self._count("sent")
                    return
                if job.attempts < self.retry_attempts:
                    time.sleep(self.retry_delay * job.attempts)
        self._count("failed")
        logger.error("Giving up on %s email to %s after %s attempts", job.kind, job.to, job.attempts)
