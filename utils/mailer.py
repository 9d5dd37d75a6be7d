import logging

from flask import current_app
from flask_mail import Message

logger = logging.getLogger(__name__)


class FlaskMailMailer:
    """Mailer over Flask-Mail: send(to, subject, html) -> bool, never raises.

    `to` may be a single address or a list; a list is delivered as one
    message with the recipients in BCC.
    """

    def __init__(self, mail):
        self.mail = mail

    def _configured(self):
        cfg = current_app.config
        if cfg.get("MAIL_SUPPRESS_SEND"):
            return True
        return bool(cfg.get("MAIL_USERNAME") and cfg.get("MAIL_PASSWORD"))

    def send(self, to, subject, html):
        try:
            if not self._configured():
                logger.warning("SMTP not configured, skipping email: %s", subject)
                return False

            app_name = current_app.config.get("APP_NAME", "DRMS")
            sender = current_app.config.get("MAIL_DEFAULT_SENDER")
            recipients = [to] if isinstance(to, str) else [r for r in to if r]
            if not recipients:
                return False

            if len(recipients) == 1:
                msg = Message(subject=f"[{app_name}] {subject}", recipients=recipients, html=html, sender=sender)
            else:
                msg = Message(subject=f"[{app_name}] {subject}", recipients=[sender], bcc=recipients, html=html, sender=sender)

            self.mail.send(msg)
            return True
        except Exception:
            logger.exception("Failed to send email %r", subject)
            return False
