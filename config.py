import os


def _env_bool(name, default):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip() in ("1", "true", "True", "yes", "YES")


class BaseConfig:
    # Security
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///drms.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Branding / links used in notifications and emails
    APP_NAME = os.getenv("APP_NAME", "DRMS")
    APP_URL = os.getenv("APP_URL", "http://localhost:5000")

    # Storage
    UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "storage", "uploads"))
    LOG_DIR = os.getenv("LOG_DIR", "logs")

    # Upload defaults for new requests
    DEFAULT_MAX_FILE_SIZE_MB = int(os.getenv("DEFAULT_MAX_FILE_SIZE_MB", 10))
    DEFAULT_ACCEPTED_FORMATS = os.getenv(
        "DEFAULT_ACCEPTED_FORMATS", "pdf,jpg,jpeg,png,doc,docx"
    )

    # Mail (Flask-Mail)
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.office365.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", 587))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", True)
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "DRMS <noreply@company.com>")

    # "queue" hands emails to the background worker, "inline" sends immediately
    MAIL_DISPATCH = os.getenv("MAIL_DISPATCH", "queue")
    MAIL_QUEUE_SIZE = int(os.getenv("MAIL_QUEUE_SIZE", 500))
    MAIL_RETRY_ATTEMPTS = int(os.getenv("MAIL_RETRY_ATTEMPTS", 3))

    # Overdue / reminder job
    SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", False)
    SCHEDULER_INTERVAL_SEC = int(os.getenv("SCHEDULER_INTERVAL_SEC", 24 * 3600))
    SCHEDULER_BUDGET_SEC = int(os.getenv("SCHEDULER_BUDGET_SEC", 15 * 60))


class DevConfig(BaseConfig):
    DEBUG = True


class ProdConfig(BaseConfig):
    DEBUG = False
    SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", True)


class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    MAIL_DISPATCH = "inline"
    MAIL_SUPPRESS_SEND = True
    SCHEDULER_ENABLED = False
    LOG_DIR = None
