"""
init_db.py
----------
Create the tables and seed the runtime settings.

    python init_db.py            # uses config.DevConfig
    flask --app app init-db      # same, through the app CLI
"""

import logging

from extensions import db
from models import SystemSetting

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "reminder_days_before": "3,1",
    "scheduler_enabled": "1",
}


def seed_settings():
    """Insert missing settings; values already present are left alone."""
    added = 0
    for key, value in DEFAULT_SETTINGS.items():
        if SystemSetting.query.filter_by(key=key).first() is None:
            db.session.add(SystemSetting(key=key, value=value))
            added += 1
    db.session.commit()
    return added


def init_database(app):
    with app.app_context():
        db.create_all()
        added = seed_settings()
        logger.info("Database initialized (%s setting(s) seeded)", added)
        return added


if __name__ == "__main__":
    from app import create_app

    init_database(create_app())
    print("Database initialized successfully")
