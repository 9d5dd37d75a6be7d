import logging
import os
from logging.handlers import RotatingFileHandler

import click
from flask import Flask, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

# ======================
# Extensions
# ======================
from extensions import db, login_manager, mail, migrate

# ======================
# Models
# ======================
from models import User

from services.container import build_services, get_services
from services.errors import DrmsError

logger = logging.getLogger(__name__)


# =========================
# Logging
# =========================
def configure_logging(app):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    log_dir = app.config.get("LOG_DIR")
    if not log_dir:
        return

    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, "drms.log")

    root = logging.getLogger()
    # create_app() may run more than once per process (CLI, tests)
    for h in root.handlers:
        if isinstance(h, RotatingFileHandler) and h.baseFilename == os.path.abspath(log_path):
            return

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=1_000_000,   # 1MB
        backupCount=5
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    ))

    root.setLevel(logging.INFO)
    root.addHandler(file_handler)


# ======================
# Error Handlers
# ======================
def register_error_handlers(app):

    @app.errorhandler(DrmsError)
    def _handle_drms_error(err):
        if err.status_code >= 500:
            logger.error("%s %s -> %s", request.method, request.path, err.message)
        return jsonify({"success": False, "error": err.message}), err.status_code

    @app.errorhandler(401)
    def _handle_401(err):
        return jsonify({"success": False, "error": "Authentication required"}), 401

    @app.errorhandler(403)
    def _handle_403(err):
        return jsonify({"success": False, "error": "Access denied"}), 403

    @app.errorhandler(404)
    def _handle_404(err):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(SQLAlchemyError)
    def _handle_db_error(err):
        logger.exception("Unhandled database error on %s %s", request.method, request.path)
        db.session.rollback()
        return jsonify({"success": False, "error": "Database error"}), 503


# ======================
# CLI
# ======================
def register_cli(app):

    @app.cli.command("init-db")
    def init_db_command():
        """Create tables and seed default settings."""
        from init_db import init_database

        added = init_database(app)
        click.echo(f"Database initialized ({added} setting(s) seeded)")

    @app.cli.command("check-overdue")
    def check_overdue_command():
        """Run the overdue sweep and deadline reminders once."""
        from jobs.overdue_job import run_overdue_check

        report = run_overdue_check(app)
        click.echo(
            f"Overdue: {report.overdue_marked}, "
            f"deadline reminders: {report.reminders_created}, "
            f"row errors: {report.row_errors}"
        )

    @app.cli.command("create-user")
    @click.argument("email")
    @click.option("--name", default=None)
    @click.option("--department", default=None)
    @click.option("--role", default=None, help="ADMIN, HR, DEPARTMENT_HEAD or EMPLOYEE")
    @click.option("--managed-department", default=None)
    def create_user_command(email, name, department, role, managed_department):
        """Provision a user and optionally set its role."""
        from permissions.principals import AdminPrincipal

        services = get_services()
        user = services.users.provision_user(email, name=name, department=department)
        if role:
            # Console operator acts with admin rights
            operator = AdminPrincipal(id=None, name="cli")
            services.users.change_role(operator, user.id, role, managed_department=managed_department)
        click.echo(f"{user.email} -> {user.role} (id={user.id})")


# ======================
# App Init
# ======================
def create_app(config_object="config.DevConfig", **overrides):
    """Application factory.

    `overrides` are passed to build_services (store, mailer, clock,
    file_store) so tests can inject fakes.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    configure_logging(app)

    db.init_app(app)
    login_manager.init_app(app)
    mail.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        build_services(app, **overrides)

    from api import api_bp
    app.register_blueprint(api_bp)

    register_error_handlers(app)
    register_cli(app)

    # ======================
    # Login Manager
    # ======================
    @login_manager.user_loader
    def load_user(user_id):
        try:
            uid = int(user_id)
        except (TypeError, ValueError):
            logger.warning(f"user_loader invalid user_id: {user_id}")
            return None

        if hasattr(g, "_current_user"):
            return g._current_user

        try:
            user = db.session.get(User, uid)
        except SQLAlchemyError:
            logger.exception(f"user_loader DB error for user_id={uid}")
            return None

        if user is None:
            logger.warning(f"user_loader: user not found (id={uid})")

        g._current_user = user
        return user

    @app.teardown_appcontext
    def shutdown_session(exception=None):
        db.session.remove()

    # ----------------------------
    # Background jobs (in-process)
    # ----------------------------
    # Started on the first real request, once per process, so CLI commands
    # and migrations never spawn the scheduler.
    if app.config.get("SCHEDULER_ENABLED"):
        jobs_state = {"started": False}

        @app.before_request
        def _start_jobs_once():
            if jobs_state["started"] or request.endpoint is None:
                return
            jobs_state["started"] = True
            try:
                from jobs.overdue_job import start_scheduler_thread
                start_scheduler_thread(app)
            except Exception:
                # Keep serving even if the job cannot start
                logger.exception("Failed to start overdue scheduler")

    logger.info("%s started with %s", app.config.get("APP_NAME"), config_object)
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, use_reloader=False)
