import logging
import os
import sys

import click
from flask import Flask, g, redirect, session, url_for

from dental_clinic.adapters.sqlite.core import close_connection, get_db, init_db_command
from dental_clinic.common.utils import format_datetime, format_money
from dental_clinic.config.settings import Config
from dental_clinic.domain.user import UserRole


def create_app(test_config=None):
    """Build the Flask application (source checkout or PyInstaller bundle)."""
    if getattr(sys, "frozen", False):
        base_dir = os.path.join(sys._MEIPASS, "dental_clinic")
    else:
        base_dir = os.path.abspath(os.path.dirname(__file__))
    template_folder = os.path.join(base_dir, "templates")
    static_folder = os.path.join(base_dir, "static")

    app = Flask(__name__, template_folder=template_folder, static_folder=static_folder)

    if test_config is None:
        app.config.from_object(Config)
    else:
        app.config.from_object(Config)
        app.config.from_mapping(test_config)

    logging.basicConfig(
        level=getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not app.config.get("TESTING", False):
        env_name = os.environ.get("FLASK_ENV") or os.environ.get("APP_ENV") or "development"
        if env_name.lower() == "production":
            app.config["DEBUG"] = False
            app.jinja_env.auto_reload = False
        else:
            app.jinja_env.auto_reload = bool(app.config.get("DEBUG", False))

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    app.teardown_appcontext(close_connection)

    # --------- CLI ---------
    from dental_clinic.services.auth_service import AuthService

    @app.cli.command("init-db")
    def init_db():
        init_db_command()

    @app.cli.command("create-user")
    @click.argument("username")
    @click.argument("password")
    @click.argument("role", default=UserRole.RECEPTIONIST, type=click.Choice(UserRole.ALL))
    @click.option("--full-name", default=None)
    def create_user(username, password, role, full_name):
        if AuthService().register_user(username, password, role, full_name):
            click.echo(f"User {username} created successfully.")
        else:
            click.echo(f"User {username} already exists.")

    @app.cli.command("list-users")
    def list_users():
        for user in AuthService().list_users():
            state = "" if user.is_active else "\t(disabled)"
            click.echo(f"{user.username}\t{user.role}\t{user.full_name or ''}{state}")

    @app.cli.command("reset-password")
    @click.argument("username")
    @click.argument("password")
    def reset_password(username, password):
        try:
            AuthService().reset_password(username, password)
        except (LookupError, ValueError) as e:
            raise click.ClickException(str(e))
        click.echo(f"Password for {username} reset.")

    @app.cli.command("set-user-active")
    @click.argument("username")
    @click.option("--disable", is_flag=True, help="Block the account from signing in.")
    def set_user_active(username, disable):
        try:
            AuthService().set_active(username, not disable)
        except LookupError as e:
            raise click.ClickException(str(e))
        click.echo(f"User {username} {'disabled' if disable else 'enabled'}.")

    # --------- Logged-in user ---------
    @app.before_request
    def load_logged_in_user():
        user_id = session.get("user_id")
        if user_id is None:
            g.user = None
        else:
            g.user = get_db().execute(
                "SELECT id, username, role, full_name FROM users WHERE id = ? AND is_active = 1", (user_id,)
            ).fetchone()

    # --------- Blueprints ---------
    from dental_clinic.api.auth import bp as auth_bp
    from dental_clinic.api.billing import bp as billing_bp
    from dental_clinic.api.dashboard import bp as dashboard_bp
    from dental_clinic.api.patients import bp as patients_bp, files_bp
    from dental_clinic.api.prescriptions import bp as prescriptions_bp
    from dental_clinic.api.reports import bp as reports_bp
    from dental_clinic.api.scheduler import bp as scheduler_bp
    from dental_clinic.api.suppliers import bp as suppliers_bp
    from dental_clinic.api.treatments import bp as treatments_bp

    for blueprint in (auth_bp, dashboard_bp, patients_bp, files_bp, treatments_bp, billing_bp,
                      suppliers_bp, prescriptions_bp, scheduler_bp, reports_bp):
        app.register_blueprint(blueprint)

    @app.route("/")
    def index():
        if g.user is None:
            return redirect(url_for("auth.login"))
        return redirect(url_for("dashboard.index"))

    # --------- Template helpers ---------
    @app.template_filter("money")
    def money_filter(value):
        return format_money(value, app.config.get("CURRENCY", ""))

    @app.template_filter("datetime")
    def datetime_filter(value):
        return format_datetime(value)

    @app.context_processor
    def inject_clinic():
        return {
            "clinic": {
                "name": app.config.get("CLINIC_NAME"),
                "address": app.config.get("CLINIC_ADDRESS"),
                "phone": app.config.get("CLINIC_PHONE"),
            }
        }

    return app


if __name__ == "__main__":
    application = create_app()
    application.run(
        debug=False,
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8080)),
        use_reloader=False,
    )
