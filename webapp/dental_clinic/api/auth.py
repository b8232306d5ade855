import functools

from flask import (
    Blueprint, flash, g, jsonify, redirect, render_template, request, session, url_for
)

from dental_clinic.services.activity_logger import ActionCategory, ActionType, log_activity
from dental_clinic.services.auth_service import AuthService

bp = Blueprint("auth", __name__, url_prefix="/auth")


def _wants_json() -> bool:
    return request.is_json or request.accept_mimetypes.best == "application/json"


@bp.route("/login", methods=("GET", "POST"))
def login():
    if request.method == "GET":
        if g.user is not None:
            return redirect(url_for("dashboard.index"))
        return render_template("auth/login.html")

    username = request.form.get("username", "")
    user = AuthService().authenticate(username, request.form.get("password", ""))
    if user is None:
        flash("Incorrect username or password, or the account is temporarily locked.")
        return render_template("auth/login.html", username=username)

    session.clear()
    session["user_id"] = user.id
    session["role"] = user.role
    log_activity(
        ActionType.LOGIN, ActionCategory.AUTH,
        description=f"Signed in as {user.role}",
        user_id=user.id, username=user.username,
    )
    return redirect(url_for("dashboard.index"))


@bp.route("/logout")
def logout():
    if g.user:
        log_activity(
            ActionType.LOGOUT, ActionCategory.AUTH,
            user_id=g.user["id"], username=g.user["username"],
        )
    session.clear()
    return redirect(url_for("auth.login"))


def login_required(view):
    """Send anonymous visitors to the login page (JSON callers get a 401)."""
    @functools.wraps(view)
    def wrapped_view(**kwargs):
        if g.user is None:
            if _wants_json():
                return jsonify({"error": "Sign in required"}), 401
            return redirect(url_for("auth.login"))
        return view(**kwargs)

    return wrapped_view


def role_required(*roles):
    """Restrict a view to users holding one of ``roles``."""
    def decorator(view):
        @functools.wraps(view)
        @login_required
        def wrapped_view(**kwargs):
            if g.user["role"] not in roles:
                return jsonify({"error": "You do not have permission to do this"}), 403
            return view(**kwargs)

        return wrapped_view

    return decorator
