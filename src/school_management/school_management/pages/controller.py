from __future__ import annotations

import logging
from datetime import timedelta
from functools import wraps

from flask import Flask, flash, redirect, render_template, request, session, url_for

from ..container import Container
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    collections = container.fee_collection_service

    def page_login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                flash("Please log in to continue.", "warning")
                return redirect(url_for("sign_in"))
            return view(*args, **kwargs)

        return wrapper

    def page_admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return redirect(url_for("sign_in"))

            if session.get("role") != Role.ADMIN.value:
                current_user = {"full_name": session.get("name"), "role": session.get("role")}
                return render_template("403.html", current_user=current_user), 403

            return view(*args, **kwargs)

        return wrapper

    @app.route("/", methods=["GET", "POST"], endpoint="sign_in")
    def sign_in():
        if "user_id" in session:
            return redirect(url_for("dashboard"))

        if request.method == "POST":
            try:
                s_user = container.auth_service.authenticate(
                    request.form.get("username", ""), request.form.get("password", "")
                )

                session.clear()
                session.permanent = bool(request.form.get("remember_me"))
                app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

                session["user_id"] = s_user.user_id
                session["name"] = s_user.full_name
                session["role"] = s_user.role.value

                flash("Logged in successfully.", "success")
                return redirect(url_for("dashboard"))
            except AuthenticationError as e:
                flash(str(e), "danger")

        return render_template("sign_in.html")

    @app.route("/sign-out", endpoint="sign_out")
    def sign_out():
        session.clear()
        flash("You have been logged out.", "info")
        return redirect(url_for("sign_in"))

    @app.route("/dashboard", endpoint="dashboard")
    @page_login_required
    def dashboard():
        role = session.get("role")
        overdue, dues = [], []
        if role == Role.ADMIN.value:
            overdue = collections.list_overdue()
        elif role in (Role.PARENT.value, Role.STUDENT.value):
            dues = collections.dues_for_user(int(session["user_id"]))
        return render_template(
            "dashboard.html",
            name=session.get("name"),
            role=role,
            overdue=overdue,
            dues=dues,
            active_page="dashboard",
        )

    @app.route("/dashboard/fees/<int:fee_id>/pay", methods=["POST"], endpoint="dashboard_pay")
    @page_admin_required
    def dashboard_pay(fee_id: int):
        try:
            fee = collections.record_payment(fee_id, request.form.to_dict(), collected_by=int(session["user_id"]))
            flash(f"Payment recorded on {fee.receipt_number} ({fee.status.value}).", "success")
        except ValidationError as e:
            messages = [m for field_messages in e.errors.values() for m in field_messages]
            flash(" ".join(messages) or str(e), "danger")
        except NotFoundError as e:
            flash(str(e), "warning")
        return redirect(url_for("dashboard"))
