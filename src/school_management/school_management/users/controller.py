from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, session

from ..common.web import admin_required, current_user_id, json_body, json_endpoint, login_required
from ..container import Container
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.enums import Role
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/login", methods=["POST"], endpoint="login")
    @json_endpoint("Failed to log in")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value
        return jsonify(
            {
                "success": True,
                "message": "Logged in successfully",
                "user": {"id": s_user.user_id, "name": s_user.full_name, "role": s_user.role.value},
            }
        )

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"success": True, "message": "Logged out"})

    @app.route("/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        return jsonify(
            {"success": True, "user": {"id": session["user_id"], "name": session.get("name"), "role": session.get("role")}}
        )

    @app.route("/admin/users", methods=["GET"], endpoint="admin_users")
    @admin_required
    @json_endpoint("Failed to load users")
    def admin_users():
        return jsonify({"success": True, "data": container.user_service.list_accounts()})

    @app.route("/admin/users", methods=["POST"], endpoint="add_user")
    @admin_required
    @json_endpoint("Failed to create user")
    def add_user():
        data = json_body()
        try:
            role = Role(data.get("role", Role.TEACHER.value))
        except ValueError:
            raise ValidationError("Invalid role", {"role": ["The selected role is invalid."]})
        user_id = container.user_service.create_account(
            full_name=data.get("full_name", ""),
            username=data.get("username", ""),
            password=data.get("password", ""),
            role=role,
        )
        return jsonify({"success": True, "message": "User created successfully", "id": user_id}), 201

    @app.route("/admin/users/<int:user_id>/active", methods=["PUT"], endpoint="set_user_active")
    @admin_required
    @json_endpoint("Failed to update user")
    def set_user_active(user_id: int):
        is_active = bool(json_body().get("is_active", True))
        container.user_service.set_active(user_id, is_active=is_active, acting_user_id=current_user_id())
        return jsonify({"success": True, "message": "User updated successfully"})
