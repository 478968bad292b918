from __future__ import annotations

from datetime import timedelta

from flask import Flask, g, jsonify, request

from ..common.web import (
    domain_error_response,
    flag,
    identity,
    json_error,
    login_required,
    query_error_response,
    request_json,
    unexpected_error,
)
from ..container import Container
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

    @app.route("/auth/register", methods=["POST"], endpoint="register")
    def register_teacher():
        data = request_json()
        try:
            teacher = container.auth_service.register(
                email=data.get("email", ""),
                password=data.get("password", ""),
                name=data.get("name", ""),
            )
            identity.sign_in(teacher)
            return jsonify({"teacher": teacher.public_dict()}), 201
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "registering")

    @app.route("/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = request_json()
        try:
            teacher = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))
            identity.sign_in(teacher, remember=flag(data.get("remember_me")))
            return jsonify({"teacher": teacher.public_dict()})
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "signing in")

    @app.route("/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        user_id = identity.current_user_id()
        identity.sign_out()
        container.auth_service.sign_out(user_id)
        return jsonify({"ok": True})

    @app.route("/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        if flag(request.args.get("refresh")):
            query = container.teacher_service.refresh_profile(g.user_id)
        else:
            query = container.teacher_service.profile_query(g.user_id)
        if query.error:
            return query_error_response(query, "profile")
        if query.data is None:
            return json_error("Teacher profile not found", 404)
        return jsonify({"teacher": query.data.public_dict()})

    @app.route("/me", methods=["PUT"], endpoint="update_me")
    @login_required
    def update_me():
        data = request_json()
        try:
            teacher = container.teacher_service.update_profile(g.user_id, name=data.get("name", ""))
            return jsonify({"teacher": teacher.public_dict()})
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "updating the profile")

    @app.route("/me/password", methods=["POST"], endpoint="change_password")
    @login_required
    def change_password():
        data = request_json()
        try:
            container.teacher_service.change_password(
                g.user_id,
                current_password=data.get("current_password", ""),
                new_password=data.get("new_password", ""),
            )
            return jsonify({"ok": True})
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "changing the password")
