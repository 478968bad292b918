from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.web import domain_error_response, login_required, query_error_response, request_json, unexpected_error
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    @app.route("/subjects", methods=["GET"], endpoint="list_subjects")
    @login_required
    def list_subjects():
        query = container.subject_service.list_query(g.user_id)
        if query.error:
            return query_error_response(query, "subjects")
        return jsonify({"subjects": query.data or []})

    @app.route("/subjects", methods=["POST"], endpoint="create_subject")
    @login_required
    def create_subject():
        data = request_json()
        try:
            subject = container.subject_service.create_subject(
                teacher_id=g.user_id,
                name=data.get("name", ""),
                code=data.get("code", ""),
                academic_year=data.get("academic_year", ""),
                semester=data.get("semester", ""),
                description=data.get("description"),
            )
            return jsonify({"subject": subject}), 201
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "creating the subject")

    @app.route("/subjects/<subject_id>", methods=["DELETE"], endpoint="delete_subject")
    @login_required
    def delete_subject(subject_id: str):
        try:
            container.subject_service.delete_subject(subject_id=subject_id, teacher_id=g.user_id)
            return jsonify({"ok": True})
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "deleting the subject")
