from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.web import domain_error_response, login_required, query_error_response, request_json, unexpected_error
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    def owned_student(student_id: str):
        student = container.student_service.get_student(student_id)
        container.subject_service.get_owned(student.subject_id, g.user_id)
        return student

    @app.route("/subjects/<subject_id>/students", methods=["GET"], endpoint="list_students")
    @login_required
    def list_students(subject_id: str):
        try:
            container.subject_service.get_owned(subject_id, g.user_id)
        except DomainError as e:
            return domain_error_response(e)

        query = container.student_service.with_subject_query(subject_id)
        if query.error:
            return query_error_response(query, "students")
        return jsonify({"subject": query.data.subject, "students": query.data.students})

    @app.route("/subjects/<subject_id>/students", methods=["POST"], endpoint="create_student")
    @login_required
    def create_student(subject_id: str):
        data = request_json()
        try:
            container.subject_service.get_owned(subject_id, g.user_id)
            student = container.student_service.create_student(
                subject_id=subject_id,
                name=data.get("name", ""),
                reg_number=data.get("reg_number", ""),
                roll_number=data.get("roll_number", ""),
                course=data.get("course", ""),
            )
            return jsonify({"student": student}), 201
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "adding the student")

    @app.route("/students/<student_id>", methods=["PUT"], endpoint="update_student")
    @login_required
    def update_student(student_id: str):
        try:
            owned_student(student_id)
            student = container.student_service.update_student(student_id, request_json())
            return jsonify({"student": student})
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "updating the student")

    @app.route("/students/<student_id>", methods=["DELETE"], endpoint="delete_student")
    @login_required
    def delete_student(student_id: str):
        try:
            owned_student(student_id)
            container.student_service.delete_student(student_id)
            return jsonify({"ok": True})
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "deleting the student")

    @app.route("/students/<student_id>/history", methods=["GET"], endpoint="student_history")
    @login_required
    def student_history(student_id: str):
        try:
            student = owned_student(student_id)
        except DomainError as e:
            return domain_error_response(e)

        query = container.student_service.history_query(
            student_id,
            request.args.get("range"),
            today=container.report_service.today(),
        )
        if query.error:
            return query_error_response(query, "attendance history")
        return jsonify({"student": student, "history": query.data})
