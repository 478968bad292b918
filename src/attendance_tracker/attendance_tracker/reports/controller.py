from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.web import domain_error_response, login_required, query_error_response
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    @app.route("/subjects/<subject_id>/reports", methods=["GET"], endpoint="subject_report")
    @login_required
    def subject_report(subject_id: str):
        try:
            subject = container.subject_service.get_owned(subject_id, g.user_id)
        except DomainError as e:
            return domain_error_response(e)

        query = container.report_service.report_query(subject_id, request.args.get("range"))
        if query.error:
            return query_error_response(query, "the report")
        return jsonify({"subject": subject, "report": query.data})
