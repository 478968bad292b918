from __future__ import annotations

from flask import Flask, g, jsonify, request, session

from ..common.datetime_utils import parse_iso_date
from ..common.web import (
    domain_error_response,
    flag,
    json_error,
    login_required,
    query_error_response,
    request_json,
    unexpected_error,
)
from ..container import Container
from ..core.exceptions import DomainError
from .pending import PendingEditBuffer
from .service import AttendanceMarkingSession

BUFFER_SESSION_KEY = "attendance_buffer"


def register(app: Flask, container: Container) -> None:
    def load_buffer(subject_id: str, raw_date, *, confirmed: bool) -> PendingEditBuffer:
        """The caller's buffer, moved to (subject, date) if it was elsewhere."""

        stored = session.get(BUFFER_SESSION_KEY)
        buffer = PendingEditBuffer.from_dict(stored) if stored else None

        if raw_date:
            work_date = parse_iso_date(raw_date)
        elif buffer is not None and buffer.subject_id == subject_id:
            work_date = buffer.work_date
        else:
            work_date = container.attendance_service.today()

        if buffer is None:
            return PendingEditBuffer(subject_id, work_date)
        buffer.rescope(subject_id, work_date, confirmed=confirmed)
        return buffer

    def save_buffer(buffer: PendingEditBuffer) -> None:
        session[BUFFER_SESSION_KEY] = buffer.to_dict()

    def open_marking(subject_id: str, raw_date, *, confirmed: bool = False) -> AttendanceMarkingSession:
        container.subject_service.get_owned(subject_id, g.user_id)
        buffer = load_buffer(subject_id, raw_date, confirmed=confirmed)
        marking = container.attendance_service.open_session(buffer, marked_by=g.user_id)
        save_buffer(buffer)
        return marking

    def view_response(marking: AttendanceMarkingSession, status: int = 200, **extra):
        for query, what in ((marking.students, "students"), (marking.attendance, "attendance")):
            if query.error:
                return query_error_response(query, what)
        payload = marking.view(group_by=request.args.get("group_by", "roll"))
        payload.update(extra)
        return jsonify(payload), status

    @app.route("/subjects/<subject_id>/attendance", methods=["GET"], endpoint="attendance_view")
    @login_required
    def attendance_view(subject_id: str):
        try:
            marking = open_marking(subject_id, request.args.get("date"), confirmed=flag(request.args.get("confirm")))
            return view_response(marking)
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "loading attendance")

    @app.route("/subjects/<subject_id>/attendance/stage", methods=["POST"], endpoint="attendance_stage")
    @login_required
    def attendance_stage(subject_id: str):
        data = request_json()
        changes = data.get("changes")
        if changes is None:
            changes = [{"student_id": data.get("student_id"), "status": data.get("status")}]
        if not isinstance(changes, list) or not changes:
            return json_error("No changes given", 400)

        try:
            marking = open_marking(subject_id, data.get("date"), confirmed=flag(data.get("confirm")))
            for change in changes:
                marking.stage_change(str(change.get("student_id") or ""), change.get("status"))
            save_buffer(marking.buffer)
            return view_response(marking)
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "staging attendance")

    @app.route("/subjects/<subject_id>/attendance/submit", methods=["POST"], endpoint="attendance_submit")
    @login_required
    def attendance_submit(subject_id: str):
        data = request_json()
        try:
            marking = open_marking(subject_id, data.get("date"))
            result = marking.submit()
            save_buffer(marking.buffer)
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "saving attendance")

        status = 200 if result.ok else (409 if result.has_conflict else 502)
        if marking.attendance.error:
            # the writes are settled; only the reload failed
            payload = marking.view(group_by=request.args.get("group_by", "roll"))
            payload.update(submit=result.to_dict(), refetch_error=str(marking.attendance.error))
            return jsonify(payload), status
        return view_response(marking, status, submit=result.to_dict())

    @app.route("/subjects/<subject_id>/attendance/discard", methods=["POST"], endpoint="attendance_discard")
    @login_required
    def attendance_discard(subject_id: str):
        data = request_json()
        try:
            marking = open_marking(subject_id, data.get("date"))
            marking.discard()
            save_buffer(marking.buffer)
            return view_response(marking)
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "discarding changes")

    @app.route("/subjects/<subject_id>/attendance/leave", methods=["POST"], endpoint="attendance_leave")
    @login_required
    def attendance_leave(subject_id: str):
        data = request_json()
        try:
            marking = open_marking(subject_id, data.get("date"))
            marking.leave(confirmed=flag(data.get("confirm")))
            session.pop(BUFFER_SESSION_KEY, None)
            return jsonify({"ok": True})
        except DomainError as e:
            return domain_error_response(e)
        except Exception as e:
            return unexpected_error(app, e, "leaving the attendance view")
