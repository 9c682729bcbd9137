from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_caller, failure_response, permission_required, result_response, to_jsonable
from ..container import Container
from ..core.enums import Permission, Reason, RegistrationStatus
from ..core.result import invalid
from .schemas import parse_new_session, parse_session_changes, parse_session_query


def register(app: Flask, container: Container) -> None:
    sessions = container.session_service
    registrations = container.registration_service
    attendance = container.attendance_service

    def _forbidden(message: str):
        return jsonify({"success": False, "message": message}), 403

    def _person_from_body(body: dict):
        caller = current_caller()
        raw = body.get("person_id", caller.person_id if caller else None)
        try:
            return int(raw), None
        except (TypeError, ValueError):
            return None, failure_response(invalid(Reason.INVALID_VALUE, "person_id must be an integer", field="person_id"))

    @app.route("/api/fmpa/sessions", methods=["GET"], endpoint="fmpa_sessions_list")
    @permission_required(Permission.SESSION_READ)
    def list_sessions():
        parsed = parse_session_query(request.args)
        if not parsed.ok:
            return failure_response(parsed.error)
        filters, page = parsed.value
        result = sessions.list(filters, page)
        if not result.ok:
            return failure_response(result.error)
        return jsonify(
            {
                "success": True,
                "data": to_jsonable(list(result.value.items)),
                "pagination": result.value.pagination,
            }
        )

    @app.route("/api/fmpa/sessions", methods=["POST"], endpoint="fmpa_sessions_create")
    @permission_required(Permission.SESSION_WRITE)
    def create_session():
        parsed = parse_new_session(request.get_json(silent=True) or {})
        if not parsed.ok:
            return failure_response(parsed.error)
        return result_response(sessions.create(parsed.value), status=201)

    @app.route("/api/fmpa/sessions/<int:session_id>", methods=["GET"], endpoint="fmpa_sessions_get")
    @permission_required(Permission.SESSION_READ)
    def get_session(session_id: int):
        return result_response(sessions.get(session_id))

    @app.route("/api/fmpa/sessions/<int:session_id>", methods=["PUT"], endpoint="fmpa_sessions_update")
    @permission_required(Permission.SESSION_WRITE)
    def update_session(session_id: int):
        parsed = parse_session_changes(request.get_json(silent=True) or {})
        if not parsed.ok:
            return failure_response(parsed.error)
        return result_response(sessions.update(session_id, parsed.value))

    @app.route("/api/fmpa/sessions/<int:session_id>", methods=["DELETE"], endpoint="fmpa_sessions_delete")
    @permission_required(Permission.SESSION_DELETE)
    def delete_session(session_id: int):
        return result_response(sessions.delete(session_id))

    @app.route(
        "/api/fmpa/sessions/<int:session_id>/registrations",
        methods=["POST"],
        endpoint="fmpa_registrations_create",
    )
    @permission_required(Permission.SESSION_READ)
    def register_person(session_id: int):
        person_id, error = _person_from_body(request.get_json(silent=True) or {})
        if error:
            return error
        if not current_caller().can_act_for(person_id):
            return _forbidden("You can only register yourself")
        return result_response(registrations.register(session_id, person_id), status=201)

    @app.route(
        "/api/fmpa/sessions/<int:session_id>/registrations/<int:person_id>",
        methods=["DELETE"],
        endpoint="fmpa_registrations_delete",
    )
    @permission_required(Permission.SESSION_READ)
    def withdraw_person(session_id: int, person_id: int):
        if not current_caller().can_act_for(person_id):
            return _forbidden("You can only withdraw yourself")
        return result_response(registrations.withdraw(session_id, person_id))

    @app.route("/api/fmpa/sessions/<int:session_id>/attendance", methods=["POST"], endpoint="fmpa_attendance_mark")
    @permission_required(Permission.ATTENDANCE_MARK)
    def mark_attendance(session_id: int):
        body = request.get_json(silent=True) or {}
        try:
            person_id = int(body.get("person_id"))
        except (TypeError, ValueError):
            return failure_response(invalid(Reason.MISSING_FIELD, "person_id is required", field="person_id"))
        try:
            status = RegistrationStatus(str(body.get("status", "")).upper())
        except ValueError:
            return failure_response(
                invalid(
                    Reason.INVALID_VALUE,
                    f"status must be one of {', '.join(s.value for s in RegistrationStatus)}",
                    field="status",
                )
            )
        return result_response(
            attendance.mark_attendance(
                session_id,
                person_id,
                status,
                validated_hours=body.get("validated_hours"),
                signature=body.get("signature"),
            )
        )
