from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.guards import current_user, make_login_required, roles_required
from ..common.http import json_body
from ..container import Container
from ..core.enums import Role
from .model import break_to_dict, record_to_dict
from .service import AttendanceHistory


def _history_payload(history: AttendanceHistory) -> dict:
    return {
        "start": history.start.isoformat(),
        "end": history.end.isoformat(),
        "records": [record_to_dict(r) for r in history.records],
        "summary": {
            "days": history.summary.days,
            "workedMs": history.summary.worked_ms,
            "breakMs": history.summary.break_ms,
        },
    }


def register(app: Flask, container: Container) -> None:
    login_required = make_login_required(container.auth_service)
    service = container.attendance_service

    @app.post("/attendance/check-in")
    @login_required
    def check_in():
        record = service.check_in(current_user().user_id)
        return jsonify({"message": "Checked in successfully", "attendance": record_to_dict(record)}), 201

    @app.post("/attendance/breaks/start")
    @login_required
    def start_break():
        data = json_body()
        me = current_user()
        entry = service.start_break(me.user_id, category=data.get("type"), reason=data.get("reason"), actor_id=me.user_id)
        return jsonify({"message": "Break started", "break": break_to_dict(entry)}), 201

    @app.post("/attendance/breaks/end")
    @login_required
    def end_break():
        record = service.end_break(current_user().user_id)
        return jsonify({"message": "Break ended", "attendance": record_to_dict(record)})

    @app.post("/attendance/check-out")
    @login_required
    def check_out():
        record = service.check_out(current_user().user_id)
        return jsonify({"message": "Checked out successfully", "attendance": record_to_dict(record)})

    @app.get("/attendance/today")
    @login_required
    def today():
        record = service.get_today(current_user().user_id)
        return jsonify({"attendance": record_to_dict(record) if record else None})

    @app.get("/attendance/history")
    @login_required
    def history():
        result = service.get_history(
            current_user().user_id, start=request.args.get("start"), end=request.args.get("end")
        )
        return jsonify(_history_payload(result))

    @app.get("/attendance/users/<int:user_id>/today")
    @login_required
    @roles_required(Role.ADMIN, Role.MANAGER)
    def user_today(user_id: int):
        record = service.get_today_for(current_user(), user_id)
        return jsonify({"attendance": record_to_dict(record) if record else None})

    @app.get("/attendance/users/<int:user_id>/history")
    @login_required
    @roles_required(Role.ADMIN, Role.MANAGER)
    def user_history(user_id: int):
        result = service.get_history_for(
            current_user(), user_id, start=request.args.get("start"), end=request.args.get("end")
        )
        return jsonify(_history_payload(result))

    @app.post("/attendance/users/<int:user_id>/breaks/start")
    @login_required
    @roles_required(Role.ADMIN, Role.MANAGER)
    def user_start_break(user_id: int):
        data = json_body()
        entry = service.start_break_for(current_user(), user_id, category=data.get("type"), reason=data.get("reason"))
        return jsonify({"message": "Break started", "break": break_to_dict(entry)}), 201

    @app.post("/attendance/users/<int:user_id>/breaks/end")
    @login_required
    @roles_required(Role.ADMIN, Role.MANAGER)
    def user_end_break(user_id: int):
        record = service.end_break_for(current_user(), user_id)
        return jsonify({"message": "Break ended", "attendance": record_to_dict(record)})

    @app.patch("/attendance/<int:attendance_id>")
    @login_required
    @roles_required(Role.ADMIN)
    def correct_record(attendance_id: int):
        record = service.correct_record(current_user(), attendance_id, json_body())
        return jsonify({"message": "Attendance updated", "attendance": record_to_dict(record)})
