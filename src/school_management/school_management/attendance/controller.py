from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, session

from ..common.web import (
    arg_date,
    arg_int,
    current_user_id,
    json_body,
    json_endpoint,
    roles_required,
)
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import Role, SubjectKind
from ..core.exceptions import AuthorizationError, ValidationError
from .payloads import parse_legacy_batch, parse_sync_request
from .service import record_to_dict


def _kind(value: str) -> SubjectKind:
    try:
        return SubjectKind(value)
    except ValueError:
        raise ValidationError("Invalid attendance type", {"type": ["The selected type is invalid."]})


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service
    staff_required = roles_required(Role.ADMIN, Role.TEACHER)
    portal_required = roles_required(Role.PARENT, Role.STUDENT)

    # ===== DEVICE AGENT =====

    @app.route("/api/zkteco/sync", methods=["POST"], endpoint="zkteco_sync")
    @json_endpoint("Failed to sync attendance")
    def zkteco_sync():
        result = service.sync(parse_sync_request(json_body()))
        errors = [e.to_dict() for e in result.all_errors]
        return jsonify(
            {
                "status": True,
                "success": True,
                "message": result.message,
                "summary": {
                    "processed": result.processed,
                    "total": result.total,
                    "absent_marked": result.absent_marked,
                    "errors": len(errors),
                },
                "errors": errors,
            }
        )

    def _batch_response(result):
        return jsonify(
            {
                "success": True,
                "message": f"Processed {result.processed} attendance records",
                "processed": result.processed,
                "errors": [e.to_dict() for e in result.errors],
            }
        )

    @app.route("/api/zkteco/attendance/store", methods=["POST"], endpoint="zkteco_store")
    @json_endpoint("Failed to store attendance")
    def zkteco_store():
        items = parse_legacy_batch(json_body(), with_type=True)
        return _batch_response(service.store_batch(items, update_device_status=True))

    @app.route("/api/zkteco/attendance/teacher", methods=["POST"], endpoint="zkteco_store_teacher")
    @json_endpoint("Failed to store teacher attendance")
    def zkteco_store_teacher():
        items = parse_legacy_batch(json_body(), with_type=False)
        return _batch_response(service.store_batch(items, kind=SubjectKind.TEACHER))

    @app.route("/api/zkteco/attendance/student", methods=["POST"], endpoint="zkteco_store_student")
    @json_endpoint("Failed to store student attendance")
    def zkteco_store_student():
        items = parse_legacy_batch(json_body(), with_type=False)
        return _batch_response(service.store_batch(items, kind=SubjectKind.STUDENT))

    @app.route("/api/zkteco/teachers", methods=["GET"], endpoint="zkteco_teachers")
    @json_endpoint("Failed to fetch teachers")
    def zkteco_teachers():
        data = service.teacher_roster()
        return jsonify({"success": True, "count": len(data), "data": data})

    @app.route("/api/zkteco/students", methods=["GET"], endpoint="zkteco_students")
    @json_endpoint("Failed to fetch students")
    def zkteco_students():
        data = service.student_roster()
        return jsonify({"success": True, "count": len(data), "data": data})

    # ===== STAFF MARKING =====

    @app.route("/admin/attendance/<kind>", methods=["GET"], endpoint="attendance_list")
    @staff_required
    @json_endpoint("Failed to load attendance")
    def attendance_list(kind: str):
        day = arg_date("date", container.clock.now().date())
        rows = service.list_for_date(
            _kind(kind),
            day,
            class_id=arg_int("class_id"),
            section_id=arg_int("section_id"),
        )
        return jsonify({"success": True, "date": day.isoformat(), "data": rows})

    @app.route("/admin/attendance/<kind>/<int:subject_id>", methods=["POST"], endpoint="attendance_mark")
    @staff_required
    @json_endpoint("Failed to mark attendance")
    def attendance_mark(kind: str, subject_id: int):
        record = service.mark_manual(_kind(kind), subject_id, json_body(), marked_by=current_user_id())
        return jsonify({"success": True, "message": "Attendance saved", "data": record_to_dict(record)})

    @app.route("/admin/attendance/<kind>/<int:subject_id>/history", methods=["GET"], endpoint="attendance_history")
    @staff_required
    @json_endpoint("Failed to load attendance history")
    def attendance_history(kind: str, subject_id: int):
        end = arg_date("end", container.clock.now().date())
        start = arg_date("start", end - timedelta(days=DEFAULT_HISTORY_LIMIT - 1))
        rows = service.history(_kind(kind), subject_id, start=start, end=end)
        return jsonify({"success": True, "data": rows})

    # ===== PORTAL =====

    @app.route("/portal/students/<int:student_id>/attendance", methods=["GET"], endpoint="portal_attendance")
    @portal_required
    @json_endpoint("Failed to load attendance")
    def portal_attendance(student_id: int):
        linked = {s.id for s in container.people_repo.list_students_for_user(current_user_id())}
        if student_id not in linked:
            raise AuthorizationError("You can only view your own students.")
        end = arg_date("end", container.clock.now().date())
        start = arg_date("start", end.replace(day=1))
        rows = service.history(SubjectKind.STUDENT, student_id, start=start, end=end)
        return jsonify({"success": True, "role": session.get("role"), "data": rows})
