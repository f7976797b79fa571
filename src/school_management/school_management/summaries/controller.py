from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import arg_int, json_body, json_endpoint, roles_required
from ..container import Container
from ..core.enums import Role
from .service import summary_to_dict


def register(app: Flask, container: Container) -> None:
    service = container.summary_service
    staff_required = roles_required(Role.ADMIN, Role.TEACHER)

    @app.route("/admin/attendance-summaries", methods=["GET"], endpoint="summaries_index")
    @staff_required
    @json_endpoint("Failed to load attendance summaries")
    def summaries_index():
        rows = service.list(
            class_id=arg_int("class_id"),
            academic_year_id=arg_int("academic_year_id"),
            month=arg_int("month"),
            year=arg_int("year"),
        )
        return jsonify({"success": True, "data": rows})

    @app.route("/admin/attendance-summaries/generate", methods=["POST"], endpoint="summaries_generate")
    @staff_required
    @json_endpoint("Failed to generate summary")
    def summaries_generate():
        rows = service.generate(json_body())
        return jsonify(
            {
                "success": True,
                "message": "Attendance summary generated successfully",
                "data": [summary_to_dict(s) for s in rows],
            }
        )

    @app.route("/admin/attendance-summaries/class", methods=["GET"], endpoint="summaries_class")
    @staff_required
    @json_endpoint("Failed to load class summary")
    def summaries_class():
        return jsonify({"success": True, **service.class_view(request.args.to_dict())})

    @app.route("/admin/attendance-summaries/student/<int:student_id>", methods=["GET"], endpoint="summaries_student")
    @staff_required
    @json_endpoint("Failed to load student summary")
    def summaries_student(student_id: int):
        return jsonify({"success": True, "data": service.for_student(student_id)})

    @app.route("/admin/attendance-summaries/<int:summary_id>", methods=["DELETE"], endpoint="summaries_destroy")
    @staff_required
    @json_endpoint("Failed to delete summary")
    def summaries_destroy(summary_id: int):
        service.delete(summary_id)
        return jsonify({"success": True, "message": "Attendance summary deleted successfully"})
