from __future__ import annotations

from flask import Flask, jsonify

from ..common.validators import FieldErrors
from ..common.web import admin_required, json_body, json_endpoint, login_required
from ..container import Container


def _year_to_dict(y) -> dict:
    return {
        "id": y.id,
        "year": y.year,
        "start_date": y.start_date.isoformat(),
        "end_date": y.end_date.isoformat(),
        "is_current": y.is_current,
    }


def register(app: Flask, container: Container) -> None:
    academics = container.academic_repo

    @app.route("/admin/academic-years", methods=["GET"], endpoint="academic_years_index")
    @admin_required
    @json_endpoint("Failed to load academic years")
    def academic_years_index():
        return jsonify({"success": True, "data": [_year_to_dict(y) for y in academics.list_years()]})

    @app.route("/admin/academic-years", methods=["POST"], endpoint="academic_years_store")
    @admin_required
    @json_endpoint("Failed to create academic year")
    def academic_years_store():
        data = json_body()
        errors = FieldErrors()
        year = errors.string(data, "year", required=True)
        start_date = errors.iso_date(data, "start_date", required=True)
        end_date = errors.iso_date(data, "end_date", required=True)
        errors.raise_if_any()
        year_id = container.academic_service.create_year(year=year, start_date=start_date, end_date=end_date)
        return jsonify({"success": True, "message": "Academic year created successfully", "id": year_id}), 201

    @app.route("/admin/academic-years/<int:year_id>/current", methods=["PUT"], endpoint="academic_years_current")
    @admin_required
    @json_endpoint("Failed to set current academic year")
    def academic_years_current(year_id: int):
        container.academic_service.set_current(year_id)
        return jsonify({"success": True, "message": "Current academic year updated"})

    @app.route("/classes", methods=["GET"], endpoint="classes_index")
    @login_required
    @json_endpoint("Failed to load classes")
    def classes_index():
        data = [
            {"id": c.id, "name": c.name, "numeric_value": c.numeric_value, "status": c.status.value}
            for c in academics.list_classes()
        ]
        return jsonify({"success": True, "data": data})

    @app.route("/classes/<int:class_id>/sections", methods=["GET"], endpoint="sections_index")
    @login_required
    @json_endpoint("Failed to load sections")
    def sections_index(class_id: int):
        data = [
            {"id": s.id, "class_id": s.class_id, "name": s.name, "status": s.status.value}
            for s in academics.list_sections(class_id)
        ]
        return jsonify({"success": True, "data": data})
