from __future__ import annotations

from flask import Flask, jsonify

from ..common.validators import FieldErrors
from ..common.web import admin_required, json_body, json_endpoint
from ..container import Container
from .service import settings_to_dict


def register(app: Flask, container: Container) -> None:
    service = container.device_service

    @app.route("/api/zkteco/status", methods=["GET"], endpoint="zkteco_status")
    @json_endpoint("Failed to get device status")
    def zkteco_status():
        return jsonify({"success": True, "data": service.status()})

    @app.route("/api/zkteco/holidays", methods=["GET"], endpoint="zkteco_holidays")
    @json_endpoint("Failed to get holidays")
    def zkteco_holidays():
        settings = service.current_settings()
        return jsonify(
            {
                "success": True,
                "holidays": service.list_holidays(),
                "weekend_days": list(settings.weekend_days),
            }
        )

    @app.route("/api/zkteco/check-working-day", methods=["POST"], endpoint="zkteco_check_working_day")
    @json_endpoint("Failed to check working day")
    def zkteco_check_working_day():
        errors = FieldErrors()
        day = errors.iso_date(json_body(), "date", required=True)
        errors.raise_if_any()
        return jsonify({"success": True, **service.check_working_day(day)})

    # ===== ADMIN =====

    @app.route("/admin/device-settings", methods=["GET"], endpoint="device_settings_show")
    @admin_required
    @json_endpoint("Failed to load device settings")
    def device_settings_show():
        return jsonify({"success": True, "data": settings_to_dict(service.current_settings())})

    @app.route("/admin/device-settings", methods=["PUT", "POST"], endpoint="device_settings_update")
    @admin_required
    @json_endpoint("Failed to update device settings")
    def device_settings_update():
        service.update_settings(json_body())
        return jsonify(
            {
                "success": True,
                "message": "Device settings updated successfully",
                "data": settings_to_dict(service.current_settings()),
            }
        )

    @app.route("/admin/holidays", methods=["GET"], endpoint="holidays_index")
    @admin_required
    @json_endpoint("Failed to load holidays")
    def holidays_index():
        return jsonify({"success": True, "data": service.list_holidays()})

    @app.route("/admin/holidays", methods=["POST"], endpoint="holidays_store")
    @admin_required
    @json_endpoint("Failed to create holiday")
    def holidays_store():
        holiday_id = service.create_holiday(json_body())
        return jsonify({"success": True, "message": "Holiday created successfully", "id": holiday_id}), 201

    @app.route("/admin/holidays/<int:holiday_id>", methods=["PUT"], endpoint="holidays_update")
    @admin_required
    @json_endpoint("Failed to update holiday")
    def holidays_update(holiday_id: int):
        service.update_holiday(holiday_id, json_body())
        return jsonify({"success": True, "message": "Holiday updated successfully"})

    @app.route("/admin/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="holidays_destroy")
    @admin_required
    @json_endpoint("Failed to delete holiday")
    def holidays_destroy(holiday_id: int):
        service.delete_holiday(holiday_id)
        return jsonify({"success": True, "message": "Holiday deleted successfully"})
