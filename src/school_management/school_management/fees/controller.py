from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify

from ..common.web import admin_required, arg_int, current_user_id, json_body, json_endpoint, roles_required
from ..container import Container
from ..core.enums import Role
from .service import collection_to_dict


def register(app: Flask, container: Container) -> None:
    structures = container.fee_structure_service
    waivers = container.fee_waiver_service
    collections = container.fee_collection_service
    portal_required = roles_required(Role.PARENT, Role.STUDENT)

    @app.route("/admin/fee-types", methods=["GET"], endpoint="fee_types_index")
    @admin_required
    @json_endpoint("Failed to load fee types")
    def fee_types_index():
        return jsonify({"success": True, "data": structures.list_fee_types()})

    @app.route("/admin/fee-structures", methods=["GET"], endpoint="fee_structures_index")
    @admin_required
    @json_endpoint("Failed to load fee structures")
    def fee_structures_index():
        return jsonify({"success": True, "data": structures.list_structures(arg_int("academic_year_id"))})

    @app.route("/admin/fee-structures", methods=["POST"], endpoint="fee_structures_store")
    @admin_required
    @json_endpoint("Failed to create fee structure")
    def fee_structures_store():
        structure_id = structures.create_structure(json_body())
        return jsonify({"success": True, "message": "Fee structure created successfully", "id": structure_id}), 201

    @app.route("/admin/fee-structures/<int:structure_id>", methods=["PUT"], endpoint="fee_structures_update")
    @admin_required
    @json_endpoint("Failed to update fee structure")
    def fee_structures_update(structure_id: int):
        structures.update_structure(structure_id, json_body())
        return jsonify({"success": True, "message": "Fee structure updated successfully"})

    @app.route("/admin/fee-waivers", methods=["GET"], endpoint="fee_waivers_index")
    @admin_required
    @json_endpoint("Failed to load fee waivers")
    def fee_waivers_index():
        return jsonify({"success": True, "data": waivers.list_waivers(arg_int("student_id"))})

    @app.route("/admin/fee-waivers", methods=["POST"], endpoint="fee_waivers_store")
    @admin_required
    @json_endpoint("Failed to create fee waiver")
    def fee_waivers_store():
        waiver_id = waivers.create_waiver(json_body(), approved_by=current_user_id())
        return jsonify({"success": True, "message": "Fee waiver created successfully", "id": waiver_id}), 201

    @app.route("/admin/fee-waivers/<int:waiver_id>", methods=["PUT"], endpoint="fee_waivers_update")
    @admin_required
    @json_endpoint("Failed to update fee waiver")
    def fee_waivers_update(waiver_id: int):
        waivers.update_waiver(waiver_id, json_body(), approved_by=current_user_id())
        return jsonify({"success": True, "message": "Fee waiver updated successfully"})

    @app.route("/admin/fee-waivers/<int:waiver_id>", methods=["DELETE"], endpoint="fee_waivers_destroy")
    @admin_required
    @json_endpoint("Failed to delete fee waiver")
    def fee_waivers_destroy(waiver_id: int):
        waivers.delete_waiver(waiver_id)
        return jsonify({"success": True, "message": "Fee waiver deleted successfully"})

    @app.route("/admin/fees/generate", methods=["POST"], endpoint="fees_generate")
    @admin_required
    @json_endpoint("Failed to generate fees")
    def fees_generate():
        data = json_body()
        report = container.fee_generation_service.generate(month=data.get("month"), year=data.get("year"))
        return jsonify({"success": True, "data": asdict(report)})

    @app.route("/admin/fees/update-overdue", methods=["POST"], endpoint="fees_update_overdue")
    @admin_required
    @json_endpoint("Failed to update overdue fees")
    def fees_update_overdue():
        report = container.overdue_service.update_overdue()
        return jsonify({"success": True, "data": asdict(report)})

    @app.route("/admin/fees/overdue", methods=["GET"], endpoint="fees_overdue")
    @admin_required
    @json_endpoint("Failed to load overdue fees")
    def fees_overdue():
        return jsonify({"success": True, "data": collections.list_overdue()})

    @app.route("/admin/fees/<int:fee_id>/payments", methods=["POST"], endpoint="fees_pay")
    @admin_required
    @json_endpoint("Failed to record payment")
    def fees_pay(fee_id: int):
        fee = collections.record_payment(fee_id, json_body(), collected_by=current_user_id())
        return jsonify({"success": True, "message": "Payment recorded successfully", "data": collection_to_dict(fee)})

    @app.route("/portal/fees", methods=["GET"], endpoint="portal_fees")
    @portal_required
    @json_endpoint("Failed to load dues")
    def portal_fees():
        return jsonify({"success": True, "data": collections.dues_for_user(current_user_id())})
