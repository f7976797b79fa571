"""Request payload parsing for the device agent endpoints."""

from __future__ import annotations

from typing import Optional

from ..common.validators import FieldErrors
from ..core.constants import DEFAULT_PUNCH_TYPE
from ..core.enums import PunchState, SubjectKind
from .model import LegacyPunch, PunchEvent, SyncRequest

_PUNCH_STATES = tuple(s.value for s in PunchState)


def parse_sync_request(data: Optional[dict]) -> SyncRequest:
    """Validate the agent sync payload.

    Field-level problems reject the whole request; item-level problems
    (unknown ids, bad timestamps) are left to the per-record processing.
    """
    data = data if isinstance(data, dict) else {}
    errors = FieldErrors()

    device_id = errors.required(data, "device_id")
    device_name = errors.string(data, "device_name", required=True)
    device_ip = errors.string(data, "device_ip", required=True)
    serial_number = errors.string(data, "serial_number")
    attendance_data = errors.array(data, "attendance_data")
    absent_teachers = errors.array(data, "absent_teachers")
    absent_students = errors.array(data, "absent_students")
    sync_date = errors.iso_date(data, "sync_date")

    for i, item in enumerate(attendance_data):
        if not isinstance(item, dict):
            errors.add(f"attendance_data.{i}", f"The attendance_data.{i} must be an object.")

    errors.raise_if_any()
    return SyncRequest(
        device_id=str(device_id),
        device_name=device_name,
        device_ip=device_ip,
        serial_number=serial_number or None,
        attendance_data=attendance_data,
        absent_teachers=[str(x).strip() for x in absent_teachers if x is not None and str(x).strip()],
        absent_students=[str(x).strip() for x in absent_students if x is not None and str(x).strip()],
        sync_date=sync_date,
    )


def parse_legacy_batch(data: Optional[dict], *, with_type: bool) -> list[LegacyPunch]:
    """Validate ``{"attendance": [...]}`` batches.

    Every item needs employee_id, punch_time and punch_state (0/1); items
    carry ``type`` (teacher/student) only on the mixed endpoint.
    """
    data = data if isinstance(data, dict) else {}
    errors = FieldErrors()
    items = errors.array(data, "attendance", required=True)

    parsed: list[LegacyPunch] = []
    for i, item in enumerate(items):
        prefix = f"attendance.{i}"
        if not isinstance(item, dict):
            errors.add(prefix, f"The {prefix} must be an object.")
            continue

        item_errors = FieldErrors()
        employee_id = item_errors.string(item, "employee_id", required=True)
        punch_time = item_errors.timestamp(item, "punch_time", required=True)
        punch_state = item_errors.integer_in(item, "punch_state", _PUNCH_STATES, required=True)
        punch_type = item_errors.string(item, "punch_type")
        device_sn = item_errors.string(item, "device_sn")
        kind = None
        if with_type:
            raw_kind = item_errors.choice(item, "type", [k.value for k in SubjectKind], required=True)
            kind = SubjectKind(raw_kind) if raw_kind else None

        for field, messages in item_errors.items():
            for message in messages:
                errors.add(f"{prefix}.{field}", message.replace(f"The {field}", f"The {prefix}.{field}"))
        if item_errors:
            continue

        parsed.append(
            LegacyPunch(
                punch=PunchEvent(
                    device_id=employee_id,
                    punch_time=punch_time,
                    state=punch_state,
                    punch_type=punch_type or DEFAULT_PUNCH_TYPE,
                    device_sn=device_sn or None,
                ),
                kind=kind,
            )
        )

    errors.raise_if_any()
    return parsed
