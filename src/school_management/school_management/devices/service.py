from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..common.datetime_utils import Clock, SystemClock, parse_clock_time
from ..common.validators import FieldErrors, require_non_empty
from ..core.exceptions import NotFoundError
from .model import DeviceSettings
from .repository import DeviceRepository

logger = logging.getLogger(__name__)

_TIME_FIELDS = (
    "teacher_in_time",
    "teacher_out_time",
    "teacher_late_time",
    "student_in_time",
    "student_out_time",
    "student_late_time",
)
_FLAG_FIELDS = ("auto_mark_present", "auto_mark_absent", "auto_mark_late", "auto_mark_early_leave")


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


class DeviceService:
    """Use case: device settings, sync status and the holiday calendar."""

    def __init__(self, devices: DeviceRepository, *, clock: Optional[Clock] = None):
        self._devices = devices
        self._clock = clock or SystemClock()

    def current_settings(self) -> DeviceSettings:
        return self._devices.get_settings()

    def status(self) -> dict:
        st = self._devices.get_status()
        return {
            "device_name": st.device_name,
            "device_ip": st.device_ip,
            "device_port": st.device_port,
            "last_sync_at": st.last_sync_at.isoformat() if st.last_sync_at else None,
            "last_sync_status": st.last_sync_status.value if st.last_sync_status else None,
            "last_sync_message": st.last_sync_message,
            "last_sync_records": st.last_sync_records,
            "last_sync_formatted": st.last_sync_formatted(self._clock.now()),
        }

    def check_working_day(self, day: date) -> dict:
        settings = self._devices.get_settings()
        is_weekend = settings.is_weekend(day)
        is_holiday = settings.is_holiday(day)
        holiday = self._devices.get_holiday_on(day) if is_holiday else None
        return {
            "date": day.isoformat(),
            "is_weekend": is_weekend,
            "is_holiday": is_holiday,
            "is_working_day": not is_weekend and not is_holiday,
            "holiday": holiday_to_dict(holiday) if holiday else None,
        }

    def update_settings(self, data: dict) -> None:
        """Partial update: only keys present in ``data`` are validated and written."""
        errors = FieldErrors()
        fields: dict = {}

        for key in ("device_name", "device_ip"):
            if key in data:
                value = errors.string(data, key, required=True)
                if value:
                    fields[key] = value

        for key in ("device_port", "student_late_threshold"):
            if key in data and data[key] not in (None, ""):
                try:
                    number = int(data[key])
                except (TypeError, ValueError):
                    errors.add(key, f"The {key} must be an integer.")
                    continue
                if number < 0:
                    errors.add(key, f"The {key} must be at least 0.")
                    continue
                fields[key] = number

        for key in _TIME_FIELDS:
            if key in data:
                if data[key] in (None, ""):
                    fields[key] = None
                    continue
                try:
                    fields[key] = parse_clock_time(str(data[key]))
                except ValueError:
                    errors.add(key, f"The {key} must be a time (HH:MM).")

        if "weekend_days" in data:
            days = errors.array(data, "weekend_days")
            try:
                parsed = [int(d) for d in days]
            except (TypeError, ValueError):
                parsed = []
                errors.add("weekend_days", "The weekend_days must contain integers.")
            if any(d < 0 or d > 6 for d in parsed):
                errors.add("weekend_days", "The weekend_days must be between 0 (Sunday) and 6 (Saturday).")
            else:
                fields["weekend_days"] = parsed

        for key in _FLAG_FIELDS:
            if key in data:
                fields[key] = _as_bool(data[key])

        errors.raise_if_any()
        self._devices.update_settings(fields)
        logger.info("Device settings updated: %s", sorted(fields))

    # Holidays

    def list_holidays(self) -> list[dict]:
        return [holiday_to_dict(h) for h in self._devices.list_active_holidays()]

    def _holiday_fields(self, data: dict) -> dict:
        errors = FieldErrors()
        name = errors.string(data, "name", required=True)
        day = errors.iso_date(data, "date", required=True)
        errors.raise_if_any()
        return {
            "name": require_non_empty(name, "name"),
            "day": day,
            "type": (data.get("type") or "").strip() or None,
            "description": (data.get("description") or "").strip() or None,
            "is_active": _as_bool(data.get("is_active", True)),
        }

    def create_holiday(self, data: dict) -> int:
        return self._devices.create_holiday(**self._holiday_fields(data))

    def update_holiday(self, holiday_id: int, data: dict) -> None:
        if not self._devices.get_holiday(int(holiday_id)):
            raise NotFoundError("Holiday not found")
        self._devices.update_holiday(holiday_id=int(holiday_id), **self._holiday_fields(data))

    def delete_holiday(self, holiday_id: int) -> None:
        if not self._devices.delete_holiday(int(holiday_id)):
            raise NotFoundError("Holiday not found")


def holiday_to_dict(h) -> dict:
    return {
        "id": h.id,
        "name": h.name,
        "date": h.date.isoformat(),
        "type": h.type,
        "description": h.description,
        "is_active": h.is_active,
    }


def settings_to_dict(s: DeviceSettings) -> dict:
    def _t(value) -> Optional[str]:
        return value.strftime("%H:%M:%S") if value else None

    return {
        "device_name": s.device_name,
        "device_ip": s.device_ip,
        "device_port": s.device_port,
        **{key: _t(getattr(s, key)) for key in _TIME_FIELDS},
        "student_late_threshold": s.student_late_threshold,
        "weekend_days": list(s.weekend_days),
        **{key: getattr(s, key) for key in _FLAG_FIELDS},
    }
