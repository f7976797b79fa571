from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Optional

from ..core.exceptions import ValidationError
from .datetime_utils import parse_iso_date, parse_timestamp


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required", {field_name: [f"The {field_name} field is required."]})
    return str(value).strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(
            f"{field_name} must be at least {min_len} characters",
            {field_name: [f"The {field_name} must be at least {min_len} characters."]},
        )
    return value


class FieldErrors:
    """Collects per-field messages so a payload can be rejected as a whole."""

    def __init__(self) -> None:
        self._errors: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self._errors.setdefault(field, []).append(message)

    def __bool__(self) -> bool:
        return bool(self._errors)

    def items(self):
        return self._errors.items()

    def raise_if_any(self, message: str = "The given data was invalid.") -> None:
        if self._errors:
            raise ValidationError(message, self._errors)

    def required(self, data: dict, field: str) -> Any:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            self.add(field, f"The {field} field is required.")
            return None
        return value

    def string(self, data: dict, field: str, *, required: bool = False) -> Optional[str]:
        value = self.required(data, field) if required else data.get(field)
        if value is None:
            return None
        if not isinstance(value, str):
            self.add(field, f"The {field} must be a string.")
            return None
        return value.strip()

    def array(self, data: dict, field: str, *, required: bool = False) -> list:
        value = self.required(data, field) if required else data.get(field)
        if value is None:
            return []
        if not isinstance(value, list):
            self.add(field, f"The {field} must be an array.")
            return []
        return value

    def iso_date(self, data: dict, field: str, *, required: bool = False) -> Optional[date]:
        value = self.string(data, field, required=required)
        if not value:
            return None
        try:
            return parse_iso_date(value)
        except ValueError:
            self.add(field, f"The {field} is not a valid date.")
            return None

    def timestamp(self, data: dict, field: str, *, required: bool = False) -> Optional[datetime]:
        value = self.string(data, field, required=required)
        if not value:
            return None
        try:
            return parse_timestamp(value)
        except ValueError:
            self.add(field, f"The {field} is not a valid date.")
            return None

    def integer(self, data: dict, field: str, *, required: bool = False) -> Optional[int]:
        value = self.required(data, field) if required else data.get(field)
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            self.add(field, f"The {field} must be an integer.")
            return None

    def integer_in(self, data: dict, field: str, allowed: Iterable[int], *, required: bool = False) -> Optional[int]:
        number = self.integer(data, field, required=required)
        if number is None:
            return None
        allowed = tuple(allowed)
        if number not in allowed:
            self.add(field, f"The selected {field} is invalid.")
            return None
        return number

    def choice(self, data: dict, field: str, allowed: Iterable[str], *, required: bool = False) -> Optional[str]:
        value = self.string(data, field, required=required)
        if value is None:
            return None
        if value not in tuple(allowed):
            self.add(field, f"The selected {field} is invalid.")
            return None
        return value
