from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SyncStatus
from .model import DeviceSettings, DeviceStatus, Holiday


class DeviceRepository(Protocol):
    def get_settings(self) -> DeviceSettings:
        """Load the singleton settings row (created with defaults when missing).

        The returned value carries the active holiday dates.
        """

        raise NotImplementedError

    def update_settings(self, fields: dict) -> None:
        raise NotImplementedError

    def get_status(self) -> DeviceStatus:
        raise NotImplementedError

    def record_sync(
        self,
        *,
        at: datetime,
        status: SyncStatus,
        records: int,
        message: str,
        device_name: Optional[str] = None,
        device_ip: Optional[str] = None,
    ) -> None:
        raise NotImplementedError

    def list_active_holidays(self) -> Sequence[Holiday]:
        raise NotImplementedError

    def get_holiday(self, holiday_id: int) -> Optional[Holiday]:
        raise NotImplementedError

    def get_holiday_on(self, day: date) -> Optional[Holiday]:
        raise NotImplementedError

    def create_holiday(
        self,
        *,
        name: str,
        day: date,
        type: Optional[str],
        description: Optional[str],
        is_active: bool,
    ) -> int:
        raise NotImplementedError

    def update_holiday(
        self,
        *,
        holiday_id: int,
        name: str,
        day: date,
        type: Optional[str],
        description: Optional[str],
        is_active: bool,
    ) -> bool:
        raise NotImplementedError

    def delete_holiday(self, holiday_id: int) -> bool:
        raise NotImplementedError
