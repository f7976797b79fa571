from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import SubjectKind
from .strategies.base import AttendanceStrategy
from .strategies.student_strategy import StudentStrategy
from .strategies.teacher_strategy import TeacherStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose the reconciliation rules for a subject kind."""

    def for_subject(self, kind: SubjectKind) -> AttendanceStrategy:
        if kind == SubjectKind.TEACHER:
            return TeacherStrategy()
        if kind == SubjectKind.STUDENT:
            return StudentStrategy()
        raise ValueError(f"Unsupported attendance subject: {kind!r}")


def apply_punch(record, punch, settings, *, factory: AttendanceStrategyFactory | None = None):
    """Reconcile one punch into a record for its subject kind."""
    return (factory or AttendanceStrategyFactory()).for_subject(record.kind).apply(record, punch, settings)
