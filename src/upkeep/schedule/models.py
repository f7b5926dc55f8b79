# src/upkeep/schedule/models.py

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import StrEnum
from typing import Any


class _Choice(StrEnum):
    """StrEnum with a lenient reader for values coming from the store."""

    @classmethod
    def default(cls) -> _Choice:
        return next(iter(cls))

    @classmethod
    def parse(cls, raw: Any) -> _Choice | None:
        """Strict lookup: None when raw is not one of the labels."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            return None
        try:
            return cls(raw.strip())
        except ValueError:
            return None

    @classmethod
    def from_raw(cls, raw: Any) -> _Choice:
        found = cls.parse(raw)
        return cls.default() if found is None else found


class Category(_Choice):
    """Recurrence interval of a task. The first member is the form default."""

    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    HALF_YEAR = "Half-Year"
    YEARLY = "Yearly"


class ActivityType(_Choice):
    PREVENTIVE = "Preventive"
    CORRECTIVE = "Corrective"
    PREDICTIVE = "Predictive"
    BREAKDOWN = "Breakdown"


class Priority(_Choice):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @classmethod
    def default(cls) -> Priority:
        return cls.MEDIUM


class Downtime(_Choice):
    NO = "No"
    MINOR = "Yes - Minor"
    MAJOR = "Yes - Major"


class TaskStatus(StrEnum):
    """
    Due status of a task, derived from next_service_date and today.

    Notes:
    - never persisted; recompute on every read
    - "ongoing" is the internal key for "due today"
    """

    NODATE = "nodate"
    OVERDUE = "overdue"
    ONGOING = "ongoing"
    UPCOMING = "upcoming"
    PENDING = "pending"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    TaskStatus.NODATE: "—",
    TaskStatus.OVERDUE: "Overdue",
    TaskStatus.ONGOING: "Due Today",
    TaskStatus.UPCOMING: "Upcoming",
    TaskStatus.PENDING: "Pending",
}

# Python attribute -> store record key.
RECORD_KEYS: dict[str, str] = {
    "task_name": "taskName",
    "category": "category",
    "activity_type": "activityType",
    "priority": "priority",
    "machine": "machine",
    "location": "location",
    "estimated_man_hours": "estimatedManHours",
    "downtime_required": "downtimeRequired",
    "maintenance_checklist": "maintenanceChecklist",
    "description": "description",
    "risk_if_not_done": "riskIfNotDone",
    "last_service_date": "lastServiceDate",
    "next_service_date": "nextServiceDate",
    "created_at": "createdAt",
}

CHOICE_FIELDS: dict[str, type[_Choice]] = {
    "category": Category,
    "activity_type": ActivityType,
    "priority": Priority,
    "downtime_required": Downtime,
}

DATE_FIELDS = ("last_service_date", "next_service_date", "created_at")


def _text(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw)


def _optional_text(raw: Any) -> str | None:
    if raw is None:
        return None
    s = str(raw).strip()
    return s or None


@dataclass(slots=True)
class MaintenanceTask:
    id: str
    task_name: str
    category: Category

    activity_type: ActivityType = ActivityType.PREVENTIVE
    priority: Priority = Priority.MEDIUM
    machine: str = ""
    location: str = ""
    estimated_man_hours: str = ""
    downtime_required: Downtime = Downtime.NO

    maintenance_checklist: str = ""
    description: str = ""
    risk_if_not_done: str = ""

    # "YYYY-MM-DD" or None. Kept as stored; malformed values are tolerated on read.
    last_service_date: str | None = None
    next_service_date: str | None = None
    created_at: str | None = None

    @classmethod
    def from_record(cls, key: str, record: Mapping[str, Any]) -> MaintenanceTask:
        # Older records used "name" before "taskName" existed.
        name = record.get("taskName") or record.get("name") or ""
        return cls(
            id=str(key),
            task_name=_text(name),
            category=Category.from_raw(record.get("category")),
            activity_type=ActivityType.from_raw(record.get("activityType")),
            priority=Priority.from_raw(record.get("priority")),
            machine=_text(record.get("machine")),
            location=_text(record.get("location")),
            estimated_man_hours=_text(record.get("estimatedManHours")),
            downtime_required=Downtime.from_raw(record.get("downtimeRequired")),
            maintenance_checklist=_text(record.get("maintenanceChecklist")),
            description=_text(record.get("description")),
            risk_if_not_done=_text(record.get("riskIfNotDone")),
            last_service_date=_optional_text(record.get("lastServiceDate")),
            next_service_date=_optional_text(record.get("nextServiceDate")),
            created_at=_optional_text(record.get("createdAt")),
        )

    def to_record(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "id":
                continue
            value = getattr(self, f.name)
            if f.name in DATE_FIELDS and value is None:
                continue
            out[RECORD_KEYS[f.name]] = value.value if isinstance(value, StrEnum) else value
        return out


@dataclass(slots=True, frozen=True)
class CompletionUpdate:
    """Fields written by a completion event."""

    last_service_date: str
    next_service_date: str

    def to_record(self) -> dict[str, str]:
        return {
            "lastServiceDate": self.last_service_date,
            "nextServiceDate": self.next_service_date,
        }


@dataclass(slots=True)
class Machine:
    id: str
    name: str = ""
    code: str = ""
    location: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.code or self.id

    @classmethod
    def from_record(cls, key: str, record: Mapping[str, Any]) -> Machine:
        return cls(
            id=str(key),
            name=_text(record.get("name")),
            code=_text(record.get("code")),
            location=_text(record.get("location")),
        )
