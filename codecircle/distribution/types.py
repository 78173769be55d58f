from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class GroupRunOutcome(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    ALREADY_RAN = "ALREADY_RAN"
    INELIGIBLE = "INELIGIBLE"
    GROUP_MISSING = "GROUP_MISSING"


@dataclass(frozen=True, slots=True)
class DueCode:
    code_id: int
    owner_id: int
    day_number: int
    views_per_day: int


@dataclass(slots=True)
class CodeDistributionOutcome:
    code_id: int
    owner_id: int
    day_number: int
    target: int
    already_assigned: int
    assigned_viewer_ids: list[int]
    duplicates: int = 0
    failed: bool = False

    @property
    def assigned_total(self) -> int:
        return len(self.assigned_viewer_ids)


@dataclass(frozen=True, slots=True)
class GroupDistributionResult:
    group_id: int
    local_date: date
    outcome: GroupRunOutcome
    next_day: int | None = None
    codes_total: int = 0
    codes_distributed: int = 0
    codes_failed: int = 0
    assignments_created: int = 0
    viewers_notified: int = 0
    reason: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "group_id": self.group_id,
            "local_date": self.local_date.isoformat(),
            "outcome": self.outcome.value,
            "next_day": self.next_day,
            "codes_total": self.codes_total,
            "codes_distributed": self.codes_distributed,
            "codes_failed": self.codes_failed,
            "assignments_created": self.assignments_created,
            "viewers_notified": self.viewers_notified,
            "reason": self.reason,
        }
