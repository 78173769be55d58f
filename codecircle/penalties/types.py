from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class PenaltyKind(str, Enum):
    USAGE = "USAGE"
    CONFIRMATION = "CONFIRMATION"


class PenaltyStage(str, Enum):
    CLEAN = "CLEAN"
    WARNED = "WARNED"
    SUSPENDED = "SUSPENDED"
    DELETED = "DELETED"


@dataclass(frozen=True, slots=True)
class PenaltyThresholds:
    warn_streak: int = 1
    suspend_streak: int = 2
    delete_streak: int = 3
    suspension_days: int = 2

    @classmethod
    def from_settings(cls, settings) -> PenaltyThresholds:
        return cls(
            warn_streak=settings.penalty_warn_streak,
            suspend_streak=settings.penalty_suspend_streak,
            delete_streak=settings.penalty_delete_streak,
            suspension_days=settings.penalty_suspension_days,
        )


@dataclass(slots=True)
class PenaltySnapshot:
    miss_streak: int
    codes_suspended: bool
    last_miss_date: date | None


@dataclass(frozen=True, slots=True)
class PenaltyTransition:
    member_id: int
    kind: PenaltyKind
    miss_streak: int
    stage: PenaltyStage
    counted: bool
    codes_suspended_now: int = 0


@dataclass(frozen=True, slots=True)
class PurgeResult:
    member_id: int
    assignments_deleted: int
    codes_deleted: int
    penalty_rows_deleted: int
    members_deleted: int


@dataclass(slots=True)
class CheckpointSummary:
    local_date: date
    codes_reactivated_owners: int = 0
    confirmation_misses: int = 0
    usage_misses: int = 0
    assignments_carried: int = 0
    warned: int = 0
    suspended: int = 0
    purged: int = 0
    purge_failed: int = 0
    members_failed: int = 0
    notifications_sent: int = 0

    def as_dict(self) -> dict[str, object]:
        return {
            "local_date": self.local_date.isoformat(),
            "codes_reactivated_owners": self.codes_reactivated_owners,
            "confirmation_misses": self.confirmation_misses,
            "usage_misses": self.usage_misses,
            "assignments_carried": self.assignments_carried,
            "warned": self.warned,
            "suspended": self.suspended,
            "purged": self.purged,
            "purge_failed": self.purge_failed,
            "members_failed": self.members_failed,
            "notifications_sent": self.notifications_sent,
        }
