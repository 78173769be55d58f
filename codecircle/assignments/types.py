from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from codecircle.penalties.types import PenaltyTransition
from codecircle.services.notifications import Notification


@dataclass(frozen=True, slots=True)
class AssignmentView:
    assignment_id: int
    code_id: int
    owner_id: int
    code_text: str
    assigned_date: date
    used: bool
    verified: bool
    marked_paused: bool
    disputed: bool
    carried_over_count: int


@dataclass(frozen=True, slots=True)
class AssignmentActionResult:
    assignment_id: int
    changed: bool
    streak_reset: bool = False
    penalty: PenaltyTransition | None = None
    # delivered by the caller once the transaction committed
    notifications: tuple[Notification, ...] = field(default_factory=tuple)
