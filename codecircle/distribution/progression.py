from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Protocol

from codecircle.distribution.types import DueCode


class ActiveCodeLike(Protocol):
    id: int
    owner_id: int
    day_number: int
    views_per_day: int


def owner_next_days(progress: Iterable[tuple[int, int]]) -> dict[int, int]:
    """Maps each owner to the first day number not yet handed out."""
    return {int(owner_id): int(last_done_day) + 1 for owner_id, last_done_day in progress}


def group_next_day(owner_days: Mapping[int, int]) -> int | None:
    """The group advances at the pace of its slowest owner, so no code is skipped."""
    if not owner_days:
        return None
    return min(owner_days.values())


def pending_days(owner_days: Mapping[int, int], *, distribution_days: int) -> list[int]:
    return sorted({day for day in owner_days.values() if 1 <= day <= distribution_days})


def select_due_codes(codes: Iterable[ActiveCodeLike], owner_days: Mapping[int, int]) -> list[DueCode]:
    due: list[DueCode] = []
    for code in codes:
        if owner_days.get(code.owner_id) != code.day_number:
            continue
        due.append(
            DueCode(
                code_id=code.id,
                owner_id=code.owner_id,
                day_number=code.day_number,
                views_per_day=code.views_per_day,
            )
        )
    return due
