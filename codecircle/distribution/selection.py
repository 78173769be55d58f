from __future__ import annotations

import random
from collections.abc import Collection, Iterable


def build_candidate_pool(
    member_ids: Iterable[int],
    *,
    owner_id: int,
    seen_viewer_ids: Collection[int],
) -> list[int]:
    """Members that may receive a code of ``owner_id``: never the owner, never a repeat viewer."""
    return [
        member_id
        for member_id in member_ids
        if member_id != owner_id and member_id not in seen_viewer_ids
    ]


def order_candidates(
    candidate_ids: Iterable[int],
    *,
    priority_ids: Collection[int],
    rng: random.Random,
) -> list[int]:
    pool = list(candidate_ids)
    rng.shuffle(pool)
    prioritized = [candidate_id for candidate_id in pool if candidate_id in priority_ids]
    remaining = [candidate_id for candidate_id in pool if candidate_id not in priority_ids]
    return prioritized + remaining


def open_slots(*, views_per_day: int, already_assigned: int) -> int:
    return max(0, int(views_per_day) - int(already_assigned))
