from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class OwnedCode:
    code_id: int
    day_number: int
    code_text: str
    status: str
    views_per_day: int


@dataclass(frozen=True, slots=True)
class CodeUploadResult:
    owner_id: int
    codes_total: int
    views_per_day: int


@dataclass(frozen=True, slots=True)
class CycleResetResult:
    assignments_deleted: int
    codes_deleted: int
