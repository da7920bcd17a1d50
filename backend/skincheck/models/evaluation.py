from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

UNSET_ASSESSOR = "未設定"

CareField = Literal["boneProtection", "incontinenceCare"]
CARE_FIELDS: tuple[CareField, ...] = ("boneProtection", "incontinenceCare")


class CareStatus(str, Enum):
    DONE = "done"
    NOT_DONE = "not_done"
    NA = "na"

    @classmethod
    def parse(cls, raw: Any) -> "CareStatus":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except ValueError:
            return cls.NA


@dataclass(frozen=True)
class EvaluationRecord:
    id: str
    assessor: str
    bone_protection: CareStatus
    incontinence_care: CareStatus
    notes: str
    assessment_date: datetime
    created_at: datetime
    created_by: str | None = None

    def status_for(self, field: CareField) -> CareStatus:
        if field == "boneProtection":
            return self.bone_protection
        if field == "incontinenceCare":
            return self.incontinence_care
        raise KeyError(field)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "assessor": self.assessor,
            "boneProtection": self.bone_protection.value,
            "incontinenceCare": self.incontinence_care.value,
            "notes": self.notes,
            "assessmentDate": self.assessment_date.isoformat(),
            "createdAt": self.created_at.isoformat(),
            "createdBy": self.created_by,
        }


@dataclass(frozen=True)
class StatusCounts:
    done: int = 0
    not_done: int = 0
    na: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "done": self.done,
            "notDone": self.not_done,
            "na": self.na,
            "total": self.total,
        }


@dataclass(frozen=True)
class MonthlySummary:
    month_key: str
    label: str
    total: int
    done: int
    not_done: int
    na: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "monthKey": self.month_key,
            "label": self.label,
            "total": self.total,
            "done": self.done,
            "notDone": self.not_done,
            "na": self.na,
        }


class EvaluationCreate(BaseModel):
    assessor: str = Field(..., min_length=1)
    boneProtection: CareStatus
    incontinenceCare: CareStatus
    notes: str = ""
    assessmentDate: datetime | None = None
    createdBy: str | None = None

    @field_validator("assessor", mode="before")
    @classmethod
    def strip_assessor(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("createdBy", mode="before")
    @classmethod
    def blank_created_by(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value
