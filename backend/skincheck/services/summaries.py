"""Monthly and per-status compliance summaries.

Everything here is pure: summaries are rebuilt from the full record
snapshot on every change and never patched in place. Each record carries
two status observations (bone protection and incontinence care), and the
monthly and overall counters add both of them, so for every bucket
``done + not_done + na == 2 * total``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import Iterable, Sequence

from skincheck.models.evaluation import (
    CARE_FIELDS,
    CareField,
    CareStatus,
    EvaluationRecord,
    MonthlySummary,
    StatusCounts,
)


def month_key(record: EvaluationRecord, tz: tzinfo = timezone.utc) -> str:
    """Return the ``YYYY-MM`` bucket a record belongs to.

    This is the only place the bucket is derived; both the monthly series
    and month filtering go through it.
    """
    local = record.assessment_date.astimezone(tz)
    return f"{local.year:04d}-{local.month:02d}"


def month_label(key: str) -> str:
    year, month = key.split("-", 1)
    return f"{int(year)}年{int(month)}月"


def _tally(counts: dict[CareStatus, int], status: CareStatus) -> None:
    counts[status] = counts.get(status, 0) + 1


def summarize_monthly(
    records: Iterable[EvaluationRecord], tz: tzinfo = timezone.utc
) -> list[MonthlySummary]:
    totals: dict[str, int] = {}
    statuses: dict[str, dict[CareStatus, int]] = {}
    for record in records:
        key = month_key(record, tz)
        totals[key] = totals.get(key, 0) + 1
        bucket = statuses.setdefault(key, {})
        for field in CARE_FIELDS:
            _tally(bucket, record.status_for(field))

    return [
        MonthlySummary(
            month_key=key,
            label=month_label(key),
            total=totals[key],
            done=statuses[key].get(CareStatus.DONE, 0),
            not_done=statuses[key].get(CareStatus.NOT_DONE, 0),
            na=statuses[key].get(CareStatus.NA, 0),
        )
        for key in sorted(totals)
    ]


def _counts_from(statuses: Iterable[CareStatus]) -> StatusCounts:
    done = not_done = na = total = 0
    for status in statuses:
        total += 1
        if status is CareStatus.DONE:
            done += 1
        elif status is CareStatus.NOT_DONE:
            not_done += 1
        else:
            na += 1
    return StatusCounts(done=done, not_done=not_done, na=na, total=total)


def status_counts(records: Iterable[EvaluationRecord], field: CareField) -> StatusCounts:
    return _counts_from(record.status_for(field) for record in records)


def combined_status_counts(records: Iterable[EvaluationRecord]) -> StatusCounts:
    """Counts across both fields; every record adds two to ``total``."""
    return _counts_from(
        record.status_for(field) for record in records for field in CARE_FIELDS
    )


def percentage(count: int, total: int) -> float:
    if not total:
        return 0.0
    return round(count / total * 100, 1)


def filter_by_month(
    records: Iterable[EvaluationRecord],
    key: str | None,
    tz: tzinfo = timezone.utc,
) -> list[EvaluationRecord]:
    if not key:
        return list(records)
    return [record for record in records if month_key(record, tz) == key]


def month_options(summaries: Sequence[MonthlySummary]) -> list[tuple[str, str]]:
    ordered = sorted(summaries, key=lambda summary: summary.month_key, reverse=True)
    return [(summary.month_key, summary.label) for summary in ordered]


def resolve_active_month(
    summaries: Sequence[MonthlySummary], selected: str | None
) -> str | None:
    options = month_options(summaries)
    if selected and any(key == selected for key, _ in options):
        return selected
    return options[0][0] if options else None


def assessor_options(records: Iterable[EvaluationRecord]) -> list[str]:
    return sorted({record.assessor for record in records})


@dataclass(frozen=True)
class StatusBreakdown:
    counts: StatusCounts
    done_pct: float
    not_done_pct: float
    na_pct: float

    @classmethod
    def from_counts(cls, counts: StatusCounts) -> "StatusBreakdown":
        return cls(
            counts=counts,
            done_pct=percentage(counts.done, counts.total),
            not_done_pct=percentage(counts.not_done, counts.total),
            na_pct=percentage(counts.na, counts.total),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            **self.counts.to_dict(),
            "percentages": {
                "done": self.done_pct,
                "notDone": self.not_done_pct,
                "na": self.na_pct,
            },
        }


@dataclass(frozen=True)
class Dashboard:
    active_month: str | None
    active_month_label: str | None
    records: list[EvaluationRecord]
    bone_protection: StatusBreakdown
    incontinence_care: StatusBreakdown
    overall: StatusBreakdown
    monthly: list[MonthlySummary]

    def to_dict(self) -> dict[str, object]:
        return {
            "activeMonth": self.active_month,
            "activeMonthLabel": self.active_month_label,
            "recordCount": len(self.records),
            "records": [record.to_dict() for record in self.records],
            "boneProtection": self.bone_protection.to_dict(),
            "incontinenceCare": self.incontinence_care.to_dict(),
            "overall": self.overall.to_dict(),
            "monthly": [summary.to_dict() for summary in self.monthly],
            "months": [
                {"value": key, "label": label}
                for key, label in month_options(self.monthly)
            ],
        }


def build_dashboard(
    records: Sequence[EvaluationRecord],
    selected_month: str | None = None,
    tz: tzinfo = timezone.utc,
) -> Dashboard:
    monthly = summarize_monthly(records, tz)
    active = resolve_active_month(monthly, selected_month)
    in_month = filter_by_month(records, active, tz) if active else []
    return Dashboard(
        active_month=active,
        active_month_label=month_label(active) if active else None,
        records=in_month,
        bone_protection=StatusBreakdown.from_counts(status_counts(in_month, "boneProtection")),
        incontinence_care=StatusBreakdown.from_counts(
            status_counts(in_month, "incontinenceCare")
        ),
        overall=StatusBreakdown.from_counts(combined_status_counts(in_month)),
        monthly=monthly,
    )
