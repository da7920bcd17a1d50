from __future__ import annotations

from fastapi import APIRouter, Query

from skincheck.api.deps.access import AccessGuard
from skincheck.services.bmi import BMI_THRESHOLD, compute_bmi, is_bmi_eligible

router = APIRouter(tags=["bmi"], dependencies=[AccessGuard])


@router.get("/bmi")
def bmi(
    height_cm: float | None = Query(None, alias="heightCm"),
    weight_kg: float | None = Query(None, alias="weightKg"),
):
    value = compute_bmi(height_cm, weight_kg)
    return {
        "bmi": round(value, 1) if value is not None else None,
        "eligible": is_bmi_eligible(value),
        "threshold": BMI_THRESHOLD,
    }
