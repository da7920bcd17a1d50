from __future__ import annotations

import math

# Patients at or below this BMI are in scope for the skin-care checks.
BMI_THRESHOLD = 18.5


def compute_bmi(height_cm: float | None, weight_kg: float | None) -> float | None:
    if not height_cm or not weight_kg:
        return None
    height_m = height_cm / 100
    if height_m <= 0 or weight_kg <= 0:
        return None
    denominator = height_m * height_m
    if denominator <= 0:
        return None
    bmi = weight_kg / denominator
    return bmi if math.isfinite(bmi) else None


def is_bmi_eligible(bmi: float | None) -> bool:
    return bmi is not None and bmi <= BMI_THRESHOLD
