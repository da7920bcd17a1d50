from __future__ import annotations

from typing import Any

import pydantic

from skincheck.errors import ValidationError
from skincheck.models.evaluation import EvaluationCreate

EMPTY_ASSESSOR_MESSAGE = "Enter or select an assessor name."


def _describe(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    if location == "assessor" and error.get("type") in {"string_too_short", "missing"}:
        return EMPTY_ASSESSOR_MESSAGE
    return f"{location}: {error.get('msg', 'invalid value')}" if location else error.get("msg", "")


def parse_evaluation(data: dict[str, Any]) -> EvaluationCreate:
    """Validate a create request before anything reaches the store."""
    if not isinstance(data, dict):
        raise ValidationError("Evaluation payload must be an object")
    try:
        return EvaluationCreate.model_validate(data)
    except pydantic.ValidationError as exc:
        messages = [_describe(error) for error in exc.errors()]
        raise ValidationError("; ".join(messages)) from exc
