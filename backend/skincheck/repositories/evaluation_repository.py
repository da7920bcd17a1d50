from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any

from skincheck.clients.leancloud import LeanCloudClient, LeanCloudError
from skincheck.errors import WriteError
from skincheck.models.evaluation import (
    UNSET_ASSESSOR,
    CareStatus,
    EvaluationCreate,
    EvaluationRecord,
)

logger = logging.getLogger(__name__)

# LeanCloud refuses larger pages.
MAX_PAGE_SIZE = 1000

CREATE_FAILED_MESSAGE = "Could not save the record. Please try again later."
DELETE_FAILED_MESSAGE = "Could not delete the record. Please try again later."


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_string(raw: Any) -> str:
    return raw.strip() if isinstance(raw, str) else ""


def _parse_iso(value: str) -> datetime | None:
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_timestamp(raw: Any) -> datetime | None:
    """Coerce a stored date value into an aware UTC datetime.

    Accepts LeanCloud ``{"__type": "Date", "iso": ...}`` objects, ISO-8601
    strings, epoch milliseconds and ``datetime`` instances. Anything else,
    including unparseable strings, yields ``None``.
    """
    if isinstance(raw, datetime):
        if raw.tzinfo is None:
            return raw.replace(tzinfo=timezone.utc)
        return raw.astimezone(timezone.utc)
    if isinstance(raw, dict):
        return parse_timestamp(raw.get("iso") or raw.get("value"))
    if isinstance(raw, str):
        return _parse_iso(raw)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        if not math.isfinite(raw):
            return None
        try:
            return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def evaluation_from_document(
    payload: dict[str, Any], *, now: datetime | None = None
) -> EvaluationRecord:
    fallback = now or _utc_now()
    created_at = parse_timestamp(payload.get("createdAt"))
    assessment_date = (
        parse_timestamp(payload.get("assessmentDate")) or created_at or fallback
    )
    created_by = payload.get("createdBy")
    return EvaluationRecord(
        id=str(payload.get("objectId", "")),
        assessor=_normalize_string(payload.get("assessor")) or UNSET_ASSESSOR,
        bone_protection=CareStatus.parse(payload.get("boneProtection")),
        incontinence_care=CareStatus.parse(payload.get("incontinenceCare")),
        notes=_normalize_string(payload.get("notes")),
        assessment_date=assessment_date,
        created_at=created_at or fallback,
        created_by=created_by if isinstance(created_by, str) and created_by else None,
    )


def _lc_date(value: datetime) -> dict[str, str]:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    iso = value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    return {"__type": "Date", "iso": iso}


def document_from_payload(payload: EvaluationCreate) -> dict[str, Any]:
    document: dict[str, Any] = {
        "assessor": payload.assessor,
        "boneProtection": payload.boneProtection.value,
        "incontinenceCare": payload.incontinenceCare.value,
        "notes": payload.notes,
        "assessmentDate": _lc_date(payload.assessmentDate or _utc_now()),
    }
    if payload.createdBy:
        document["createdBy"] = payload.createdBy
    return document


class EvaluationRepository:
    def __init__(self, client: LeanCloudClient, *, class_name: str = "Evaluation") -> None:
        self._client = client
        self._path = f"/1.1/classes/{class_name}"

    async def list_evaluations(self, *, limit: int | None = None) -> list[EvaluationRecord]:
        """Return records newest first; ``limit=None`` pages through everything."""
        documents: list[dict[str, Any]] = []
        skip = 0
        while True:
            page_size = MAX_PAGE_SIZE
            if limit is not None:
                page_size = min(MAX_PAGE_SIZE, limit - len(documents))
                if page_size <= 0:
                    break
            params: dict[str, Any] = {"order": "-createdAt", "limit": page_size}
            if skip:
                params["skip"] = skip
            response = await self._client.get_json(self._path, params=params)
            results = response.get("results", []) or []
            documents.extend(item for item in results if isinstance(item, dict))
            if len(results) < page_size:
                break
            skip += len(results)
        now = _utc_now()
        return [evaluation_from_document(item, now=now) for item in documents]

    async def create_evaluation(self, payload: EvaluationCreate) -> str:
        document = document_from_payload(payload)
        try:
            response = await self._client.post_json(self._path, document)
        except LeanCloudError as exc:
            logger.error("Evaluation create failed: %s", exc, exc_info=True)
            raise WriteError(CREATE_FAILED_MESSAGE) from exc
        object_id = response.get("objectId")
        if not object_id:
            logger.error("Evaluation create returned no objectId: %s", response)
            raise WriteError(CREATE_FAILED_MESSAGE)
        return str(object_id)

    async def delete_evaluation(self, evaluation_id: str | None) -> None:
        if not evaluation_id:
            return
        try:
            await self._client.delete_json(f"{self._path}/{evaluation_id}")
        except LeanCloudError as exc:
            if exc.is_not_found:
                logger.info("Evaluation %s already deleted", evaluation_id)
                return
            logger.error(
                "Evaluation delete failed evaluation_id=%s: %s",
                evaluation_id,
                exc,
                exc_info=True,
            )
            raise WriteError(DELETE_FAILED_MESSAGE, record_id=evaluation_id) from exc
