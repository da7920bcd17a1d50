from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger("skincheck.telemetry")


def build_event(
    name: str,
    *,
    record_id: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "type": "event",
        "name": name,
        "recordId": record_id,
        "attributes": attributes or {},
    }


def emit_event(
    name: str,
    *,
    record_id: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload = build_event(name, record_id=record_id, attributes=attributes)
    logger.info(json.dumps(payload, sort_keys=True, ensure_ascii=False))
    return payload


def build_metric(
    name: str,
    value: float,
    *,
    record_id: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "type": "metric",
        "name": name,
        "value": value,
        "recordId": record_id,
        "attributes": attributes or {},
    }


def emit_metric(
    name: str,
    value: float,
    *,
    record_id: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload = build_metric(name, value, record_id=record_id, attributes=attributes)
    logger.info(json.dumps(payload, sort_keys=True, ensure_ascii=False))
    return payload
