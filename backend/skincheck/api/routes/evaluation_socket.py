from __future__ import annotations

from datetime import timezone, tzinfo
from typing import Any

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from skincheck.api.deps.access import check_access_key
from skincheck.api.deps.state import get_feed
from skincheck.config import load_settings
from skincheck.models.evaluation import EvaluationRecord
from skincheck.services.evaluation_feed import EvaluationFeed
from skincheck.services.summaries import summarize_monthly

router = APIRouter()


def snapshot_message(
    view: str, records: list[EvaluationRecord], tz: tzinfo = timezone.utc
) -> dict[str, Any]:
    message: dict[str, Any] = {
        "type": "snapshot",
        "view": view,
        "records": [record.to_dict() for record in records],
    }
    if view == "all":
        message["monthly"] = [summary.to_dict() for summary in summarize_monthly(records, tz)]
    return message


@router.websocket("/ws/evaluations")
async def evaluation_socket(
    websocket: WebSocket,
    view: str = "all",
    access_key: str | None = Query(None, alias="accessKey"),
    feed: EvaluationFeed = Depends(get_feed),
):
    try:
        check_access_key(access_key or websocket.headers.get("x-access-key"))
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    view = "latest" if view == "latest" else "all"
    tz = load_settings().timezone
    await websocket.accept()

    async def _send_snapshot(records: list[EvaluationRecord]) -> None:
        await websocket.send_json(snapshot_message(view, records, tz))

    async def _send_error(message: str) -> None:
        await websocket.send_json({"type": "error", "message": message})
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)

    if view == "latest":
        subscription = await feed.subscribe_latest(_send_snapshot, _send_error)
    else:
        subscription = await feed.subscribe_all(_send_snapshot, _send_error)
    await subscription.drain()
    try:
        while subscription.active:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        subscription.unsubscribe()
