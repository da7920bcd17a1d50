from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Response, status

from skincheck.api.deps.access import AccessGuard
from skincheck.api.deps.state import get_feed, get_roster
from skincheck.errors import SubscriptionError, ValidationError, WriteError
from skincheck.services.assessor_roster import AssessorRoster
from skincheck.services.evaluation_feed import EvaluationFeed
from skincheck.services.evaluation_service import parse_evaluation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/evaluations", tags=["evaluations"], dependencies=[AccessGuard])


@router.get("")
async def list_evaluations(
    view: Literal["all", "latest"] = "all",
    feed: EvaluationFeed = Depends(get_feed),
):
    try:
        records = await feed.fetch(latest=view == "latest")
    except SubscriptionError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message
        ) from exc
    return {"view": view, "records": [record.to_dict() for record in records]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_evaluation(
    payload: dict[str, Any],
    feed: EvaluationFeed = Depends(get_feed),
    roster: AssessorRoster = Depends(get_roster),
):
    try:
        data = parse_evaluation(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    try:
        evaluation_id = await feed.create(data)
    except WriteError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message
        ) from exc
    try:
        roster.remember(data.assessor)
    except OSError as exc:
        logger.warning("Could not store assessor %r: %s", data.assessor, exc)
    return {"id": evaluation_id}


@router.delete("/{evaluation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_evaluation(
    evaluation_id: str,
    feed: EvaluationFeed = Depends(get_feed),
):
    try:
        await feed.delete(evaluation_id.strip())
    except WriteError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
