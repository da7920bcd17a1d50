from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from skincheck.api.deps.access import AccessGuard
from skincheck.api.deps.state import get_feed, get_roster
from skincheck.errors import SubscriptionError
from skincheck.services.assessor_roster import AssessorRoster
from skincheck.services.evaluation_feed import EvaluationFeed
from skincheck.services.summaries import assessor_options

router = APIRouter(prefix="/assessors", tags=["assessors"], dependencies=[AccessGuard])


@router.get("")
async def list_assessors(
    roster: AssessorRoster = Depends(get_roster),
    feed: EvaluationFeed = Depends(get_feed),
):
    stored = roster.load()
    if stored is not None:
        return {"assessors": stored}
    try:
        records = await feed.fetch()
    except SubscriptionError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message
        ) from exc
    return {"assessors": roster.seed(assessor_options(records))}


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_assessor(
    payload: dict[str, Any],
    roster: AssessorRoster = Depends(get_roster),
):
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Enter or select an assessor name.",
        )
    return {"assessors": roster.add(name)}


@router.delete("/{name}")
async def remove_assessor(name: str, roster: AssessorRoster = Depends(get_roster)):
    return {"assessors": roster.remove(name)}
