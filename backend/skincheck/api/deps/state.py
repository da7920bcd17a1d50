from __future__ import annotations

from fastapi import HTTPException, status
from fastapi.requests import HTTPConnection

from skincheck.services.assessor_roster import AssessorRoster
from skincheck.services.evaluation_feed import EvaluationFeed


def _from_state(connection: HTTPConnection, name: str):
    value = getattr(connection.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return value


def get_feed(connection: HTTPConnection) -> EvaluationFeed:
    return _from_state(connection, "feed")


def get_roster(connection: HTTPConnection) -> AssessorRoster:
    return _from_state(connection, "roster")
