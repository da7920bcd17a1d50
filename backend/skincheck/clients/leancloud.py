from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from skincheck.config import Settings

logger = logging.getLogger(__name__)

# LeanCloud reports a missing object as HTTP 404 with this code.
OBJECT_NOT_FOUND = 101


@dataclass(frozen=True)
class LeanCloudError(Exception):
    message: str
    status_code: int | None = None
    body: str | None = None

    def __str__(self) -> str:
        return self.message

    @property
    def is_not_found(self) -> bool:
        if self.status_code != 404:
            return False
        if not self.body:
            return True
        try:
            payload = json.loads(self.body)
        except json.JSONDecodeError:
            return False
        return isinstance(payload, dict) and payload.get("code") == OBJECT_NOT_FOUND


class LeanCloudClient:
    def __init__(
        self,
        *,
        app_id: str,
        app_key: str,
        master_key: str,
        server_url: str,
        timeout: float = 10.0,
        retries: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._retries = retries
        self._client = httpx.AsyncClient(
            base_url=server_url,
            timeout=timeout,
            transport=transport,
            headers={
                "X-LC-Id": app_id,
                "X-LC-Key": f"{master_key},master",
                "Accept": "application/json",
            },
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> "LeanCloudClient":
        return cls(
            app_id=settings.lean_app_id,
            app_key=settings.lean_app_key,
            master_key=settings.lean_master_key,
            server_url=settings.lean_server_url,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        last_error: Exception | None = None
        for attempt in range(self._retries + 1):
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.RequestError as exc:
                last_error = exc
            else:
                if response.status_code < 500:
                    return response
                last_error = LeanCloudError(
                    f"LeanCloud error {response.status_code}",
                    status_code=response.status_code,
                    body=response.text,
                )
            logger.warning(
                "LeanCloud %s %s failed (attempt %d/%d): %s",
                method,
                path,
                attempt + 1,
                self._retries + 1,
                last_error,
            )
        raise LeanCloudError("LeanCloud request failed") from last_error

    async def request_json(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        response = await self._request(method, path, **kwargs)
        if not response.is_success:
            raise LeanCloudError(
                f"LeanCloud error {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        if not response.text:
            return {}
        return response.json()

    async def get_json(self, path: str, **kwargs: Any) -> dict[str, Any]:
        return await self.request_json("GET", path, **kwargs)

    async def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.request_json("POST", path, json=payload)

    async def delete_json(self, path: str) -> dict[str, Any]:
        return await self.request_json("DELETE", path)
