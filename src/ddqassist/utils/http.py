"""Thin JSON-over-HTTP helper shared by the API clients."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx

from ddqassist.errors import HttpError, MalformedResponseError


@dataclass(slots=True)
class JsonResponse:
    status_code: int
    data: Any


def encode_payload(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


async def post_json(
    url: str,
    body: bytes,
    *,
    api_key: str,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> JsonResponse:
    """POST a pre-encoded JSON body with bearer auth.

    Raises:
        HttpError: on a non-2xx status (with ``status_code``) or a transport
            failure (``status_code`` None).
        MalformedResponseError: if a 2xx body is not JSON.
    """
    headers = {"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"}
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, content=body, headers=headers)
    except httpx.HTTPError as exc:
        raise HttpError(f"Request failed: {exc.__class__.__name__}") from exc

    if not response.is_success:
        raise HttpError(
            f"Request failed with status {response.status_code}",
            status_code=response.status_code,
        )
    try:
        data = response.json()
    except ValueError as exc:
        raise MalformedResponseError("API response was not valid JSON.") from exc
    return JsonResponse(status_code=response.status_code, data=data)
