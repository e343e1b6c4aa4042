"""Generative model client and response-envelope extraction."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

import httpx

from ddqassist.config import COMPLETION_ENDPOINT, DEFAULT_COMPLETION_MODEL
from ddqassist.models import TokenUsage
from ddqassist.telemetry.ledger import normalize_token_usage
from ddqassist.utils.http import encode_payload, post_json

LOGGER = logging.getLogger(__name__)

Extractor = Callable[[Any], Optional[str]]


def _part_text(part: Any) -> str:
    if isinstance(part, str):
        return part
    if isinstance(part, dict):
        for key in ("text", "value"):
            if isinstance(part.get(key), str):
                return part[key]
    return ""


def extract_output_items(data: Any) -> str | None:
    """Responses API: ``output[].content[]`` parts."""
    output = data.get("output") if isinstance(data, dict) else None
    if not isinstance(output, list):
        return None
    texts = []
    for item in output:
        content = item.get("content") if isinstance(item, dict) else None
        if isinstance(content, list):
            texts.append("".join(_part_text(part) for part in content))
    return "".join(texts)


def extract_choices(data: Any) -> str | None:
    """Chat/legacy completions: ``choices[].text`` or ``choices[].message.content``."""
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list):
        return None
    texts = []
    for choice in choices:
        if not isinstance(choice, dict):
            continue
        if isinstance(choice.get("text"), str):
            texts.append(choice["text"])
            continue
        message = choice.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, list):
            texts.append("".join(_part_text(part) for part in content))
        elif isinstance(content, str):
            texts.append(content)
    return "".join(texts)


def extract_output_text(data: Any) -> str | None:
    """SDK-style convenience field ``output_text``."""
    value = data.get("output_text") if isinstance(data, dict) else None
    return value if isinstance(value, str) else None


RESPONSE_EXTRACTORS: tuple[Extractor, ...] = (
    extract_output_items,
    extract_choices,
    extract_output_text,
)


def extract_response_text(data: Any, extractors: Sequence[Extractor] = RESPONSE_EXTRACTORS) -> str:
    """Return the model text from the first envelope shape that matches."""
    for extractor in extractors:
        text = extractor(data)
        if text is not None:
            return text.strip()
    return ""


@dataclass(slots=True)
class CompletionConfig:
    model_name: str = DEFAULT_COMPLETION_MODEL
    endpoint: str = COMPLETION_ENDPOINT
    temperature: float = 0.2
    timeout: float = 60.0


@dataclass(slots=True)
class CompletionResult:
    text: str
    usage: TokenUsage
    http_status: int


class CompletionClient:
    """Sends prompts to the generative model endpoint."""

    def __init__(
        self,
        config: CompletionConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or CompletionConfig()
        self._transport = transport

    def encode(self, prompt: str) -> bytes:
        """Request body for ``prompt``; its length is the telemetry payload size."""
        return encode_payload(
            {
                "model": self.config.model_name,
                "input": prompt,
                "temperature": self.config.temperature,
            }
        )

    async def complete(self, body: bytes, *, api_key: str) -> CompletionResult:
        response = await post_json(
            self.config.endpoint,
            body,
            api_key=api_key,
            timeout=self.config.timeout,
            transport=self._transport,
        )
        usage = response.data.get("usage") if isinstance(response.data, dict) else None
        return CompletionResult(
            text=extract_response_text(response.data),
            usage=normalize_token_usage(usage),
            http_status=response.status_code,
        )
