"""Shared fixtures: a fake OpenAI-compatible provider behind httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any, Callable, List

import httpx
import pytest

from ddqassist.assist.controller import AssistController
from ddqassist.config import AppConfig

VOCABULARY = ("due diligence", "policy", "strategy", "supplier", "waste", "complaint")


def keyword_vector(text: str) -> List[float]:
    """Bag-of-keywords embedding so similarity is predictable in tests."""
    lowered = text.lower()
    return [float(lowered.count(term)) for term in VOCABULARY]


def decision_json(can_answer: bool, value: str | None, label: str, reason: str) -> str:
    return json.dumps(
        {"canAnswer": can_answer, "answerValue": value, "answerLabel": label, "reason": reason}
    )


class FakeProvider:
    """Serves /embeddings and /responses and records every request."""

    def __init__(self) -> None:
        self.embedding_requests: List[dict[str, Any]] = []
        self.completion_requests: List[dict[str, Any]] = []
        self.authorization: List[str] = []
        self.embedding_status = 200
        self.completion_status = 200
        self.drop_vectors = 0
        self.embed: Callable[[str], List[Any]] = keyword_vector
        self.completion_text = decision_json(False, None, "", "Not covered by the document.")
        self.completion_usage: dict[str, Any] | None = {"input_tokens": 120, "output_tokens": 30}

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.authorization.append(request.headers.get("Authorization", ""))
        if request.url.path.endswith("/embeddings"):
            self.embedding_requests.append(payload)
            if self.embedding_status != 200:
                return httpx.Response(self.embedding_status, json={"error": {"message": "boom"}})
            inputs = payload["input"]
            vectors = [self.embed(text) for text in inputs]
            if self.drop_vectors:
                vectors = vectors[: -self.drop_vectors]
            return httpx.Response(
                200,
                json={
                    "data": [{"index": i, "embedding": v} for i, v in enumerate(vectors)],
                    "usage": {"prompt_tokens": 3 * len(inputs), "total_tokens": 3 * len(inputs)},
                },
            )

        self.completion_requests.append(payload)
        if self.completion_status != 200:
            return httpx.Response(self.completion_status, json={"error": {"message": "boom"}})
        body: dict[str, Any] = {
            "output": [
                {
                    "type": "message",
                    "content": [{"type": "output_text", "text": self.completion_text}],
                }
            ]
        }
        if self.completion_usage is not None:
            body["usage"] = self.completion_usage
        return httpx.Response(200, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def controller(provider: FakeProvider) -> AssistController:
    return AssistController.from_config(AppConfig(), transport=provider.transport)
