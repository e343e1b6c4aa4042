"""Error taxonomy for the AI assist workflow.

Every error carries a message that is safe to show to the user as-is.
"""

from __future__ import annotations


class AssistError(Exception):
    """Base class for failures scoped to a single assist invocation."""


class MissingCredentialError(AssistError):
    def __init__(self, message: str = "Add your OpenAI API key first.") -> None:
        super().__init__(message)


class EmptyDocumentError(AssistError):
    def __init__(
        self, message: str = "Upload an evidence document before using the AI."
    ) -> None:
        super().__init__(message)


class DocumentReadError(AssistError):
    def __init__(
        self, message: str = "Unable to read document. Please try a different file."
    ) -> None:
        super().__init__(message)


class EmbeddingMismatchError(AssistError):
    """Embedding response did not line up with the submitted texts."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"Embedding service returned {received} vectors for {expected} inputs."
        )
        self.expected = expected
        self.received = received


class HttpError(AssistError):
    """Non-2xx response or transport failure; ``status_code`` is None for the latter."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(AssistError):
    pass


class InvalidOptionError(AssistError):
    def __init__(
        self,
        value: str | None,
        message: str = "AI returned an option that is not available for this question.",
    ) -> None:
        super().__init__(message)
        self.value = value
