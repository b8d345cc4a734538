"""API error taxonomy.

Learn: Every error the client can see is an ApiError subclass. The
exception handlers in main.py render them into the uniform envelope:

    {"status": "NG", "error": "<HTTP reason phrase>", "messages": {...}}

`messages` is only present for field-keyed validation failures.
ConfigurationError is deliberately NOT an ApiError — it is raised while
the app is being built and should crash the process.
"""

from http import HTTPStatus
from typing import Optional


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing."""


class ApiError(Exception):
    """Base for errors rendered into the NG envelope."""

    status_code: int = 400

    def __init__(
        self,
        detail: str = "",
        messages: Optional[dict[str, list[str]]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(detail or self.phrase_for(status_code or self.status_code))
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail
        self.messages = messages

    @staticmethod
    def phrase_for(status_code: int) -> str:
        return HTTPStatus(status_code).phrase

    @property
    def error(self) -> str:
        return self.phrase_for(self.status_code)

    def to_dict(self) -> dict:
        body = {"status": "NG", "error": self.error}
        if self.messages:
            body["messages"] = self.messages
        return body


class ValidationError(ApiError):
    """Field-keyed validation failure (400)."""

    status_code = 400

    def __init__(self, messages: dict[str, list[str]]):
        super().__init__("validation failed", messages=messages)


class Unauthorized(ApiError):
    """Authentication failure (401). Never carries detail to the client."""

    status_code = 401


class NotFound(ApiError):
    """Owned resource absent or not owned by the caller.

    Surfaced as 400 by convention; the single-resource show route
    passes status_code=404.
    """

    status_code = 400
