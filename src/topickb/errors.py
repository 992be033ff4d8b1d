"""Structured errors for topickb.

The core signals "not found" with absence markers (None, empty lists,
ShortestPathResult.not_found()). TopicKBError is what the CLI raises when it
turns one of those markers, or a store failure, into a user-facing error.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    TOPIC_NOT_FOUND = "TOPIC_NOT_FOUND"
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    STORE_ERROR = "STORE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TopicKBError(Exception):
    """Error carrying a stable code plus optional details for JSON output."""

    def __init__(self, code: ErrorCode, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)

    @classmethod
    def topic_not_found(cls, topic_id: str) -> TopicKBError:
        return cls(
            ErrorCode.TOPIC_NOT_FOUND,
            f"Topic not found: {topic_id}",
            {"topic_id": topic_id, "suggestion": "Run 'tkb list' to see available topics"},
        )

    @classmethod
    def version_not_found(cls, topic_id: str, version: int) -> TopicKBError:
        return cls(
            ErrorCode.VERSION_NOT_FOUND,
            f"Version {version} not found for topic {topic_id}",
            {"topic_id": topic_id, "version": version},
        )

    @classmethod
    def resource_not_found(cls, resource_id: str) -> TopicKBError:
        return cls(
            ErrorCode.RESOURCE_NOT_FOUND,
            f"Resource not found: {resource_id}",
            {"resource_id": resource_id},
        )

    @classmethod
    def validation_error(cls, message: str) -> TopicKBError:
        return cls(ErrorCode.VALIDATION_ERROR, message)


def format_error_json(code: ErrorCode | str, message: str, details: dict | None = None) -> str:
    """Format an arbitrary error as the same JSON envelope TopicKBError uses."""
    code_value = code.value if isinstance(code, ErrorCode) else code
    error: dict[str, Any] = {"code": code_value, "message": message}
    if details:
        error["details"] = details
    return json.dumps({"error": error}, indent=2, default=str)
