"""Structured error payloads returned by the storage JSON API."""

from dataclasses import dataclass, field
from typing import Any

import httpx


@dataclass(frozen=True)
class ErrorItem:
    """One entry of the ``error.errors`` list."""

    domain: str | None = None
    reason: str | None = None
    message: str | None = None
    location: str | None = None


@dataclass
class ErrorDetails:
    """Error envelope of the storage JSON API.

    The service answers failures with::

        {"error": {"code": 404, "message": "...", "errors": [{"domain": ..., "reason": ..., "message": ...}]}}
    """

    code: int | None = None
    message: str | None = None
    errors: list[ErrorItem] = field(default_factory=list)

    # Any other members of the "error" object
    extensions: dict[str, Any] | None = None

    @property
    def reason(self) -> str | None:
        for item in self.errors:
            if item.reason:
                return item.reason
        return None

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ErrorDetails | None":
        """Parse the error envelope from an HTTP response.

        Args:
            response: HTTP response object

        Returns:
            ErrorDetails object or None if the body is not an error envelope
        """
        try:
            data = response.json()
        except (ValueError, TypeError, AttributeError):
            # Not JSON, empty body, or a streamed response that was never read
            return None

        if not isinstance(data, dict) or not isinstance(data.get("error"), dict):
            return None
        return cls.from_dict(data["error"])

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorDetails":
        items = []
        for raw in data.get("errors") or []:
            if not isinstance(raw, dict):
                continue
            items.append(
                ErrorItem(
                    domain=raw.get("domain"),
                    reason=raw.get("reason"),
                    message=raw.get("message"),
                    location=raw.get("location"),
                )
            )

        standard_fields = {"code", "message", "errors"}
        extensions = {k: v for k, v in data.items() if k not in standard_fields}

        return cls(
            code=data.get("code"),
            message=data.get("message"),
            errors=items,
            extensions=extensions if extensions else None,
        )

    def to_exception_message(self) -> str:
        """Convert error details to an exception message."""
        lines = []

        if self.message:
            lines.append(self.message)
        if self.reason:
            lines.append(f"Reason: {self.reason}")

        for item in self.errors:
            if item.message and item.message != self.message:
                lines.append(f"  - {item.message}")

        return "\n".join(lines) if lines else "Unknown API error"
