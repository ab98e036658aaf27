"""
Message models.

A message pairs a payload with headers; headers carry the content type and
routing hints consumed by converters and functionRouter.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..core.mime import MimeType


class MessageHeaders:
    """Well-known header names."""

    CONTENT_TYPE = "contentType"
    FUNCTION_DEFINITION = "function.definition"
    ROUTING_EXPRESSION = "function.routing-expression"


class Message(BaseModel):
    """
    Payload plus headers.

    Messages are treated as immutable; use with_payload()/with_headers() to
    derive new ones.
    """

    payload: Any = None
    headers: Dict[str, Any] = Field(default_factory=dict)

    @property
    def content_type(self) -> Optional[MimeType]:
        value = self.headers.get(MessageHeaders.CONTENT_TYPE)
        if not value:
            return None
        return MimeType.parse(value)

    def with_payload(self, payload: Any) -> "Message":
        return Message(payload=payload, headers=dict(self.headers))

    def with_headers(self, headers: Dict[str, Any]) -> "Message":
        merged = dict(self.headers)
        merged.update(headers)
        return Message(payload=self.payload, headers=merged)
