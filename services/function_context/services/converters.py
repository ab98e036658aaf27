"""
Message converters.

Convert message payloads to the type a function expects (from_message) and
function results back into messages (to_message). A converter returns None
when it does not apply so that converters can be chained.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Mapping, Optional

from ..core import mime
from ..core.json_mapper import JsonMapper, is_untyped
from ..core.mime import MimeType
from ..models.message import Message, MessageHeaders

logger = logging.getLogger("function.converters")


class MessageConverter(ABC):
    """Strategy for converting message payloads."""

    @abstractmethod
    def from_message(self, message: Message, target_type: Any) -> Any:
        """Convert the message payload to target_type, or None if not applicable."""

    @abstractmethod
    def to_message(self, payload: Any, headers: Optional[Mapping[str, Any]] = None) -> Optional[Message]:
        """Wrap a payload into a message, or None if not applicable."""


class AbstractMessageConverter(MessageConverter):
    """
    Base for converters bound to a set of supported MIME types.

    A message without a content type header is accepted unless
    strict_content_type_match is set; otherwise its type/subtype must equal
    one of the supported types.
    """

    def __init__(self, *supported_mime_types: "str | MimeType"):
        self.supported_mime_types: List[MimeType] = [MimeType.parse(m) for m in supported_mime_types]
        self.strict_content_type_match = False

    @property
    def default_content_type(self) -> Optional[MimeType]:
        for candidate in self.supported_mime_types:
            if candidate.is_concrete:
                return candidate
        return None

    @abstractmethod
    def supports(self, target_type: Any) -> bool:
        """Whether this converter handles values of target_type."""

    def supports_mime_type(self, headers: Optional[Mapping[str, Any]]) -> bool:
        value = (headers or {}).get(MessageHeaders.CONTENT_TYPE)
        if not value:
            return not self.strict_content_type_match
        content_type = MimeType.parse(value)
        return any(s.equals_type_and_subtype(content_type) for s in self.supported_mime_types)

    def can_convert_from(self, message: Message, target_type: Any) -> bool:
        return self.supports(target_type) and self.supports_mime_type(message.headers)

    def can_convert_to(self, payload: Any, headers: Optional[Mapping[str, Any]]) -> bool:
        return self.supports(type(payload)) and self.supports_mime_type(headers)

    def from_message(self, message: Message, target_type: Any) -> Any:
        if not self.can_convert_from(message, target_type):
            return None
        return self.convert_from_internal(message, target_type)

    def to_message(self, payload: Any, headers: Optional[Mapping[str, Any]] = None) -> Optional[Message]:
        if not self.can_convert_to(payload, headers):
            return None
        merged = dict(headers or {})
        converted = self.convert_to_internal(payload, merged)
        if converted is None:
            return None
        if not merged.get(MessageHeaders.CONTENT_TYPE) and self.default_content_type is not None:
            merged[MessageHeaders.CONTENT_TYPE] = str(self.default_content_type)
        return Message(payload=converted, headers=merged)

    @abstractmethod
    def convert_from_internal(self, message: Message, target_type: Any) -> Any:
        pass

    @abstractmethod
    def convert_to_internal(self, payload: Any, headers: Mapping[str, Any]) -> Any:
        pass


def _charset(headers: Optional[Mapping[str, Any]]) -> str:
    value = (headers or {}).get(MessageHeaders.CONTENT_TYPE)
    if value:
        return MimeType.parse(value).charset or "utf-8"
    return "utf-8"


class JsonMessageConverter(AbstractMessageConverter):
    """
    JSON converter for application/json and application/*+json payloads.

    bytes and str targets are left to the byte-array and string converters.
    """

    def __init__(self, mapper: JsonMapper):
        super().__init__(mime.APPLICATION_JSON, mime.APPLICATION_ANY_JSON)
        self.mapper = mapper

    def supports(self, target_type: Any) -> bool:
        return target_type not in (bytes, bytearray, str)

    def supports_mime_type(self, headers: Optional[Mapping[str, Any]]) -> bool:
        value = (headers or {}).get(MessageHeaders.CONTENT_TYPE)
        if not value:
            return not self.strict_content_type_match
        content_type = MimeType.parse(value)
        return content_type.type == "application" and (
            content_type.subtype == "json" or content_type.subtype_suffix == "json"
        )

    def can_convert_to(self, payload: Any, headers: Optional[Mapping[str, Any]]) -> bool:
        if isinstance(payload, (bytes, bytearray)) or not self.supports_mime_type(headers):
            return False
        if isinstance(payload, str):
            # Plain text is left to the string converter.
            return self.mapper.is_json_string(payload)
        return True

    def convert_from_internal(self, message: Message, target_type: Any) -> Any:
        payload = message.payload
        if isinstance(payload, (bytes, bytearray, str)):
            if is_untyped(target_type) and message.content_type is None:
                if not self.mapper.is_json_string(payload):
                    return None
            return self.mapper.from_json(bytes(payload) if isinstance(payload, bytearray) else payload, target_type)
        return self.mapper.convert_value(payload, target_type)

    def convert_to_internal(self, payload: Any, headers: Mapping[str, Any]) -> Any:
        if isinstance(payload, str) and self.mapper.is_json_string(payload):
            return payload.encode(_charset(headers))
        return self.mapper.to_json(payload)


class ByteArrayMessageConverter(AbstractMessageConverter):
    """Pass-through converter for raw bytes."""

    def __init__(self):
        super().__init__(mime.APPLICATION_OCTET_STREAM, mime.ALL)

    def supports(self, target_type: Any) -> bool:
        return target_type in (bytes, bytearray)

    def convert_from_internal(self, message: Message, target_type: Any) -> Any:
        payload = message.payload
        if isinstance(payload, (bytes, bytearray)):
            return bytes(payload)
        if isinstance(payload, str):
            return payload.encode(_charset(message.headers))
        return None

    def convert_to_internal(self, payload: Any, headers: Mapping[str, Any]) -> Any:
        return bytes(payload)


class StringMessageConverter(AbstractMessageConverter):
    """Text converter; decodes with the content type charset (UTF-8 by default)."""

    def __init__(self):
        super().__init__(MimeType("text", "plain", {"charset": "utf-8"}), mime.ALL)

    def supports(self, target_type: Any) -> bool:
        return target_type is str

    def convert_from_internal(self, message: Message, target_type: Any) -> Any:
        payload = message.payload
        if isinstance(payload, (bytes, bytearray)):
            return bytes(payload).decode(_charset(message.headers))
        if isinstance(payload, str):
            return payload
        return None

    def convert_to_internal(self, payload: Any, headers: Mapping[str, Any]) -> Any:
        return payload.encode(_charset(headers))


class CompositeMessageConverter(MessageConverter):
    """
    Ordered chain of converters; the first non-None result wins.
    """

    def __init__(self, converters: Iterable[MessageConverter]):
        self.converters: List[MessageConverter] = list(converters)

    def from_message(self, message: Message, target_type: Any) -> Any:
        for converter in self.converters:
            result = converter.from_message(message, target_type)
            if result is not None:
                return result
        return None

    def to_message(self, payload: Any, headers: Optional[Mapping[str, Any]] = None) -> Optional[Message]:
        for converter in self.converters:
            result = converter.to_message(payload, headers)
            if result is not None:
                return result
        return None

    def __repr__(self):
        return f"CompositeMessageConverter(converters={self.converters!r})"


class NegotiatingMessageConverterWrapper(MessageConverter):
    """
    Wraps a converter and negotiates the output content type.

    The requested content type (contentType header, "*/*" when absent) is
    matched against the delegate's supported types in order; the first
    compatible concrete type is stamped on the resulting message.
    """

    def __init__(self, delegate: AbstractMessageConverter):
        self.delegate = delegate

    @classmethod
    def wrap(cls, delegate: AbstractMessageConverter) -> "NegotiatingMessageConverterWrapper":
        return cls(delegate)

    @property
    def supported_mime_types(self) -> List[MimeType]:
        return self.delegate.supported_mime_types

    def from_message(self, message: Message, target_type: Any) -> Any:
        return self.delegate.from_message(message, target_type)

    def to_message(self, payload: Any, headers: Optional[Mapping[str, Any]] = None) -> Optional[Message]:
        requested_value = (headers or {}).get(MessageHeaders.CONTENT_TYPE)
        accepted = MimeType.parse(requested_value) if requested_value else mime.ALL

        for supported in self.delegate.supported_mime_types:
            if accepted.is_concrete and supported.includes(accepted):
                target = accepted
            elif supported.is_concrete and accepted.includes(supported):
                target = supported
            else:
                continue

            candidate_headers = dict(headers or {})
            candidate_headers[MessageHeaders.CONTENT_TYPE] = str(target)
            result = self.delegate.to_message(payload, candidate_headers)
            if result is not None:
                return result
        return None

    def __repr__(self):
        return f"NegotiatingMessageConverterWrapper({type(self.delegate).__name__})"
