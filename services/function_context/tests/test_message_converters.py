import pytest
from pydantic import BaseModel

from services.function_context.core.json_mapper import StdlibJsonMapper
from services.function_context.models.message import Message, MessageHeaders
from services.function_context.services.converters import (
    ByteArrayMessageConverter,
    CompositeMessageConverter,
    JsonMessageConverter,
    NegotiatingMessageConverterWrapper,
    StringMessageConverter,
)

CONTENT_TYPE = MessageHeaders.CONTENT_TYPE


class Person(BaseModel):
    name: str
    age: int = 0


@pytest.fixture
def json_converter():
    return JsonMessageConverter(StdlibJsonMapper())


def _message(payload, content_type=None):
    headers = {CONTENT_TYPE: content_type} if content_type else {}
    return Message(payload=payload, headers=headers)


# ==========================================
# JsonMessageConverter
# ==========================================


def test_json_from_message_to_model(json_converter):
    message = _message(b'{"name": "Ann", "age": 3}', "application/json")

    assert json_converter.from_message(message, Person) == Person(name="Ann", age=3)


def test_json_from_message_accepts_json_suffix(json_converter):
    message = _message(b'{"name": "Ann"}', "application/vnd.person+json")

    assert json_converter.from_message(message, Person) == Person(name="Ann")


def test_json_from_message_skips_other_content_types(json_converter):
    assert json_converter.from_message(_message(b'{"name": "Ann"}', "text/plain"), Person) is None


def test_json_from_message_leaves_text_targets_alone(json_converter):
    assert json_converter.from_message(_message(b'"hi"', "application/json"), str) is None
    assert json_converter.from_message(_message(b"hi", "application/json"), bytes) is None


def test_json_from_message_untyped_without_content_type(json_converter):
    assert json_converter.from_message(_message(b"hello"), None) is None
    assert json_converter.from_message(_message(b'{"a": 1}'), None) == {"a": 1}


def test_json_from_message_converts_parsed_payload(json_converter):
    message = _message({"name": "Ann"}, "application/json")

    assert json_converter.from_message(message, Person) == Person(name="Ann")


def test_json_strict_content_type_match(json_converter):
    json_converter.strict_content_type_match = True

    assert json_converter.from_message(_message(b'{"name": "Ann"}'), Person) is None


def test_json_to_message(json_converter):
    message = json_converter.to_message({"a": 1})

    assert message.payload == b'{"a": 1}'
    assert message.headers[CONTENT_TYPE] == "application/json"


def test_json_to_message_json_string_passes_through(json_converter):
    assert json_converter.to_message('{"a":1}').payload == b'{"a":1}'
    assert json_converter.to_message("hello") is None
    assert json_converter.to_message(b"{}") is None


# ==========================================
# ByteArray / String converters
# ==========================================


def test_byte_array_converter():
    converter = ByteArrayMessageConverter()

    assert converter.from_message(_message("hé"), bytes) == "hé".encode("utf-8")
    assert converter.from_message(_message(b"x"), str) is None

    message = converter.to_message(b"abc")
    assert message.payload == b"abc"
    assert message.headers[CONTENT_TYPE] == "application/octet-stream"


def test_string_converter_uses_charset():
    converter = StringMessageConverter()
    message = _message("hé".encode("latin-1"), "text/plain;charset=latin-1")

    assert converter.from_message(message, str) == "hé"


def test_string_converter_to_message():
    message = StringMessageConverter().to_message("hi")

    assert message.payload == b"hi"
    assert message.headers[CONTENT_TYPE] == "text/plain;charset=utf-8"


# ==========================================
# Composite / Negotiation
# ==========================================


def test_composite_first_result_wins(json_converter):
    composite = CompositeMessageConverter(
        [json_converter, ByteArrayMessageConverter(), StringMessageConverter()]
    )

    assert composite.from_message(_message(b"hi", "text/plain"), str) == "hi"
    assert composite.from_message(_message(b"hi", "application/octet-stream"), bytes) == b"hi"
    assert composite.to_message({"a": 1}).headers[CONTENT_TYPE] == "application/json"


def test_negotiation_picks_concrete_supported_type(json_converter):
    wrapper = NegotiatingMessageConverterWrapper.wrap(json_converter)

    message = wrapper.to_message({"a": 1}, {CONTENT_TYPE: "application/*+json"})

    assert message.headers[CONTENT_TYPE] == "application/json"


def test_negotiation_keeps_requested_concrete_type(json_converter):
    wrapper = NegotiatingMessageConverterWrapper.wrap(json_converter)

    message = wrapper.to_message({"a": 1}, {CONTENT_TYPE: "application/problem+json"})

    assert message.headers[CONTENT_TYPE] == "application/problem+json"
    assert message.payload == b'{"a": 1}'


def test_negotiation_without_request_uses_default(json_converter):
    string_wrapper = NegotiatingMessageConverterWrapper.wrap(StringMessageConverter())
    json_wrapper = NegotiatingMessageConverterWrapper.wrap(json_converter)

    assert string_wrapper.to_message("hi").headers[CONTENT_TYPE] == "text/plain;charset=utf-8"
    assert json_wrapper.to_message([1]).headers[CONTENT_TYPE] == "application/json"


def test_negotiation_incompatible_request(json_converter):
    wrapper = NegotiatingMessageConverterWrapper.wrap(json_converter)

    assert wrapper.to_message({"a": 1}, {CONTENT_TYPE: "text/plain"}) is None
    assert NegotiatingMessageConverterWrapper.wrap(StringMessageConverter()).to_message(
        "hi", {CONTENT_TYPE: "text/html"}
    ) is None


def test_message_helpers():
    message = _message(b"abc", "text/plain;charset=utf-8")

    derived = message.with_payload(b"xyz").with_headers({MessageHeaders.FUNCTION_DEFINITION: "f"})

    assert message.payload == b"abc"
    assert derived.payload == b"xyz"
    assert derived.headers == {CONTENT_TYPE: "text/plain;charset=utf-8", "function.definition": "f"}
    assert derived.content_type.charset == "utf-8"
    assert Message().content_type is None
