from typing import Any

import pytest

from services.function_context.core.conversion import ConversionService, TypeConverter
from services.function_context.core.exceptions import ConversionError


class ShoutingBytes(TypeConverter):
    convertible_types = {(str, bytes)}

    def convert(self, value, target_type):
        return value.upper().encode("utf-8")


@pytest.mark.parametrize(
    "value,target,expected",
    [
        ("42", int, 42),
        (b" 3.5 ", float, 3.5),
        ("yes", bool, True),
        (b"off", bool, False),
        (b"hi", str, "hi"),
        ("hi", bytes, b"hi"),
        (5, str, "5"),
    ],
)
def test_default_converters(value, target, expected):
    assert ConversionService().convert(value, target) == expected


def test_invalid_value_raises_conversion_error():
    with pytest.raises(ConversionError) as exc_info:
        ConversionService().convert("maybe", bool)

    assert isinstance(exc_info.value.cause, ValueError)


def test_missing_converter_raises_conversion_error():
    service = ConversionService()

    assert not service.can_convert(str, dict)
    with pytest.raises(ConversionError):
        service.convert("x", dict)


def test_untyped_and_matching_values_pass_through():
    service = ConversionService()
    value = object()

    assert service.can_convert(str, Any)
    assert service.convert(value, Any) is value
    assert service.convert(None, int) is None
    assert service.convert("text", str) == "text"


def test_application_converter_precedes_defaults():
    service = ConversionService()
    service.add_converter(ShoutingBytes())

    assert service.convert("abc", bytes) == b"ABC"
    assert isinstance(service.converters[0], ShoutingBytes)


def test_without_defaults():
    service = ConversionService(register_defaults=False)

    assert not service.can_convert(str, int)
    assert service.converters == []
