"""
Type conversion service.

Holds pluggable TypeConverter instances used to adapt raw function inputs
(e.g. a str query value or bytes body) to the parameter type a function
declares.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Set, Tuple

from .exceptions import ConversionError
from .json_mapper import is_untyped, parse_bool

logger = logging.getLogger("function.conversion")

ConvertiblePair = Tuple[type, type]


class TypeConverter(ABC):
    """
    Converter between one or more (source type, target type) pairs.
    """

    @property
    @abstractmethod
    def convertible_types(self) -> Set[ConvertiblePair]:
        """Pairs of (source type, target type) this converter handles."""

    @abstractmethod
    def convert(self, value: Any, target_type: type) -> Any:
        """Convert value to target_type."""

    def matches(self, source_type: type, target_type: type) -> bool:
        for source, target in self.convertible_types:
            if issubclass(source_type, source) and target_type is target:
                return True
        return False


class _BytesToStr(TypeConverter):
    convertible_types = {(bytes, str), (bytearray, str)}

    def convert(self, value, target_type):
        return bytes(value).decode("utf-8")


class _StrToBytes(TypeConverter):
    convertible_types = {(str, bytes)}

    def convert(self, value, target_type):
        return value.encode("utf-8")


class _StrToScalar(TypeConverter):
    convertible_types = {(str, int), (str, float), (bytes, int), (bytes, float)}

    def convert(self, value, target_type):
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return target_type(value.strip())


class _StrToBool(TypeConverter):
    convertible_types = {(str, bool), (bytes, bool)}

    def convert(self, value, target_type):
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return parse_bool(value)


class _NumberToStr(TypeConverter):
    convertible_types = {(int, str), (float, str)}

    def convert(self, value, target_type):
        return str(value)


class ConversionService:
    """
    Registry of TypeConverter instances.

    Application converters are consulted before the built-in ones, in the
    order they were added.
    """

    def __init__(self, register_defaults: bool = True):
        self._converters: List[TypeConverter] = []
        self._defaults: List[TypeConverter] = []
        if register_defaults:
            self._defaults = [_BytesToStr(), _StrToBytes(), _StrToScalar(), _StrToBool(), _NumberToStr()]

    @property
    def converters(self) -> List[TypeConverter]:
        return self._converters + self._defaults

    def add_converter(self, converter: TypeConverter) -> None:
        self._converters.append(converter)
        logger.debug(f"Registered type converter: {type(converter).__name__}")

    def _find(self, source_type: type, target_type: Any) -> "TypeConverter | None":
        if not isinstance(target_type, type):
            return None
        for converter in self.converters:
            if converter.matches(source_type, target_type):
                return converter
        return None

    def can_convert(self, source_type: type, target_type: Any) -> bool:
        if is_untyped(target_type):
            return True
        if isinstance(target_type, type) and issubclass(source_type, target_type):
            return True
        return self._find(source_type, target_type) is not None

    def convert(self, value: Any, target_type: Any) -> Any:
        """
        Convert value to target_type.

        Raises:
            ConversionError: no converter applies or the converter failed
        """
        if is_untyped(target_type) or value is None:
            return value
        if isinstance(target_type, type) and isinstance(value, target_type):
            return value

        converter = self._find(type(value), target_type)
        if converter is None:
            raise ConversionError(type(value), target_type)
        try:
            return converter.convert(value, target_type)
        except (TypeError, ValueError, UnicodeDecodeError) as e:
            raise ConversionError(type(value), target_type, e) from e
