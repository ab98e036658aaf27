"""
JSON mappers.

Two interchangeable strategies for reading and writing JSON:

- StdlibJsonMapper: the default, backed by the json module
- PydanticJsonMapper: backed by pydantic TypeAdapter validation

The active one is chosen at startup (see auto_configuration.select_json_mapper).
"""

import dataclasses
import inspect
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError

from .exceptions import ConversionError

logger = logging.getLogger("function.json")


def is_untyped(target_type: Any) -> bool:
    """True when a target type places no constraint on the value."""
    return target_type in (None, Any, object, inspect.Parameter.empty)


TRUE_VALUES = {"true", "on", "yes", "1"}
FALSE_VALUES = {"false", "off", "no", "0", ""}


def parse_bool(text: str) -> bool:
    """
    Parse a boolean written as text ("true"/"false", "yes"/"no", "1"/"0", ...).

    Raises:
        ValueError: text is not a recognized boolean
    """
    normalized = text.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value '{text}'")


def convert_scalar(value: Any, target_type: type) -> Any:
    """
    Strictly convert a JSON scalar to bool, int, float or str.

    Values are never truncated or coerced by truthiness: 3.7 is not an int
    and "false" is False.

    Raises:
        ValueError: value does not represent target_type
    """
    if target_type is bool:
        if isinstance(value, str):
            return parse_bool(value)
        if isinstance(value, (int, float)) and value in (0, 1):
            return bool(value)
    elif isinstance(value, bool):
        # bool is an int subclass but not a number here
        pass
    elif target_type is int:
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            return int(value.strip())
    elif target_type is float:
        if isinstance(value, int):
            return float(value)
        if isinstance(value, str):
            return float(value.strip())
    elif target_type is str:
        if isinstance(value, (int, float)):
            return str(value)
    raise ValueError(f"{value!r} is not a valid {target_type.__name__}")


def _default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if isinstance(value, bytes):
        return value.decode("utf-8")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonMapper(ABC):
    """Strategy for serializing and deserializing JSON payloads."""

    @abstractmethod
    def to_json(self, value: Any) -> bytes:
        """Serialize a value to UTF-8 JSON."""

    @abstractmethod
    def from_json(self, data: Union[bytes, str], target_type: Any = None) -> Any:
        """Parse JSON and convert the result to target_type."""

    @abstractmethod
    def convert_value(self, value: Any, target_type: Any) -> Any:
        """Convert an already parsed value (e.g. a dict) to target_type."""

    @staticmethod
    def is_json_string(value: Any) -> bool:
        """
        Whether value is a str/bytes holding a JSON object or array.
        """
        if isinstance(value, bytes):
            try:
                value = value.decode("utf-8")
            except UnicodeDecodeError:
                return False
        if not isinstance(value, str):
            return False

        text = value.strip()
        if not (
            (text.startswith("{") and text.endswith("}"))
            or (text.startswith("[") and text.endswith("]"))
        ):
            return False
        try:
            json.loads(text)
        except ValueError:
            return False
        return True


class StdlibJsonMapper(JsonMapper):
    """
    Default mapper based on the json module.

    Conversion targets supported beyond plain JSON values: pydantic models,
    dataclasses and scalar types.
    """

    def __init__(self, encoder: Optional[json.JSONEncoder] = None):
        self.encoder = encoder or json.JSONEncoder(ensure_ascii=False, default=_default)

    def to_json(self, value: Any) -> bytes:
        return self.encoder.encode(value).encode("utf-8")

    def from_json(self, data: Union[bytes, str], target_type: Any = None) -> Any:
        try:
            parsed = json.loads(data)
        except ValueError as e:
            raise ConversionError(type(data), target_type, e) from e
        return self.convert_value(parsed, target_type)

    def convert_value(self, value: Any, target_type: Any) -> Any:
        if is_untyped(target_type):
            return value

        # Parameterized generics (List[int], Dict[str, Any]) are only checked
        # against their origin.
        origin = get_origin(target_type)
        if origin is not None:
            if isinstance(origin, type) and isinstance(value, origin):
                return value
            if origin is Union:
                return value
            raise ConversionError(type(value), target_type)

        if not isinstance(target_type, type):
            return value
        if isinstance(value, target_type):
            return value

        try:
            if issubclass(target_type, BaseModel):
                return target_type.model_validate(value)
            if dataclasses.is_dataclass(target_type) and isinstance(value, dict):
                return target_type(**value)
            if target_type in (int, float, str, bool):
                return convert_scalar(value, target_type)
        except (ValidationError, TypeError, ValueError) as e:
            raise ConversionError(type(value), target_type, e) from e

        raise ConversionError(type(value), target_type)


class PydanticOptions(BaseModel):
    """Serialization options for PydanticJsonMapper."""

    by_alias: bool = False
    exclude_none: bool = False
    strict: bool = False


class PydanticJsonMapper(JsonMapper):
    """
    Alternative mapper based on pydantic TypeAdapter.

    Validates nested generics (List[Model], Dict[str, Model], ...) fully.
    """

    def __init__(self, options: Optional[PydanticOptions] = None):
        self.options = options or PydanticOptions()
        self._adapters: Dict[Any, TypeAdapter] = {}

    def _adapter(self, target_type: Any) -> TypeAdapter:
        key = Any if is_untyped(target_type) else target_type
        try:
            adapter = self._adapters.get(key)
        except TypeError:
            # Unhashable type annotation; do not cache.
            return TypeAdapter(key)
        if adapter is None:
            adapter = TypeAdapter(key)
            self._adapters[key] = adapter
        return adapter

    def to_json(self, value: Any) -> bytes:
        return self._adapter(Any).dump_json(
            value,
            by_alias=self.options.by_alias,
            exclude_none=self.options.exclude_none,
        )

    def from_json(self, data: Union[bytes, str], target_type: Any = None) -> Any:
        try:
            return self._adapter(target_type).validate_json(data, strict=self.options.strict)
        except ValidationError as e:
            raise ConversionError(type(data), target_type, e) from e

    def convert_value(self, value: Any, target_type: Any) -> Any:
        if is_untyped(target_type):
            return value
        try:
            return self._adapter(target_type).validate_python(value, strict=self.options.strict)
        except ValidationError as e:
            raise ConversionError(type(value), target_type, e) from e
