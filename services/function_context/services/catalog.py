"""
Function catalog.

Maps function names to invocable units and wraps lookups in
FunctionInvocationWrapper, which converts inputs and outputs with the
configured message converters, type conversion service and JSON mapper.

Design:
- Functions are plain callables classified by signature
  (no parameters = supplier, "-> None" = consumer, otherwise function)
- Duplicate names fail fast
- "a|b" composes functions left to right
"""

import inspect
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, get_type_hints

from services.common.core.request_context import invocation_scope

from ..config import FunctionProperties
from ..core import mime
from ..core.conversion import ConversionService
from ..core.exceptions import (
    ConversionError,
    DuplicateFunctionError,
    FunctionCompositionError,
)
from ..core.json_mapper import JsonMapper, StdlibJsonMapper, is_untyped
from ..core.mime import MimeType
from ..models.message import Message, MessageHeaders
from .converters import MessageConverter

logger = logging.getLogger("function.catalog")

# Name under which the routing function is registered.
ROUTING_FUNCTION_NAME = "functionRouter"

# Maximum number of cached lookups.
WRAPPER_CACHE_SIZE = 256

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


class FunctionKind(str, Enum):
    SUPPLIER = "supplier"
    FUNCTION = "function"
    CONSUMER = "consumer"


def default_function_name(target: Any) -> str:
    """
    Derive a registration name from a callable.

    Functions keep their name; instances are named after their class with a
    lower-cased first letter (UpperCase -> upperCase).
    """
    name = getattr(target, "__name__", None)
    if not name or name == "<lambda>":
        name = type(target).__name__
        return name[:1].lower() + name[1:]
    return name


def _introspect(target: Callable) -> Tuple[FunctionKind, Any, Any]:
    """Classify a callable and read its input/output annotations."""
    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError):
        return FunctionKind.FUNCTION, Any, Any

    annotated = target
    if not (inspect.isfunction(target) or inspect.ismethod(target)) and hasattr(type(target), "__call__"):
        annotated = type(target).__call__
    try:
        hints = get_type_hints(annotated)
    except Exception:
        # Unresolvable forward references; fall back to raw annotations.
        hints = {
            name: param.annotation
            for name, param in signature.parameters.items()
            if param.annotation is not inspect.Parameter.empty
        }
        if signature.return_annotation is not inspect.Signature.empty:
            hints["return"] = signature.return_annotation

    params = [p for p in signature.parameters.values() if p.kind in _POSITIONAL]
    output_type = hints.get("return", Any)
    if not params:
        return FunctionKind.SUPPLIER, None, output_type

    input_type = hints.get(params[0].name, Any)
    if output_type is None or output_type is type(None):
        return FunctionKind.CONSUMER, input_type, None
    return FunctionKind.FUNCTION, input_type, output_type


def _is_message_type(target_type: Any) -> bool:
    return inspect.isclass(target_type) and issubclass(target_type, Message)


@dataclass
class FunctionRegistration:
    """
    A callable plus the names it is registered under.
    """

    target: Callable
    names: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)
    kind: FunctionKind = field(init=False)
    input_type: Any = field(init=False)
    output_type: Any = field(init=False)

    def __post_init__(self):
        if not callable(self.target):
            raise TypeError(f"Function target must be callable: {self.target!r}")
        if not self.names:
            self.names = [default_function_name(self.target)]
        self.kind, self.input_type, self.output_type = _introspect(self.target)

    @classmethod
    def of(cls, target: Callable, *names: str, **properties: Any) -> "FunctionRegistration":
        return cls(target=target, names=list(names), properties=properties)

    @property
    def name(self) -> str:
        return self.names[0]


class FunctionInvocationWrapper:
    """
    Invocable view of a (possibly composed) function definition.

    Calling the wrapper converts the input for the first function, feeds each
    result to the next function, and converts the final result into a
    Message when the input was a Message or output types were requested.
    """

    def __init__(
        self,
        definition: str,
        registrations: List[FunctionRegistration],
        registry: "FunctionRegistry",
        accepted_output_types: Tuple[MimeType, ...] = (),
    ):
        self.definition = definition
        self.registrations = registrations
        self.registry = registry
        self.accepted_output_types = accepted_output_types

    @property
    def is_composed(self) -> bool:
        return len(self.registrations) > 1

    @property
    def target(self) -> Callable:
        return self.registrations[0].target

    @property
    def kind(self) -> FunctionKind:
        first, last = self.registrations[0], self.registrations[-1]
        if first.kind is FunctionKind.SUPPLIER:
            return FunctionKind.SUPPLIER
        if last.kind is FunctionKind.CONSUMER:
            return FunctionKind.CONSUMER
        return FunctionKind.FUNCTION

    @property
    def input_type(self) -> Any:
        return self.registrations[0].input_type

    @property
    def output_type(self) -> Any:
        return self.registrations[-1].output_type

    def is_supplier(self) -> bool:
        return self.kind is FunctionKind.SUPPLIER

    def is_consumer(self) -> bool:
        return self.kind is FunctionKind.CONSUMER

    def is_function(self) -> bool:
        return self.kind is FunctionKind.FUNCTION

    def is_input_type_message(self) -> bool:
        return _is_message_type(self.input_type)

    def __call__(self, input: Any = None) -> Any:
        with invocation_scope(self.definition):
            logger.debug(f"Invoking function: {self.definition}")
            value = input
            for registration in self.registrations:
                value = self._invoke(registration, value)

            if self.kind is FunctionKind.CONSUMER:
                return None
            return self._convert_output(value, input if isinstance(input, Message) else None)

    def _invoke(self, registration: FunctionRegistration, value: Any) -> Any:
        if registration.kind is FunctionKind.SUPPLIER:
            return registration.target()
        converted = self._convert_input(registration, value)
        routed_last = registration is self.registrations[-1] and ROUTING_FUNCTION_NAME in registration.names
        if routed_last and self.accepted_output_types:
            return registration.target(
                converted, accepted_output_types=[str(t) for t in self.accepted_output_types]
            )
        return registration.target(converted)

    def _convert_input(self, registration: FunctionRegistration, value: Any) -> Any:
        target_type = registration.input_type

        if isinstance(value, Message):
            if _is_message_type(target_type):
                return value
            converter = self.registry.message_converter
            if converter is not None:
                converted = converter.from_message(value, target_type)
                if converted is not None:
                    return converted
            return self._convert_value(value.payload, target_type)

        if _is_message_type(target_type):
            return Message(payload=value)
        return self._convert_value(value, target_type)

    def _convert_value(self, value: Any, target_type: Any) -> Any:
        if value is None or is_untyped(target_type):
            return value
        if isinstance(target_type, type) and isinstance(value, target_type):
            return value

        conversion_service = self.registry.conversion_service
        if conversion_service.can_convert(type(value), target_type):
            return conversion_service.convert(value, target_type)
        if isinstance(value, (bytes, bytearray, str)):
            return self.registry.json_mapper.from_json(
                bytes(value) if isinstance(value, bytearray) else value, target_type
            )
        if isinstance(value, (dict, list)):
            return self.registry.json_mapper.convert_value(value, target_type)
        return value

    def _convert_output(self, result: Any, input_message: Optional[Message]) -> Any:
        if result is None or isinstance(result, Message):
            return result
        if input_message is None and not self.accepted_output_types:
            return result

        headers: Dict[str, Any] = {}
        if input_message is not None:
            headers = {
                k: v for k, v in input_message.headers.items() if k != MessageHeaders.CONTENT_TYPE
            }

        accepted = list(self.accepted_output_types) or [mime.ALL]
        converter = self.registry.message_converter
        if converter is not None:
            for accepted_type in accepted:
                candidate_headers = dict(headers)
                if accepted_type != mime.ALL:
                    candidate_headers[MessageHeaders.CONTENT_TYPE] = str(accepted_type)
                message = converter.to_message(result, candidate_headers)
                if message is not None:
                    return message

        if isinstance(result, (bytes, bytearray, str)):
            requested = accepted[0]
            if requested.is_concrete:
                content_type = requested
            elif isinstance(result, str):
                content_type = mime.TEXT_PLAIN
            else:
                content_type = mime.APPLICATION_OCTET_STREAM
            payload = result.encode(content_type.charset or "utf-8") if isinstance(result, str) else bytes(result)
            headers[MessageHeaders.CONTENT_TYPE] = str(content_type)
            return Message(payload=payload, headers=headers)

        raise ConversionError(type(result), str(accepted[0]))

    def __repr__(self):
        return f"FunctionInvocationWrapper(definition={self.definition!r}, kind={self.kind.value})"


class FunctionRegistry:
    """
    Registry and catalog of functions.

    Lookups return FunctionInvocationWrapper instances, cached per definition
    and accepted output types until the registry changes. The cache keeps the
    WRAPPER_CACHE_SIZE most recently used entries.
    """

    def __init__(
        self,
        conversion_service: Optional[ConversionService] = None,
        message_converter: Optional[MessageConverter] = None,
        json_mapper: Optional[JsonMapper] = None,
        properties: Optional[FunctionProperties] = None,
    ):
        self.conversion_service = conversion_service or ConversionService()
        self.message_converter = message_converter
        self.json_mapper = json_mapper or StdlibJsonMapper()
        self.properties = properties
        self._registrations: Dict[str, FunctionRegistration] = {}
        self._wrappers: "OrderedDict[Tuple[str, Tuple[str, ...]], FunctionInvocationWrapper]" = OrderedDict()

    # =========================================
    # Registration
    # =========================================

    def register(self, registration: FunctionRegistration) -> FunctionRegistration:
        """
        Register a function under all of its names.

        Raises:
            DuplicateFunctionError: a name is already taken
        """
        for name in registration.names:
            if name in self._registrations:
                raise DuplicateFunctionError(name)

        for name in registration.names:
            self._registrations[name] = registration
        self._wrappers.clear()

        logger.info(
            f"Registered function: {', '.join(registration.names)} ({registration.kind.value})"
        )
        return registration

    def register_function(self, target: Callable, *names: str, **properties: Any) -> FunctionRegistration:
        return self.register(FunctionRegistration.of(target, *names, **properties))

    def unregister(self, name: str) -> Optional[FunctionRegistration]:
        registration = self._registrations.pop(name, None)
        if registration is not None:
            self._wrappers.clear()
            logger.info(f"Unregistered function: {name}")
        return registration

    def get_registration(self, name: str) -> Optional[FunctionRegistration]:
        return self._registrations.get(name)

    def get_names(self, kind: Optional[FunctionKind] = None) -> Set[str]:
        return {
            name
            for name, registration in self._registrations.items()
            if kind is None or registration.kind is kind
        }

    @property
    def size(self) -> int:
        """Number of distinct registered functions."""
        return len({id(r) for r in self._registrations.values()})

    def __contains__(self, name: str) -> bool:
        return name in self._registrations

    # =========================================
    # Lookup
    # =========================================

    def _default_definition(self) -> Optional[str]:
        if self.properties is not None and self.properties.FUNCTIONS_DEFINITION:
            return self.properties.FUNCTIONS_DEFINITION

        candidates = {
            id(r): r for n, r in self._registrations.items() if n != ROUTING_FUNCTION_NAME
        }
        if len(candidates) == 1:
            return next(iter(candidates.values())).name
        return None

    def lookup(self, definition: Optional[str] = None, *accepted_output_types: str) -> Optional[FunctionInvocationWrapper]:
        """
        Resolve a function definition.

        Args:
            definition: function name or "a|b" composition. When empty the
                configured default definition is used, else the only
                registered function.
            accepted_output_types: content types the caller accepts, in
                order of preference

        Returns:
            FunctionInvocationWrapper, or None if any name is unknown

        Raises:
            FunctionCompositionError: supplier/consumer in an invalid position
        """
        definition = (definition or "").replace(",", "|").strip()
        if not definition:
            definition = self._default_definition() or ""
            if not definition:
                return None

        accepted = tuple(MimeType.parse(t) for t in accepted_output_types if t)
        cache_key = (definition, tuple(str(a) for a in accepted))
        cached = self._wrappers.get(cache_key)
        if cached is not None:
            self._wrappers.move_to_end(cache_key)
            return cached

        registrations = []
        for name in (n.strip() for n in definition.split("|")):
            registration = self._registrations.get(name)
            if registration is None:
                logger.debug(f"No function registered under '{name}' (definition: {definition})")
                return None
            registrations.append(registration)

        last = len(registrations) - 1
        for index, registration in enumerate(registrations):
            if registration.kind is FunctionKind.SUPPLIER and index > 0:
                raise FunctionCompositionError(
                    definition, f"supplier '{registration.name}' can only start a composition"
                )
            if registration.kind is FunctionKind.CONSUMER and index < last:
                raise FunctionCompositionError(
                    definition, f"consumer '{registration.name}' can only end a composition"
                )

        wrapper = FunctionInvocationWrapper(definition, registrations, self, accepted)
        self._wrappers[cache_key] = wrapper
        if len(self._wrappers) > WRAPPER_CACHE_SIZE:
            self._wrappers.popitem(last=False)
        return wrapper


class FunctionInspector:
    """
    Answers type questions about registered functions.
    """

    def __init__(self, registry: FunctionRegistry):
        self.registry = registry

    def get_registration(self, function: Any) -> Optional[FunctionRegistration]:
        if isinstance(function, FunctionInvocationWrapper):
            if function.is_composed:
                return None
            return function.registrations[0]
        if isinstance(function, str):
            return self.registry.get_registration(function)
        for name in self.registry.get_names():
            registration = self.registry.get_registration(name)
            if registration is not None and registration.target is function:
                return registration
        return None

    def get_input_type(self, function: Any) -> Any:
        if isinstance(function, FunctionInvocationWrapper):
            return function.input_type
        registration = self.get_registration(function)
        return registration.input_type if registration else None

    def get_output_type(self, function: Any) -> Any:
        if isinstance(function, FunctionInvocationWrapper):
            return function.output_type
        registration = self.get_registration(function)
        return registration.output_type if registration else None

    def is_message(self, function: Any) -> bool:
        return _is_message_type(self.get_input_type(function))
