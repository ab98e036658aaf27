"""
Services package.

Provides the function catalog, message conversion, routing and scanning.
"""

from .catalog import (
    ROUTING_FUNCTION_NAME,
    FunctionInspector,
    FunctionInvocationWrapper,
    FunctionKind,
    FunctionRegistration,
    FunctionRegistry,
)
from .converters import (
    AbstractMessageConverter,
    ByteArrayMessageConverter,
    CompositeMessageConverter,
    JsonMessageConverter,
    MessageConverter,
    NegotiatingMessageConverterWrapper,
    StringMessageConverter,
)
from .routing import RoutingFunction
from .scanning import registrations_from_module, scan_packages

__all__ = [
    "ROUTING_FUNCTION_NAME",
    "FunctionInspector",
    "FunctionInvocationWrapper",
    "FunctionKind",
    "FunctionRegistration",
    "FunctionRegistry",
    "AbstractMessageConverter",
    "ByteArrayMessageConverter",
    "CompositeMessageConverter",
    "JsonMessageConverter",
    "MessageConverter",
    "NegotiatingMessageConverterWrapper",
    "StringMessageConverter",
    "RoutingFunction",
    "registrations_from_module",
    "scan_packages",
]
