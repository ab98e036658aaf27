"""
Routing function.

functionRouter dispatches each message to another function chosen, in order,
from:
1. the "function.definition" message header
2. the "function.routing-expression" message header
3. FUNCTIONS_DEFINITION
4. FUNCTIONS_ROUTING_EXPRESSION

Routing expressions are deliberately small:
    headers.<name>   value of a message header
    payload.<key>    value of a key in a mapping (or JSON object) payload
    <anything else>  used verbatim as the definition
"""

import logging
from typing import Any, Optional, Sequence

from ..config import FunctionProperties
from ..core.exceptions import ConversionError, FunctionNotFoundError, RoutingError
from ..core.json_mapper import JsonMapper
from ..models.message import Message, MessageHeaders
from .catalog import ROUTING_FUNCTION_NAME, FunctionInspector, FunctionRegistry

logger = logging.getLogger("function.routing")


def evaluate_routing_expression(expression: str, message: Message, json_mapper: JsonMapper) -> str:
    """
    Evaluate a routing expression against a message.

    Raises:
        RoutingError: the expression does not yield a definition
    """
    expression = expression.strip()

    if expression.startswith("headers."):
        key = expression[len("headers."):]
        value = message.headers.get(key)
    elif expression.startswith("payload."):
        key = expression[len("payload."):]
        payload = message.payload
        if isinstance(payload, (bytes, bytearray, str)) and json_mapper.is_json_string(payload):
            try:
                payload = json_mapper.from_json(bytes(payload) if isinstance(payload, bytearray) else payload)
            except ConversionError as e:
                raise RoutingError(f"Cannot evaluate '{expression}': {e}") from e
        if isinstance(payload, dict):
            value = payload.get(key)
        else:
            value = getattr(payload, key, None)
    else:
        value = expression

    if value is None or str(value).strip() == "":
        raise RoutingError(f"Routing expression '{expression}' did not resolve to a function definition")
    return str(value).strip()


class RoutingFunction:
    """
    Function that forwards its input to the function selected per message.
    """

    FUNCTION_NAME = ROUTING_FUNCTION_NAME

    def __init__(
        self,
        function_catalog: FunctionRegistry,
        function_inspector: FunctionInspector,
        function_properties: FunctionProperties,
    ):
        self.function_catalog = function_catalog
        self.function_inspector = function_inspector
        self.function_properties = function_properties

    def __call__(self, message: Message, *, accepted_output_types: Sequence[str] = ()) -> Any:
        """
        Invoke the function selected for message.

        accepted_output_types are those of the invocation that reached the
        router and apply to the routed function's output.
        """
        definition = self._resolve_definition(message)
        if definition == self.FUNCTION_NAME:
            raise RoutingError(f"{self.FUNCTION_NAME} cannot route to itself")

        function = self.function_catalog.lookup(definition, *accepted_output_types)
        if function is None:
            raise FunctionNotFoundError(definition)

        logger.info(f"Routing message to function: {definition}")
        return function(message)

    def _resolve_definition(self, message: Message) -> str:
        headers = message.headers

        definition: Optional[str] = headers.get(MessageHeaders.FUNCTION_DEFINITION)
        if definition:
            return definition

        expression: Optional[str] = headers.get(MessageHeaders.ROUTING_EXPRESSION)
        if expression:
            return evaluate_routing_expression(expression, message, self.function_catalog.json_mapper)

        definition = self.function_properties.FUNCTIONS_DEFINITION
        if definition and definition != self.FUNCTION_NAME:
            return definition

        expression = self.function_properties.FUNCTIONS_ROUTING_EXPRESSION
        if expression:
            return evaluate_routing_expression(expression, message, self.function_catalog.json_mapper)

        raise RoutingError(
            "Failed to establish route, since neither the 'function.definition' nor "
            "'function.routing-expression' header is present and neither "
            "FUNCTIONS_DEFINITION nor FUNCTIONS_ROUTING_EXPRESSION is set"
        )
