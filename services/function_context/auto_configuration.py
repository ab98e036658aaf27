"""
Function context assembly.

Builds, once at startup, the objects the function runtime needs:
- the JSON mapper (preferred mapper selection)
- the function catalog with its message converter chain
- the functionRouter routing function
- functions discovered by package scanning
"""

import json
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .config import FunctionProperties
from .core.conversion import ConversionService, TypeConverter
from .core.json_mapper import JsonMapper, PydanticJsonMapper, PydanticOptions, StdlibJsonMapper
from .services.catalog import FunctionInspector, FunctionRegistration, FunctionRegistry
from .services.converters import (
    ByteArrayMessageConverter,
    CompositeMessageConverter,
    JsonMessageConverter,
    MessageConverter,
    NegotiatingMessageConverterWrapper,
    StringMessageConverter,
)
from .services.routing import RoutingFunction
from .services.scanning import scan_packages

logger = logging.getLogger("function.configuration")

# Converters from these modules belong to the function runtime itself.
ELIGIBLE_CONVERTER_MODULES = ("services.function_context.", "services.function_deployer.")
# Converters from the rest of the host stack cannot convert function payloads.
INELIGIBLE_CONVERTER_MODULES = ("services.", "fastapi.", "starlette.")

MAPPER_JSON = "json"
MAPPER_PYDANTIC = "pydantic"


def select_json_mapper(
    properties: FunctionProperties,
    json_encoder: Optional[json.JSONEncoder] = None,
    pydantic_options: Optional[PydanticOptions] = None,
) -> JsonMapper:
    """
    Choose the JSON mapper.

    - PydanticJsonMapper when pydantic options are supplied and either the
      preferred mapper is "pydantic" or no json encoder is supplied
    - StdlibJsonMapper over the supplied encoder when the preferred mapper is
      "json" or unset
    - StdlibJsonMapper with a default encoder otherwise
    """
    preferred = (properties.PREFERRED_JSON_MAPPER or "").strip().lower() or None

    if pydantic_options is not None and (preferred == MAPPER_PYDANTIC or json_encoder is None):
        logger.info("Using pydantic JSON mapper")
        return PydanticJsonMapper(pydantic_options)

    if json_encoder is not None and preferred in (None, MAPPER_JSON):
        logger.info("Using json JSON mapper")
        return StdlibJsonMapper(json_encoder)

    logger.info("Using default json JSON mapper")
    return StdlibJsonMapper()


def is_converter_eligible(message_converter: object) -> bool:
    module = type(message_converter).__module__ + "."
    if module.startswith(ELIGIBLE_CONVERTER_MODULES):
        return True
    return not module.startswith(INELIGIBLE_CONVERTER_MODULES)


def build_message_converter(
    message_converters: Optional[Iterable[MessageConverter]],
    json_encoder: Optional[json.JSONEncoder] = None,
) -> Optional[CompositeMessageConverter]:
    """
    Assemble the message converter chain.

    A supplied CompositeMessageConverter contributes its members and turns
    off the default JSON/byte-array/string converters; otherwise the defaults
    are appended after the supplied converters.
    """
    converters: List[MessageConverter] = []
    add_default_converters = True

    for converter in message_converters or []:
        if isinstance(converter, CompositeMessageConverter):
            converters.extend(converter.converters)
            add_default_converters = False
        else:
            converters.append(converter)

    converters = [c for c in converters if is_converter_eligible(c)]

    if add_default_converters:
        json_converter = JsonMessageConverter(StdlibJsonMapper(json_encoder))
        converters.append(NegotiatingMessageConverterWrapper.wrap(json_converter))
        converters.append(NegotiatingMessageConverterWrapper.wrap(ByteArrayMessageConverter()))
        converters.append(NegotiatingMessageConverterWrapper.wrap(StringMessageConverter()))

    if not converters:
        return None
    return CompositeMessageConverter(converters)


def function_catalog(
    properties: FunctionProperties,
    message_converters: Optional[Iterable[MessageConverter]] = None,
    json_mapper: Optional[JsonMapper] = None,
    type_converters: Optional[Iterable[TypeConverter]] = None,
    json_encoder: Optional[json.JSONEncoder] = None,
) -> FunctionRegistry:
    conversion_service = ConversionService()
    for converter in type_converters or []:
        conversion_service.add_converter(converter)

    message_converter = build_message_converter(message_converters, json_encoder)
    return FunctionRegistry(
        conversion_service=conversion_service,
        message_converter=message_converter,
        json_mapper=json_mapper,
        properties=properties,
    )


def function_router(
    catalog: FunctionRegistry, inspector: FunctionInspector, properties: FunctionProperties
) -> RoutingFunction:
    return RoutingFunction(catalog, inspector, properties)


@dataclass
class FunctionContext:
    """Objects assembled at startup."""

    properties: FunctionProperties
    json_mapper: JsonMapper
    catalog: FunctionRegistry
    inspector: FunctionInspector
    router: RoutingFunction


def build_function_context(
    properties: Optional[FunctionProperties] = None,
    *,
    message_converters: Optional[Iterable[MessageConverter]] = None,
    type_converters: Optional[Iterable[TypeConverter]] = None,
    json_encoder: Optional[json.JSONEncoder] = None,
    pydantic_options: Optional[PydanticOptions] = None,
    functions: Optional[Iterable[FunctionRegistration]] = None,
) -> FunctionContext:
    """
    Build the function context.

    Args:
        properties: configuration (read from the environment when missing)
        message_converters: application message converters
        type_converters: application type converters
        json_encoder: engine for the json mapper and the JSON converter
        pydantic_options: engine options for the pydantic mapper
        functions: registrations to add before scanning
    """
    properties = properties or FunctionProperties()

    json_mapper = select_json_mapper(properties, json_encoder, pydantic_options)
    catalog = function_catalog(
        properties,
        message_converters=message_converters,
        json_mapper=json_mapper,
        type_converters=type_converters,
        json_encoder=json_encoder,
    )
    inspector = FunctionInspector(catalog)
    router = function_router(catalog, inspector, properties)
    catalog.register(FunctionRegistration.of(router, RoutingFunction.FUNCTION_NAME))

    for registration in functions or []:
        catalog.register(registration)

    if properties.FUNCTIONS_SCAN_ENABLED:
        for registration in scan_packages(properties.scan_packages):
            catalog.register(registration)
    else:
        logger.info("Function scanning disabled")

    logger.info(f"Function context ready ({catalog.size} functions)")
    return FunctionContext(
        properties=properties,
        json_mapper=json_mapper,
        catalog=catalog,
        inspector=inspector,
        router=router,
    )
