"""
Function invocation endpoints.

POST /{definition}   invoke a function (or "a|b" composition) with the request body
GET  /{definition}   invoke a supplier
POST /               invoke the default function
"""

import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from services.function_context.core.exceptions import FunctionNotFoundError
from services.function_context.core.json_mapper import JsonMapper
from services.function_context.models.message import Message, MessageHeaders
from services.function_context.services.catalog import FunctionInvocationWrapper

from .deps import AcceptedOutputTypesDep, FunctionCatalogDep, FunctionInspectorDep, JsonMapperDep

logger = logging.getLogger("function.web")

router = APIRouter()

# Request headers copied into message headers verbatim.
FUNCTION_HEADER_PREFIX = "function."


def _describe_type(value: Any) -> Optional[str]:
    if value is None:
        return None
    if inspect.isclass(value):
        return value.__name__
    return str(value).replace("typing.", "")


def _message_from_request(request: Request, body: bytes) -> Message:
    headers: Dict[str, Any] = {
        name: value
        for name, value in request.headers.items()
        if name.startswith(FUNCTION_HEADER_PREFIX)
    }
    content_type = request.headers.get("content-type")
    if content_type:
        headers[MessageHeaders.CONTENT_TYPE] = content_type
    return Message(payload=body, headers=headers)


def _to_response(function: FunctionInvocationWrapper, result: Any, json_mapper: JsonMapper) -> Response:
    if function.is_consumer():
        return Response(status_code=status.HTTP_202_ACCEPTED)
    if result is None:
        return Response(status_code=status.HTTP_200_OK)
    if isinstance(result, Message):
        payload = result.payload
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        elif not isinstance(payload, (bytes, bytearray)):
            payload = json_mapper.to_json(payload)
        return Response(
            content=bytes(payload),
            media_type=result.headers.get(MessageHeaders.CONTENT_TYPE, "application/octet-stream"),
        )
    return Response(content=json_mapper.to_json(result), media_type="application/json")


def _lookup(catalog, definition: str, accepted) -> FunctionInvocationWrapper:
    function = catalog.lookup(definition, *accepted)
    if function is None:
        raise FunctionNotFoundError(definition or "<default>")
    return function


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/functions")
async def list_functions(catalog: FunctionCatalogDep, inspector: FunctionInspectorDep):
    """List registered functions."""
    functions = []
    for name in sorted(catalog.get_names()):
        registration = inspector.get_registration(name)
        functions.append(
            {
                "name": name,
                "kind": registration.kind.value,
                "input_type": _describe_type(registration.input_type),
                "output_type": _describe_type(registration.output_type),
            }
        )
    return {"functions": functions}


async def _invoke(
    request: Request,
    definition: str,
    catalog,
    json_mapper: JsonMapper,
    accepted,
) -> Response:
    function = _lookup(catalog, definition, accepted)
    message = _message_from_request(request, await request.body())
    result = await run_in_threadpool(function, message)
    return _to_response(function, result, json_mapper)


@router.post("/")
async def invoke_default(
    request: Request,
    catalog: FunctionCatalogDep,
    json_mapper: JsonMapperDep,
    accepted: AcceptedOutputTypesDep,
):
    """Invoke the default function."""
    return await _invoke(request, "", catalog, json_mapper, accepted)


@router.post("/{definition:path}")
async def invoke_function(
    definition: str,
    request: Request,
    catalog: FunctionCatalogDep,
    json_mapper: JsonMapperDep,
    accepted: AcceptedOutputTypesDep,
):
    """Invoke a function with the request body as its input message."""
    return await _invoke(request, definition, catalog, json_mapper, accepted)


@router.get("/{definition:path}")
async def invoke_supplier(
    definition: str,
    catalog: FunctionCatalogDep,
    json_mapper: JsonMapperDep,
    accepted: AcceptedOutputTypesDep,
):
    """Invoke a supplier and return what it produces."""
    function = _lookup(catalog, definition, accepted)
    if not function.is_supplier():
        raise HTTPException(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            detail=f"Function '{definition}' is not a supplier; use POST",
        )
    result = await run_in_threadpool(function)
    return _to_response(function, result, json_mapper)
