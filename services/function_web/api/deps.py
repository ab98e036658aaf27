"""
Dependency Injection for the function API.

Manage request handler dependencies using FastAPI Depends.
"""

from typing import Annotated, List, Optional

from fastapi import Depends, Header, Request

from services.function_context.core.json_mapper import JsonMapper
from services.function_context.services.catalog import FunctionInspector, FunctionRegistry


# ==========================================
# 1. Service Accessors
# ==========================================


def get_function_catalog(request: Request) -> FunctionRegistry:
    return request.app.state.function_context.catalog


def get_function_inspector(request: Request) -> FunctionInspector:
    return request.app.state.function_context.inspector


def get_json_mapper(request: Request) -> JsonMapper:
    return request.app.state.function_context.json_mapper


# Service Dependency Type Aliases
FunctionCatalogDep = Annotated[FunctionRegistry, Depends(get_function_catalog)]
FunctionInspectorDep = Annotated[FunctionInspector, Depends(get_function_inspector)]
JsonMapperDep = Annotated[JsonMapper, Depends(get_json_mapper)]


# ==========================================
# 2. Request Dependencies
# ==========================================


def get_accepted_output_types(accept: Optional[str] = Header(None)) -> List[str]:
    """
    Parse the Accept header into content types, most preferred first.

    Quality parameters are honored for ordering and dropped; "*/*" alone
    means no preference.
    """
    if not accept:
        return []

    weighted = []
    for index, item in enumerate(accept.split(",")):
        parts = [p.strip() for p in item.split(";") if p.strip()]
        if not parts:
            continue
        quality = 1.0
        params = []
        for param in parts[1:]:
            if param.startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0
            else:
                params.append(param)
        if quality <= 0:
            continue
        weighted.append((-quality, index, ";".join([parts[0]] + params)))

    accepted = [value for _, _, value in sorted(weighted)]
    if accepted == ["*/*"]:
        return []
    return accepted


AcceptedOutputTypesDep = Annotated[List[str], Depends(get_accepted_output_types)]
