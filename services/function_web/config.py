"""
Function web configuration definition.

Extends FunctionProperties with HTTP server settings.
"""

from pydantic import Field

from services.function_context.config import FunctionProperties


class WebConfig(FunctionProperties):
    """
    Configuration for the HTTP invocation surface.
    """

    # Server settings
    UVICORN_BIND_ADDR: str = Field(default="0.0.0.0:8080", description="Listen address")

    # FastAPI settings
    root_path: str = Field(default="", description="API root path (for proxy)")

    @property
    def bind_host(self) -> str:
        return self.UVICORN_BIND_ADDR.rsplit(":", 1)[0] or "0.0.0.0"

    @property
    def bind_port(self) -> int:
        return int(self.UVICORN_BIND_ADDR.rsplit(":", 1)[1])
