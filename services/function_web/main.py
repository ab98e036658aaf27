"""
Function Web - HTTP surface for the function catalog

Exposes every registered function (and compositions such as "a|b") over
HTTP. Functions come from package scanning and, when FUNCTIONS_LOCATION is
set, from a deployed function archive.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from services.common.core.logging_config import setup_logging
from services.function_deployer.arguments import ApplicationArguments

from .api.routes import router
from .config import WebConfig
from .exceptions import register_exception_handlers
from .lifecycle import manage_lifespan
from .middleware import invocation_context_middleware

logger = logging.getLogger("function.web")


def create_app(
    config: Optional[WebConfig] = None,
    arguments: Optional[ApplicationArguments] = None,
    **context_options,
) -> FastAPI:
    """
    Assemble the FastAPI application.

    Args:
        config: web configuration (read from the environment when missing)
        arguments: application arguments handed to the archive bootstrap
        context_options: extra keyword arguments for build_function_context
            (message_converters, type_converters, json_encoder, ...)
    """
    web_config = config or WebConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with manage_lifespan(app, web_config):
            yield

    app = FastAPI(
        title="Function Web", version="1.0.0", lifespan=lifespan, root_path=web_config.root_path
    )
    app.state.config = web_config
    app.state.arguments = arguments
    app.state.context_options = context_options

    app.middleware("http")(invocation_context_middleware)
    register_exception_handlers(app)
    app.include_router(router)
    return app


setup_logging(WebConfig().LOG_CONFIG_PATH)

app = create_app()
