"""
Where: services/function_web/lifecycle.py
What: Startup/shutdown orchestration for the function context and archive deployer.
Why: Keep main.py focused on app assembly.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from services.function_context.auto_configuration import build_function_context
from services.function_deployer.configuration import function_archive_deployer
from services.function_deployer.lifecycle import LifecycleProcessor

from .config import WebConfig

logger = logging.getLogger("function.web")


@asynccontextmanager
async def manage_lifespan(app: FastAPI, web_config: WebConfig) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    processor: Optional[LifecycleProcessor] = None
    context_options = getattr(app.state, "context_options", {}) or {}

    try:
        context = build_function_context(web_config, **context_options)

        processor = LifecycleProcessor()
        if web_config.FUNCTIONS_LOCATION:
            processor.add(
                function_archive_deployer(
                    web_config,
                    context.catalog,
                    getattr(app.state, "arguments", None),
                )
            )
        processor.start()

        app.state.function_context = context
        app.state.lifecycle_processor = processor

        logger.info(
            "Function web initialized with functions: %s",
            ", ".join(sorted(context.catalog.get_names())),
        )
        yield
    finally:
        if processor is not None and processor.is_running():
            processor.stop()
        logger.info("Function web shutting down.")
