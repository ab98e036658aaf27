"""
Deployer wiring.

Loads FunctionProperties (honoring legacy property names) and creates the
lifecycle that deploys the configured archive.
"""

import logging
import os
from typing import MutableMapping, Optional

from services.function_context.config import FunctionProperties
from services.function_context.services.catalog import FunctionRegistry

from .archive import create_archive
from .arguments import ApplicationArguments
from .deployer import FunctionArchiveDeployer
from .exceptions import ArchiveError
from .legacy import LegacyPropertyProcessor
from .lifecycle import FunctionArchiveLifecycle

logger = logging.getLogger("function.deployer")


def load_function_properties(
    arguments: Optional[ApplicationArguments] = None,
    environ: Optional[MutableMapping[str, str]] = None,
    **overrides,
) -> FunctionProperties:
    """
    Load FunctionProperties from the environment after applying legacy names.

    Keyword overrides (e.g. FUNCTIONS_LOCATION="...") take precedence.
    """
    if environ is None:
        environ = os.environ
    LegacyPropertyProcessor().process(environ, arguments)

    values = {k: v for k, v in overrides.items() if v is not None}
    if environ is os.environ:
        return FunctionProperties(**values)

    # pydantic-settings reads os.environ; feed an explicit mapping field by field.
    for name in FunctionProperties.model_fields:
        if name in environ and name not in values:
            values[name] = environ[name]
    return FunctionProperties(**values)


def function_archive_deployer(
    properties: FunctionProperties,
    registry: FunctionRegistry,
    arguments: Optional[ApplicationArguments] = None,
) -> FunctionArchiveLifecycle:
    """
    Create the lifecycle that deploys FUNCTIONS_LOCATION into registry.

    Raises:
        ArchiveError: no location configured, or it does not exist / cannot
            be opened
    """
    location = properties.FUNCTIONS_LOCATION
    if not location:
        raise ArchiveError("<unset>", "FUNCTIONS_LOCATION is not configured")

    archive = create_archive(location)
    deployer = FunctionArchiveDeployer(archive)
    args = arguments.source_args if arguments is not None else []
    logger.debug(f"Created archive deployer for {archive!r}")
    return FunctionArchiveLifecycle(deployer, registry, properties, args)
