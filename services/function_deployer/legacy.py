"""
Legacy property support.

Older deployments configure the function with "function.name" and
"function.location". They are translated into FUNCTIONS_DEFINITION and
FUNCTIONS_LOCATION before FunctionProperties is loaded.
"""

import logging
import os
from typing import Dict, MutableMapping, Optional, Tuple

from .arguments import ApplicationArguments

logger = logging.getLogger("function.legacy")

# legacy name -> (environment spelling, current name)
LEGACY_PROPERTIES: Dict[str, Tuple[str, str]] = {
    "function.name": ("FUNCTION_NAME", "FUNCTIONS_DEFINITION"),
    "function.location": ("FUNCTION_LOCATION", "FUNCTIONS_LOCATION"),
}


class LegacyPropertyProcessor:
    """
    Copies legacy property values onto their current names.

    Sources, highest precedence first: "--function.name=..." application
    arguments, then the environment ("function.name" or "FUNCTION_NAME").
    A legacy value overrides the current property.
    """

    def _legacy_value(
        self,
        legacy_name: str,
        env_name: str,
        environ: MutableMapping[str, str],
        arguments: Optional[ApplicationArguments],
    ) -> Optional[str]:
        if arguments is not None:
            values = arguments.get_option_values(legacy_name)
            if values:
                return values[-1]
        if legacy_name in environ:
            return environ[legacy_name]
        return environ.get(env_name)

    def process(
        self,
        environ: Optional[MutableMapping[str, str]] = None,
        arguments: Optional[ApplicationArguments] = None,
    ) -> Dict[str, str]:
        """
        Apply legacy properties to environ (os.environ by default).

        Returns:
            The current names that were set, with their values
        """
        if environ is None:
            environ = os.environ

        applied = {}
        for legacy_name, (env_name, current_name) in LEGACY_PROPERTIES.items():
            value = self._legacy_value(legacy_name, env_name, environ, arguments)
            if value is None:
                continue
            environ[current_name] = value
            applied[current_name] = value
            logger.info(f"Legacy property '{legacy_name}' applied as {current_name}")
        return applied
