"""
Function context configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

from typing import List, Optional

from pydantic import Field

from services.common.core.config import BaseAppConfig


class FunctionProperties(BaseAppConfig):
    """
    Configuration for the function catalog and the archive deployer.
    """

    # Function selection
    FUNCTIONS_DEFINITION: str = Field(
        default="", description="Default function definition (name or 'a|b' composition)"
    )
    FUNCTIONS_ROUTING_EXPRESSION: Optional[str] = Field(
        default=None, description="Routing expression used by functionRouter"
    )

    # Archive deployment
    FUNCTIONS_LOCATION: Optional[str] = Field(
        default=None, description="Directory or zip archive holding deployable functions"
    )
    FUNCTIONS_FUNCTION_CLASS: str = Field(
        default="", description="Explicit 'module:attribute' targets to deploy (';' separated)"
    )

    # Package scanning
    FUNCTIONS_SCAN_ENABLED: bool = Field(default=True, description="Scan packages for functions")
    FUNCTIONS_SCAN_PACKAGES: str = Field(
        default="functions", description="Comma separated packages to scan"
    )

    # Serialization
    PREFERRED_JSON_MAPPER: Optional[str] = Field(
        default=None, description="Preferred JSON mapper: 'json' or 'pydantic'"
    )

    @property
    def scan_packages(self) -> List[str]:
        return [p.strip() for p in self.FUNCTIONS_SCAN_PACKAGES.split(",") if p.strip()]

    @property
    def function_targets(self) -> List[str]:
        raw = self.FUNCTIONS_FUNCTION_CLASS.replace(",", ";")
        return [t.strip() for t in raw.split(";") if t.strip()]
