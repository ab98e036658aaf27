"""
Function archive deployer.

Deploys the functions packaged in an archive into a FunctionRegistry and
removes them again on undeploy.

Targets are resolved, in order, from:
1. FUNCTIONS_FUNCTION_CLASS ("module:attribute" entries)
2. the archive manifest (functions.yml at the archive root)
3. package scanning inside the archive (manifest "scan" or FUNCTIONS_SCAN_PACKAGES)

Manifest example:
    bootstrap: "app.startup:configure"   # called with the application arguments
    functions:
      uppercase:
        handler: "app.text:uppercase"
      reverse: "app.text:reverse"
"""

import importlib
import inspect
import logging
import os
import string
import sys
from typing import Any, Dict, List, Optional, Sequence, Set, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from services.function_context.config import FunctionProperties
from services.function_context.services.catalog import (
    FunctionRegistration,
    FunctionRegistry,
    default_function_name,
)
from services.function_context.services.scanning import scan_packages

from .archive import Archive
from .exceptions import DeploymentError

logger = logging.getLogger("function.deployer")

MANIFEST_NAME = "functions.yml"


class FunctionSpec(BaseModel):
    """A function entry of the archive manifest."""

    handler: str
    properties: Dict[str, Any] = Field(default_factory=dict)


class ArchiveManifest(BaseModel):
    """Parsed functions.yml."""

    bootstrap: Optional[str] = None
    scan: Optional[Union[str, List[str]]] = None
    functions: Dict[str, Union[str, FunctionSpec]] = Field(default_factory=dict)

    @property
    def scan_packages(self) -> List[str]:
        if self.scan is None:
            return []
        if isinstance(self.scan, str):
            return [p.strip() for p in self.scan.split(",") if p.strip()]
        return list(self.scan)


def load_target(reference: str) -> Any:
    """
    Import the object named by "package.module:attribute".

    "package.module.attribute" is accepted as well.
    """
    if ":" in reference:
        module_name, _, attribute = reference.partition(":")
    else:
        module_name, _, attribute = reference.rpartition(".")
    if not module_name or not attribute:
        raise ValueError(f"Invalid function reference '{reference}'")

    target: Any = importlib.import_module(module_name)
    for part in attribute.split("."):
        target = getattr(target, part)
    return target


class FunctionArchiveDeployer:
    """
    Deploys one archive; tracks what it registered and imported so that
    undeploy() can reverse it.
    """

    def __init__(self, archive: Archive):
        self.archive = archive
        self._registry: Optional[FunctionRegistry] = None
        self._function_names: List[str] = []
        self._modules: List[str] = []
        self._path_entry: Optional[str] = None
        self._deployed = False

    @property
    def deployed(self) -> bool:
        return self._deployed

    @property
    def function_names(self) -> List[str]:
        return list(self._function_names)

    # =========================================
    # Deploy / Undeploy
    # =========================================

    def deploy(
        self,
        registry: FunctionRegistry,
        properties: FunctionProperties,
        args: Sequence[str] = (),
    ) -> List[str]:
        """
        Deploy the archive's functions into registry.

        Returns:
            Names registered by this deployment

        Raises:
            DeploymentError: nothing to deploy, import failure, duplicate
                name or unresolvable FUNCTIONS_DEFINITION (already rolled back)
        """
        if self._deployed:
            raise DeploymentError(str(self.archive.location), "archive is already deployed")

        modules_before = set(sys.modules)
        self._registry = registry
        self._path_entry = self.archive.path_entry
        sys.path.insert(0, self._path_entry)
        importlib.invalidate_caches()
        self._deployed = True

        try:
            for registration in self._resolve_registrations(properties, list(args)):
                registry.register(registration)
                self._function_names.extend(registration.names)

            definition = properties.FUNCTIONS_DEFINITION
            if definition and registry.lookup(definition) is None:
                raise DeploymentError(
                    str(self.archive.location), f"function definition '{definition}' not found"
                )
        except Exception as e:
            self._track_modules(modules_before)
            self.undeploy()
            if isinstance(e, DeploymentError):
                raise
            raise DeploymentError(str(self.archive.location), str(e)) from e

        self._track_modules(modules_before)
        logger.info(
            f"Deployed {len(self._function_names)} functions from {self.archive.location}: "
            f"{', '.join(self._function_names)}"
        )
        return self.function_names

    def undeploy(self) -> None:
        """
        Remove the deployed functions, modules and sys.path entry.

        Safe to call when nothing is deployed.
        """
        if not self._deployed:
            return

        if self._registry is not None:
            for name in self._function_names:
                self._registry.unregister(name)

        for module_name in self._modules:
            sys.modules.pop(module_name, None)

        if self._path_entry is not None:
            if self._path_entry in sys.path:
                sys.path.remove(self._path_entry)
            sys.path_importer_cache.pop(self._path_entry, None)
        importlib.invalidate_caches()
        self.archive.close()

        logger.info(f"Undeployed {len(self._function_names)} functions from {self.archive.location}")
        self._registry = None
        self._function_names = []
        self._modules = []
        self._path_entry = None
        self._deployed = False

    # =========================================
    # Target resolution
    # =========================================

    def _resolve_registrations(
        self,
        properties: FunctionProperties,
        args: List[str],
    ) -> List[FunctionRegistration]:
        manifest = self._read_manifest()

        if manifest is not None and manifest.bootstrap:
            logger.info(f"Running archive bootstrap: {manifest.bootstrap}")
            load_target(manifest.bootstrap)(args)

        targets = properties.function_targets
        if targets:
            return [self._registration_for(reference) for reference in targets]

        if manifest is not None and manifest.functions:
            registrations = []
            for name, spec in manifest.functions.items():
                if isinstance(spec, str):
                    spec = FunctionSpec(handler=spec)
                target = self._instantiate(load_target(spec.handler))
                registrations.append(FunctionRegistration.of(target, name, **spec.properties))
            return registrations

        packages = (manifest.scan_packages if manifest is not None else []) or properties.scan_packages
        registrations = [
            r for r in scan_packages(packages) if self._is_archive_module(self._module_of(r.target))
        ]
        if not registrations:
            raise DeploymentError(
                str(self.archive.location), f"no functions found in packages {packages}"
            )
        return registrations

    def _read_manifest(self) -> Optional[ArchiveManifest]:
        raw = self.archive.read(MANIFEST_NAME)
        if raw is None:
            return None

        # Substitute environment variables using string.Template.
        content = string.Template(raw.decode("utf-8")).safe_substitute(os.environ)
        try:
            data = yaml.safe_load(content) or {}
            return ArchiveManifest.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            raise DeploymentError(str(self.archive.location), f"invalid {MANIFEST_NAME}: {e}") from e

    def _registration_for(self, reference: str) -> FunctionRegistration:
        obj = load_target(reference)
        target = self._instantiate(obj)
        if inspect.isclass(obj):
            name = default_function_name(target)
        else:
            name = reference.replace(":", ".").rsplit(".", 1)[-1]
        return FunctionRegistration.of(target, name)

    @staticmethod
    def _instantiate(obj: Any) -> Any:
        return obj() if inspect.isclass(obj) else obj

    # =========================================
    # Module tracking
    # =========================================

    @staticmethod
    def _module_of(target: Any) -> Optional[str]:
        if inspect.isfunction(target) or inspect.ismethod(target):
            return target.__module__
        return type(target).__module__

    def _is_archive_module(self, module_name: Optional[str]) -> bool:
        if module_name is None or self._path_entry is None:
            return False
        module = sys.modules.get(module_name)
        if module is None:
            return False

        prefix = self._path_entry + os.sep
        origin = getattr(module, "__file__", None)
        if origin:
            return os.path.abspath(origin).startswith(prefix)
        paths = list(getattr(module, "__path__", []) or [])
        return bool(paths) and all(os.path.abspath(p).startswith(prefix) for p in paths)

    def _track_modules(self, modules_before: Set[str]) -> None:
        self._modules = sorted(
            name for name in set(sys.modules) - modules_before if self._is_archive_module(name)
        )
