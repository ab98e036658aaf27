"""
Package scanning.

Discovers functions in the configured packages (FUNCTIONS_SCAN_PACKAGES,
"functions" by default). Every public function and every zero-argument
callable class defined in a scanned module is turned into a
FunctionRegistration.
"""

import importlib
import inspect
import logging
import pkgutil
from types import ModuleType
from typing import Iterable, List

from .catalog import FunctionRegistration, default_function_name

logger = logging.getLogger("function.scanning")


def _is_candidate_class(obj: type) -> bool:
    if inspect.isabstract(obj) or not any("__call__" in vars(k) for k in obj.__mro__[:-1]):
        return False
    try:
        signature = inspect.signature(obj)
    except (TypeError, ValueError):
        return False
    return all(
        p.default is not inspect.Parameter.empty
        or p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        for p in signature.parameters.values()
    )


def registrations_from_module(module: ModuleType) -> List[FunctionRegistration]:
    """
    Build registrations for the functions a module defines.

    Imported names are ignored; only objects whose __module__ is the module
    itself count.
    """
    registrations = []
    for name, obj in vars(module).items():
        if name.startswith("_") or getattr(obj, "__module__", None) != module.__name__:
            continue

        if inspect.isfunction(obj):
            registrations.append(FunctionRegistration.of(obj, name))
        elif inspect.isclass(obj) and _is_candidate_class(obj):
            instance = obj()
            registrations.append(FunctionRegistration.of(instance, default_function_name(instance)))
    return registrations


def _iter_modules(package: ModuleType) -> Iterable[ModuleType]:
    yield package
    path = getattr(package, "__path__", None)
    if path is None:
        return
    for info in pkgutil.walk_packages(path, prefix=f"{package.__name__}."):
        yield importlib.import_module(info.name)


def scan_packages(packages: Iterable[str]) -> List[FunctionRegistration]:
    """
    Import the given packages (and their submodules) and collect functions.

    Packages that cannot be found are skipped.
    """
    registrations: List[FunctionRegistration] = []
    for package_name in packages:
        try:
            package = importlib.import_module(package_name)
        except ModuleNotFoundError as e:
            if package_name == e.name or package_name.startswith(f"{e.name}."):
                logger.debug(f"Scan package not found, skipping: {package_name}")
                continue
            raise

        for module in _iter_modules(package):
            found = registrations_from_module(module)
            if found:
                logger.info(f"Discovered {len(found)} functions in {module.__name__}")
            registrations.extend(found)
    return registrations
