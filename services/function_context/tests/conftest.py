import sys
import textwrap
import uuid

import pytest

from services.function_context.auto_configuration import function_catalog
from services.function_context.config import FunctionProperties


@pytest.fixture
def properties():
    """Properties with package scanning disabled."""
    return FunctionProperties(FUNCTIONS_SCAN_ENABLED=False)


@pytest.fixture
def catalog(properties):
    """Catalog with the default message converters."""
    return function_catalog(properties)


@pytest.fixture
def package_factory(tmp_path, monkeypatch):
    """Create importable packages with unique names; unload them afterwards."""
    created = []

    def create(files):
        name = f"scanned_{uuid.uuid4().hex[:8]}"
        for relative, content in files.items():
            path = tmp_path / name / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content), encoding="utf-8")
        created.append(name)
        return name

    monkeypatch.syspath_prepend(str(tmp_path))
    yield create
    for module in list(sys.modules):
        if any(module == n or module.startswith(f"{n}.") for n in created):
            del sys.modules[module]
