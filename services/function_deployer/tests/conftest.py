import sys
import textwrap
import uuid
import zipfile

import pytest

from services.function_context.auto_configuration import function_catalog
from services.function_context.config import FunctionProperties

TEXT_MODULE = """
def uppercase(value: str) -> str:
    return value.upper()


def reverse(value: str) -> str:
    return value[::-1]


class Exclaim:
    def __call__(self, value: str) -> str:
        return value + "!"
"""

BOOT_MODULE = """
received = []


def configure(args):
    received.append(list(args))
"""


@pytest.fixture(autouse=True)
def isolate_imports(tmp_path):
    """Restore sys.path and unload modules imported from tmp_path."""
    saved_path = list(sys.path)
    before = set(sys.modules)
    root = str(tmp_path.resolve())
    yield
    sys.path[:] = saved_path
    for name in set(sys.modules) - before:
        origin = getattr(sys.modules[name], "__file__", None) or ""
        if origin.startswith(root):
            del sys.modules[name]


@pytest.fixture
def package_name():
    """Unique top-level package name for archive contents."""
    return f"fnpkg_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def archive_files(package_name):
    return {
        f"{package_name}/__init__.py": "",
        f"{package_name}/text.py": TEXT_MODULE,
        f"{package_name}/boot.py": BOOT_MODULE,
    }


@pytest.fixture
def exploded_archive(tmp_path, archive_files):
    """Factory writing an exploded archive directory."""

    def create(extra=None, name="exploded"):
        root = tmp_path / name
        for relative, content in {**archive_files, **(extra or {})}.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content), encoding="utf-8")
        return root

    return create


@pytest.fixture
def zip_archive(tmp_path, archive_files):
    """Factory writing a zip archive."""

    def create(extra=None, name="functions.zip"):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as zf:
            for relative, content in {**archive_files, **(extra or {})}.items():
                zf.writestr(relative, textwrap.dedent(content))
        return path

    return create


@pytest.fixture
def registry():
    return function_catalog(FunctionProperties(FUNCTIONS_SCAN_ENABLED=False))


@pytest.fixture
def make_properties():
    def create(**values):
        values.setdefault("FUNCTIONS_SCAN_ENABLED", False)
        return FunctionProperties(**values)

    return create
