import sys
import uuid
from typing import List

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from services.function_context.services.catalog import FunctionRegistration
from services.function_web.config import WebConfig
from services.function_web.main import create_app

consumed: List[str] = []


class Person(BaseModel):
    name: str


def uppercase(value: str) -> str:
    return value.upper()


def reverse(value: str) -> str:
    return value[::-1]


def words() -> dict:
    return {"words": ["hello", "world"]}


def record(value: str) -> None:
    consumed.append(value)


def greet(person: Person) -> dict:
    return {"greeting": f"Hello {person.name}"}


def explode(value: str) -> str:
    raise RuntimeError("function exploded")


FUNCTIONS = [uppercase, reverse, words, record, greet, explode]


@pytest.fixture
def consumed_values():
    return consumed


@pytest.fixture
def web_config():
    return WebConfig(FUNCTIONS_SCAN_ENABLED=False)


@pytest.fixture
def app(web_config):
    consumed.clear()
    return create_app(
        web_config, functions=[FunctionRegistration.of(target) for target in FUNCTIONS]
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def function_archive(tmp_path):
    """Exploded archive with a uniquely named package; unloaded afterwards."""
    package = f"webpkg_{uuid.uuid4().hex[:8]}"
    root = tmp_path / "archive"
    (root / package).mkdir(parents=True)
    (root / package / "__init__.py").write_text("")
    (root / package / "handlers.py").write_text(
        "def shout(value: str) -> str:\n    return value.upper() + '!'\n"
    )
    saved_path = list(sys.path)
    yield root, package
    sys.path[:] = saved_path
    for name in [m for m in sys.modules if m == package or m.startswith(f"{package}.")]:
        del sys.modules[name]
