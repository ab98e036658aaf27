import sys

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from services.function_deployer.arguments import ApplicationArguments
from services.function_web.config import WebConfig
from services.function_web.lifecycle import manage_lifespan
from services.function_web.main import create_app


def test_archive_deployed_for_application_lifetime(function_archive):
    root, package = function_archive
    config = WebConfig(
        FUNCTIONS_SCAN_ENABLED=False,
        FUNCTIONS_LOCATION=str(root),
        FUNCTIONS_FUNCTION_CLASS=f"{package}.handlers:shout",
    )
    app = create_app(config, ApplicationArguments(["--mode=test"]))

    with TestClient(app) as client:
        response = client.post("/shout", content=b"hey", headers={"Content-Type": "text/plain"})
        processor = app.state.lifecycle_processor

        assert response.content == b"HEY!"
        assert processor.is_running()
        assert processor.lifecycles[0].args == ["--mode=test"]

    assert not processor.is_running()
    assert "shout" not in app.state.function_context.catalog
    assert str(root.resolve()) not in sys.path


def test_no_archive_configured():
    app = create_app(WebConfig(FUNCTIONS_SCAN_ENABLED=False))

    with TestClient(app):
        assert app.state.lifecycle_processor.lifecycles == []
        assert app.state.function_context.catalog.get_names() == {"functionRouter"}


def test_bind_address():
    config = WebConfig(UVICORN_BIND_ADDR="127.0.0.1:9000")

    assert config.bind_host == "127.0.0.1"
    assert config.bind_port == 9000


@pytest.mark.asyncio
async def test_manage_lifespan_without_app_options():
    app = FastAPI()

    async with manage_lifespan(app, WebConfig(FUNCTIONS_SCAN_ENABLED=False)):
        assert "functionRouter" in app.state.function_context.catalog
        assert not app.state.lifecycle_processor.is_running()
