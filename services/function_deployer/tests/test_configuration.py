import pytest

from services.function_deployer.arguments import ApplicationArguments
from services.function_deployer.configuration import (
    function_archive_deployer,
    load_function_properties,
)
from services.function_deployer.exceptions import ArchiveError
from services.function_deployer.lifecycle import FunctionArchiveLifecycle


def test_load_properties_from_mapping():
    environ = {"FUNCTIONS_DEFINITION": "reverse", "FUNCTIONS_SCAN_ENABLED": "false"}

    properties = load_function_properties(environ=environ)

    assert properties.FUNCTIONS_DEFINITION == "reverse"
    assert properties.FUNCTIONS_SCAN_ENABLED is False


def test_load_properties_applies_legacy_names():
    environ = {"FUNCTION_NAME": "uppercase"}
    arguments = ApplicationArguments(["--function.location=/opt/app"])

    properties = load_function_properties(arguments, environ=environ)

    assert properties.FUNCTIONS_DEFINITION == "uppercase"
    assert properties.FUNCTIONS_LOCATION == "/opt/app"


def test_overrides_take_precedence():
    environ = {"FUNCTIONS_DEFINITION": "reverse"}

    properties = load_function_properties(
        environ=environ, FUNCTIONS_DEFINITION="uppercase", FUNCTIONS_LOCATION=None
    )

    assert properties.FUNCTIONS_DEFINITION == "uppercase"


def test_load_properties_from_process_environment(monkeypatch):
    monkeypatch.setenv("FUNCTIONS_DEFINITION", "reverse")

    assert load_function_properties().FUNCTIONS_DEFINITION == "reverse"


def test_archive_deployer_requires_location(registry, make_properties):
    with pytest.raises(ArchiveError):
        function_archive_deployer(make_properties(), registry)


def test_archive_deployer_missing_location(tmp_path, registry, make_properties):
    properties = make_properties(FUNCTIONS_LOCATION=str(tmp_path / "missing.zip"))

    with pytest.raises(ArchiveError):
        function_archive_deployer(properties, registry)


def test_archive_deployer_lifecycle(exploded_archive, registry, make_properties):
    properties = make_properties(FUNCTIONS_LOCATION=str(exploded_archive()))
    arguments = ApplicationArguments(["--greeting=hi"])

    lifecycle = function_archive_deployer(properties, registry, arguments)

    assert isinstance(lifecycle, FunctionArchiveLifecycle)
    assert lifecycle.args == ["--greeting=hi"]
    assert lifecycle.registry is registry
    assert not lifecycle.is_running()
