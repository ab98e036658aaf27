import io

import pytest

from services.function_deployer.cli import build_parser, main


@pytest.fixture(autouse=True)
def cli_environment(monkeypatch):
    monkeypatch.setenv("FUNCTIONS_SCAN_ENABLED", "false")
    # Restored after each test; legacy arguments write the current names.
    monkeypatch.setenv("FUNCTIONS_DEFINITION", "")
    monkeypatch.setenv("FUNCTIONS_LOCATION", "")


@pytest.fixture
def base_args(exploded_archive, package_name, tmp_path):
    return [
        "--location",
        str(exploded_archive()),
        "--function-class",
        f"{package_name}.text:uppercase;{package_name}.text:reverse",
        "--log-config",
        str(tmp_path / "no-logging.yml"),
    ]


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_list(base_args, capsys):
    assert main(base_args + ["list"]) == 0

    lines = [line for line in capsys.readouterr().out.splitlines() if "\t" in line]
    assert lines == ["functionRouter\tfunction", "reverse\tfunction", "uppercase\tfunction"]


def test_invoke_with_payload(base_args, capsys):
    code = main(base_args + ["--definition", "uppercase|reverse", "invoke", "--payload", "abc"])

    assert code == 0
    assert "CBA" in capsys.readouterr().out.splitlines()


def test_invoke_reads_stdin(base_args, capsys, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("hello"))

    assert main(base_args + ["--definition", "uppercase", "invoke"]) == 0
    assert "HELLO" in capsys.readouterr().out.splitlines()


def test_invoke_with_legacy_argument(base_args, capsys):
    code = main(base_args + ["invoke", "--payload", "abc", "--function.name=reverse"])

    assert code == 0
    assert "cba" in capsys.readouterr().out.splitlines()


def test_invoke_unknown_function(base_args, capsys):
    assert main(base_args + ["--definition", "missing", "invoke", "--payload", "x"]) == 1
    assert "Function not found: missing" in capsys.readouterr().err


def test_missing_archive(tmp_path, capsys):
    code = main(
        [
            "--location",
            str(tmp_path / "missing.zip"),
            "--log-config",
            str(tmp_path / "no-logging.yml"),
            "list",
        ]
    )

    assert code == 1
    assert "Failed to create archive" in capsys.readouterr().err
