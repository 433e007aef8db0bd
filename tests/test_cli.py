from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from mcp_log_diagnosis_server import cli

_KEY_VARS = (
    "LOG_DIAGNOSIS_AI_API_KEY",
    "LOG_DIAGNOSIS_AI_MOCK_MODE",
    "LOG_DIAGNOSIS_AI_PROVIDER",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "OPENAI_API_KEY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in _KEY_VARS:
        monkeypatch.delenv(name, raising=False)


def test_cli_rule_match_exits_zero(tmp_path: Path, write_log, capsys) -> None:
    path = tmp_path / "build.log"
    write_log(path, "npm ERR! code E404\nnpm ERR! 404 Not Found - GET https://registry.npmjs.org/nope\n")

    code = cli.main(["--mock", str(path)])

    out = json.loads(capsys.readouterr().out)
    assert code == cli.EXIT_OK
    assert out["source"] == "rules:npm_install_failure"


def test_cli_no_rules_uses_stand_in(tmp_path: Path, write_log, capsys) -> None:
    path = tmp_path / "build.log"
    write_log(path, "npm ERR! code E404\n")

    code = cli.main(["--mock", "--no-rules", "--compact", str(path)])

    out = json.loads(capsys.readouterr().out)
    assert code == cli.EXIT_OK
    assert out["source"] == "ai"
    assert out["result"]["error_type"] == "mock_error"


def test_cli_reads_stdin(monkeypatch, capsys) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("Error: port 3000 is already allocated\n"))

    code = cli.main(["--mock", "-"])

    assert code == cli.EXIT_OK
    assert json.loads(capsys.readouterr().out)["source"] == "rules:port_in_use"


def test_cli_empty_log_exits_one(tmp_path: Path, write_log, capsys) -> None:
    path = tmp_path / "empty.log"
    write_log(path, "\n\n")

    code = cli.main(["--mock", str(path)])

    out = json.loads(capsys.readouterr().out)
    assert code == cli.EXIT_FAILED
    assert out["error"] == "log content is empty"


def test_cli_missing_file_exits_two(tmp_path: Path, capsys) -> None:
    code = cli.main(["--mock", str(tmp_path / "nope.log")])

    assert code == cli.EXIT_USAGE
    assert "File not found" in capsys.readouterr().err


def test_cli_missing_api_key_exits_two(tmp_path: Path, write_log, capsys) -> None:
    path = tmp_path / "build.log"
    write_log(path, "boom\n")

    code = cli.main([str(path)])

    assert code == cli.EXIT_USAGE
    assert "AI_API_KEY" in capsys.readouterr().err


def test_cli_rejects_bad_threshold(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--mock", "--threshold", "2", "-"])

    assert excinfo.value.code == 2
