"""
Tests for the headless session runner script.
"""

import importlib.util
import sys
from pathlib import Path

import pytest


SCRIPT_PATH = Path(__file__).parent.parent / "scripts" / "run_session.py"


@pytest.fixture(scope="module")
def run_session():
    spec = importlib.util.spec_from_file_location("run_session", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestCommandScript:
    """Tests for timed command files."""

    def test_lines_sorted_by_time(self, run_session, tmp_path):
        path = tmp_path / "commands.txt"
        path.write_text("# warmup\n30 UAL123 C 40\n\n5 AAL456 C 50 T\nsoon UAL123 C OBK\n")

        script = run_session.load_command_script(path)

        assert script == [(5.0, "AAL456 C 50 T"), (30.0, "UAL123 C 40")]

    def test_missing_command_file_exits_cleanly(self, run_session, tmp_path, monkeypatch):
        missing = tmp_path / "missing.txt"
        monkeypatch.setattr(sys, "argv", ["run_session.py", "--duration", "1", "--commands", str(missing)])

        assert run_session.main() == 1

    def test_short_session_runs(self, run_session, tmp_path, monkeypatch, capsys):
        path = tmp_path / "commands.txt"
        path.write_text("0.5 UAL123 C 40\n")
        monkeypatch.setattr(sys, "argv", ["run_session.py", "--seed", "1", "--duration", "2", "--commands", str(path)])

        assert run_session.main() == 0
        assert "Score:" in capsys.readouterr().out
