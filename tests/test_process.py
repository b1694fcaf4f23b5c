"""Tests for running and measuring wrapped commands."""

import os
import signal

import pytest

from tests.fixtures import python_command
from tracebuild.errors import ChildSpawnFailure
from tracebuild.process import ChildResult, run_child


class TestRunChild:
    @pytest.mark.short
    def test_exit_code_is_reported(self):
        result = run_child(python_command("import sys; sys.exit(3)"))
        assert result.returncode == 3
        assert result.exit_code == 3
        assert result.term_signal is None
        assert result.start <= result.end

    @pytest.mark.short
    def test_duration_covers_the_child(self):
        result = run_child(python_command("import time; time.sleep(0.2)"))
        assert result.returncode == 0
        assert result.end - result.start >= 200_000_000

    @pytest.mark.short
    def test_terminated_by_signal(self, capture_logs):
        result = run_child(
            python_command("import os, signal; os.kill(os.getpid(), signal.SIGTERM)")
        )
        assert result.returncode == -signal.SIGTERM
        assert result.term_signal is signal.SIGTERM
        assert result.exit_code == 128 + signal.SIGTERM
        assert "terminated by SIGTERM" in capture_logs.getvalue()

    @pytest.mark.short
    def test_environment_is_passed(self, tmp_path):
        marker = tmp_path / "env.txt"
        run_child(
            python_command(
                f"import os; open({str(marker)!r}, 'w').write(os.environ['MARKER'])"
            ),
            env={**os.environ, "MARKER": "value"},
        )
        assert marker.read_text() == "value"

    @pytest.mark.short
    def test_spawn_failure(self, tmp_path):
        with pytest.raises(ChildSpawnFailure) as excinfo:
            run_child([str(tmp_path / "does-not-exist")])
        assert excinfo.value.exit_code == 71

    @pytest.mark.short
    def test_signal_handlers_are_restored(self):
        before = signal.getsignal(signal.SIGTERM)
        run_child(python_command("pass"))
        assert signal.getsignal(signal.SIGTERM) is before


class TestChildResult:
    @pytest.mark.short
    def test_exit_code_mapping(self):
        assert ChildResult(0, 1, 0).exit_code == 0
        assert ChildResult(0, 1, 255).exit_code == 255
        assert ChildResult(0, 1, -signal.SIGKILL).exit_code == 137
        assert ChildResult(0, 1, -signal.SIGKILL).term_signal is signal.SIGKILL
