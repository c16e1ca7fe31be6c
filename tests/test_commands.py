import sys

import pytest

from mac_bootstrap.commands import CommandRunner
from mac_bootstrap.errors import CommandError


def test_missing_executable_is_a_command_error():
    with pytest.raises(CommandError) as excinfo:
        CommandRunner().run(["mac-bootstrap-no-such-tool"])
    assert excinfo.value.returncode == 127


def test_non_zero_exit_raises_when_checked():
    argv = [sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(3)"]
    with pytest.raises(CommandError) as excinfo:
        CommandRunner().run(argv)
    assert excinfo.value.returncode == 3
    assert "nope" in excinfo.value.stderr

    result = CommandRunner().run(argv, check=False)
    assert result.returncode == 3


def test_env_is_added_to_the_current_environment(monkeypatch):
    monkeypatch.setenv("MAC_BOOTSTRAP_INHERITED", "kept")
    code = "import os; print(os.environ['MAC_BOOTSTRAP_INHERITED'], os.environ['RUNZSH'])"
    result = CommandRunner().run([sys.executable, "-c", code], env={"RUNZSH": "no"})
    assert result.stdout.split() == ["kept", "no"]


def test_which_and_is_executable():
    runner = CommandRunner()
    assert runner.which("mac-bootstrap-no-such-tool") is None
    assert runner.is_executable(sys.executable)
    assert not runner.is_executable("/nonexistent/bin/brew")
