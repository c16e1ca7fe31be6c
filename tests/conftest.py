import os
import subprocess
from typing import Dict, List, Optional, Tuple

import pytest

from mac_bootstrap.commands import CommandRunner
from mac_bootstrap.config import BootstrapConfig
from mac_bootstrap.errors import CommandError


class FakeRunner(CommandRunner):
    """Records commands and emulates the ``defaults`` store in memory."""

    def __init__(self, tools=("brew", "defaults", "osascript"), store=None, executables=()) -> None:
        self.calls: List[List[str]] = []
        self.remote_scripts: List[Tuple[str, Optional[dict]]] = []
        self.tools = set(tools)
        self.store: Dict[Tuple[str, str, bool], str] = dict(store or {})
        self.returncodes: Dict[Tuple[str, ...], int] = {}
        self.fail_writes: set = set()
        self.missing_domains: set = set()
        self.executables = set(executables)

    def run(self, argv, check=True, interactive=False, env=None):
        argv = list(argv)
        self.calls.append(argv)
        if argv[0] == "sudo" and len(argv) > 1 and argv[1] == "defaults":
            argv = argv[1:]
        if argv[0] == "defaults":
            return self._defaults(argv, check)
        returncode = 0
        for prefix, code in self.returncodes.items():
            if (os.path.basename(argv[0]), *argv[1 : len(prefix)]) == prefix:
                returncode = code
        if check and returncode != 0:
            raise CommandError(argv, returncode, "boom")
        return subprocess.CompletedProcess(argv, returncode, "", "")

    def which(self, tool):
        return f"/opt/homebrew/bin/{tool}" if tool in self.tools else None

    def is_executable(self, path):
        return path in self.executables

    def fetch(self, url):
        return "echo install"

    def run_remote_script(self, url, env=None):
        self.remote_scripts.append((url, env))
        return subprocess.CompletedProcess(["/bin/bash"], 0, "", "")

    @property
    def writes(self) -> List[List[str]]:
        return [call for call in self.calls if "write" in call and "defaults" in call]

    def _defaults(self, argv, check):
        current_host = "-currentHost" in argv
        args = [a for a in argv[1:] if a != "-currentHost"]
        verb, domain, key = args[0], args[1], args[2]
        if verb == "read":
            if domain in self.missing_domains:
                stderr = f"2024-01-01 12:00:00.000 defaults[4242:1717] \nDomain {domain} does not exist"
                return subprocess.CompletedProcess(argv, 1, "", stderr)
            raw = self.store.get((domain, key, current_host))
            if raw is None:
                stderr = f"The domain/default pair of ({domain}, {key}) does not exist"
                return subprocess.CompletedProcess(argv, 1, "", stderr)
            return subprocess.CompletedProcess(argv, 0, raw + "\n", "")
        if key in self.fail_writes:
            if check:
                raise CommandError(argv, 1, "write failed")
            return subprocess.CompletedProcess(argv, 1, "", "write failed")
        self.store[(domain, key, current_host)] = _as_read_output(args[3], args[4:])
        return subprocess.CompletedProcess(argv, 0, "", "")


def _as_read_output(flag: str, values: List[str]) -> str:
    if flag == "-bool":
        return "1" if values[0] in ("true", "TRUE", "YES") else "0"
    if flag == "-array":
        body = ",\n".join(f"    {value}" for value in values)
        return f"(\n{body}\n)" if values else "(\n)"
    return values[0]


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def make_runner():
    return FakeRunner


@pytest.fixture
def config(tmp_path):
    return BootstrapConfig(
        brewfile=tmp_path / "Brewfile",
        ohmyzsh_dir=tmp_path / ".oh-my-zsh",
        restart_apps=["cfprefsd", "Dock", "Finder", "SystemUIServer"],
    )
