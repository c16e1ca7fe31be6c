"""Read Homebrew Bundle manifests and hand them to ``brew bundle``."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
import re
from typing import Any, Dict, List, Optional, Tuple

from .commands import CommandRunner
from .errors import ManifestError

logger = logging.getLogger(__name__)

KINDS = ("tap", "brew", "cask", "mas")
# Where the Homebrew installer puts brew on Apple silicon and on Intel Macs.
# A fresh install is not on PATH until the shell profile is reloaded.
BREW_LOCATIONS = ("/opt/homebrew/bin/brew", "/usr/local/bin/brew")

_DECLARATION = re.compile(r'^(?P<kind>[a-z_]+)\s+(?P<quote>["\'])(?P<name>.+?)(?P=quote)\s*(?:,\s*(?P<options>.*))?$')
_OPTION = re.compile(r"(?P<key>[a-z_]+):\s*")
# Brewfile verbs that exist but carry nothing we need to inspect.
_IGNORED_KINDS = {"cask_args", "whalebrew", "vscode", "go", "cargo"}


@dataclass
class BrewfileEntry:
    kind: str
    name: str
    options: Dict[str, Any] = field(default_factory=dict)
    line: int = 0


@dataclass
class Brewfile:
    path: Optional[Path]
    entries: List[BrewfileEntry] = field(default_factory=list)

    def by_kind(self, kind: str) -> List[BrewfileEntry]:
        return [entry for entry in self.entries if entry.kind == kind]

    def summary(self) -> Dict[str, int]:
        return {kind: len(self.by_kind(kind)) for kind in KINDS}


def parse_brewfile(text: str, source: Optional[str] = None) -> List[BrewfileEntry]:
    """Parse Brewfile declarations in order.

    Only the static subset of the Ruby DSL is understood: one declaration per
    line, a quoted name, then optional ``key: value`` options.
    """
    entries: List[BrewfileEntry] = []
    for number, raw_line in enumerate(text.splitlines(), start=1):
        line = _strip_comment(raw_line).strip()
        if not line:
            continue
        match = _DECLARATION.match(line)
        if not match:
            verb = line.split()[0]
            if verb in _IGNORED_KINDS:
                continue
            raise ManifestError(f"cannot parse declaration: {raw_line.strip()!r}", source, number)

        kind = match.group("kind")
        if kind in _IGNORED_KINDS:
            continue
        if kind not in KINDS:
            raise ManifestError(f"unknown declaration {kind!r}", source, number)

        options = _parse_options(kind, match.group("options") or "", source, number)
        if kind == "mas":
            if not isinstance(options.get("id"), int):
                raise ManifestError(f"mas entry {match.group('name')!r} needs an integer id", source, number)
        entries.append(BrewfileEntry(kind=kind, name=match.group("name"), options=options, line=number))
    return entries


def load_brewfile(path: Path) -> Brewfile:
    if not path.exists():
        raise ManifestError("Brewfile not found", str(path))
    text = path.read_text(encoding="utf-8")
    return Brewfile(path=path, entries=parse_brewfile(text, source=str(path)))


def bundle_check(path: Path, runner: CommandRunner, brew: str = "brew") -> bool:
    """True when every dependency in the Brewfile is already installed."""
    result = runner.run([brew, "bundle", "check", f"--file={path}"], check=False)
    return result.returncode == 0


def bundle_install(path: Path, runner: CommandRunner, brew: str = "brew") -> None:
    logger.info("brew bundle --file=%s", path)
    runner.run([brew, "bundle", f"--file={path}"], interactive=True)


def _strip_comment(line: str) -> str:
    quote = None
    for index, char in enumerate(line):
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == "#":
            return line[:index]
    return line


def _parse_options(kind: str, text: str, source: Optional[str], number: int) -> Dict[str, Any]:
    options: Dict[str, Any] = {}
    position = 0
    text = text.strip()
    if text[:1] in ("\"", "'"):
        # tap "user/repo", "https://host/user/homebrew-repo.git"
        if kind != "tap":
            raise ManifestError(f"unexpected positional argument in {kind} declaration", source, number)
        value_text, position = _take_value(text, 0)
        options["url"] = _convert_value(value_text, source, number)
        position = _skip_separator(text, position)
    while position < len(text):
        match = _OPTION.match(text, position)
        if not match:
            raise ManifestError(f"cannot parse options: {text!r}", source, number)
        key = match.group("key")
        value_text, position = _take_value(text, match.end())
        options[key] = _convert_value(value_text, source, number)
        position = _skip_separator(text, position)
    return options


def _take_value(text: str, start: int) -> Tuple[str, int]:
    depth = 0
    quote = None
    for index in range(start, len(text)):
        char = text[index]
        if quote:
            if char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        elif char == "," and depth == 0:
            return text[start:index].strip(), index
    return text[start:].strip(), len(text)


def _skip_separator(text: str, position: int) -> int:
    while position < len(text) and text[position] in ", ":
        position += 1
    return position


def _convert_value(value: str, source: Optional[str], number: int) -> Any:
    if value in ("true", "false"):
        return value == "true"
    if re.fullmatch(r"-?\d+", value):
        return int(value)
    if value.startswith(":"):
        return value[1:]
    if value.startswith("[") and value.endswith("]"):
        try:
            return json.loads(value.replace("'", '"'))
        except json.JSONDecodeError as exc:
            raise ManifestError(f"cannot parse list {value!r}", source, number) from exc
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    raise ManifestError(f"unsupported option value {value!r}", source, number)


def find_brew(runner: CommandRunner) -> Optional[str]:
    """Path of the brew executable, looking past PATH at the standard prefixes."""
    found = runner.which("brew")
    if found:
        return found
    for candidate in BREW_LOCATIONS:
        if runner.is_executable(candidate):
            logger.debug("brew is not on PATH, using %s", candidate)
            return candidate
    return None


def brew_installed(runner: CommandRunner) -> bool:
    return find_brew(runner) is not None

