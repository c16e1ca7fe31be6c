"""Apply preferences through the ``defaults`` utility, skipping settings already in place."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Iterable, List, Optional, Sequence

from .commands import CommandRunner
from .errors import CommandError
from .preferences import Preference, parse_read_value, read_args, values_equal, write_args

logger = logging.getLogger(__name__)

# Preference cache daemon; killing it makes every app reread its plist.
PREFERENCE_DAEMON = "cfprefsd"


class ReadStatus(str, Enum):
    OK = "ok"
    KEY_MISSING = "key_missing"
    DOMAIN_MISSING = "domain_missing"


class PreferenceStatus(str, Enum):
    UNCHANGED = "unchanged"
    APPLIED = "applied"
    PLANNED = "planned"
    FAILED = "failed"
    DIFFERENT = "different"


@dataclass
class ReadResult:
    status: ReadStatus
    raw: Optional[str] = None


@dataclass
class PreferenceResult:
    preference: Preference
    status: PreferenceStatus
    current: Any = None
    message: str = ""

    @property
    def changed(self) -> bool:
        return self.status in (PreferenceStatus.APPLIED, PreferenceStatus.PLANNED, PreferenceStatus.DIFFERENT)


class DefaultsClient:
    def __init__(self, runner: Optional[CommandRunner] = None) -> None:
        self.runner = runner or CommandRunner()

    def read(self, pref: Preference) -> ReadResult:
        result = self.runner.run(read_args(pref), check=False)
        if result.returncode == 0:
            return ReadResult(ReadStatus.OK, result.stdout.strip())
        stderr = (result.stderr or "").strip()
        # "Domain X does not exist" vs "The domain/default pair of (X, Y) does not exist",
        # either may follow a timestamped "defaults[pid]" line
        head, found, _ = stderr.partition("does not exist")
        if found and "domain" in head.lower() and "default pair" not in head.lower():
            return ReadResult(ReadStatus.DOMAIN_MISSING)
        return ReadResult(ReadStatus.KEY_MISSING)

    def write(self, pref: Preference) -> None:
        self.runner.run(write_args(pref))

    def current_value(self, pref: Preference) -> Any:
        read = self.read(pref)
        if read.status is not ReadStatus.OK or read.raw is None:
            return None
        return parse_read_value(read.raw, pref.type)


def apply_preferences(
    preferences: Iterable[Preference], client: DefaultsClient, dry_run: bool = False
) -> List[PreferenceResult]:
    """Write every preference whose current value differs from the desired one.

    Settings are independent: a failed write is recorded and the remaining
    preferences are still applied.
    """
    results: List[PreferenceResult] = []
    for pref in preferences:
        current = client.current_value(pref)
        if current is not None and values_equal(current, pref.value, pref.type):
            results.append(PreferenceResult(pref, PreferenceStatus.UNCHANGED, current))
            continue
        if dry_run:
            results.append(PreferenceResult(pref, PreferenceStatus.PLANNED, current, " ".join(write_args(pref))))
            continue
        try:
            client.write(pref)
        except CommandError as exc:
            logger.error("failed to write %s: %s", pref.label, exc)
            results.append(PreferenceResult(pref, PreferenceStatus.FAILED, current, str(exc)))
            continue
        logger.debug("wrote %s = %r", pref.label, pref.value)
        results.append(PreferenceResult(pref, PreferenceStatus.APPLIED, current))
    return results


def diff_preferences(preferences: Iterable[Preference], client: DefaultsClient) -> List[PreferenceResult]:
    results: List[PreferenceResult] = []
    for pref in preferences:
        current = client.current_value(pref)
        if current is not None and values_equal(current, pref.value, pref.type):
            results.append(PreferenceResult(pref, PreferenceStatus.UNCHANGED, current))
        else:
            results.append(PreferenceResult(pref, PreferenceStatus.DIFFERENT, current))
    return results


def restart_targets(results: Iterable[PreferenceResult], allowed: Sequence[str]) -> List[str]:
    """Applications to relaunch after a run, limited to the ``allowed`` list."""
    wanted: List[str] = []
    for result in results:
        if result.status is not PreferenceStatus.APPLIED:
            continue
        if PREFERENCE_DAEMON not in wanted:
            wanted.append(PREFERENCE_DAEMON)
        restart = result.preference.restart
        if restart and restart not in wanted:
            wanted.append(restart)
    return [name for name in wanted if name in allowed]


def needs_sudo(preferences: Iterable[Preference]) -> bool:
    return any(pref.sudo for pref in preferences)
