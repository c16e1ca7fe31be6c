"""Find and restart applications that cache preference values."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

import psutil

logger = logging.getLogger(__name__)

TERMINATE_TIMEOUT = 3.0


def running_processes(names: Iterable[str]) -> Dict[str, List[psutil.Process]]:
    """Map each requested application name to its running processes."""
    wanted = set(names)
    found: Dict[str, List[psutil.Process]] = {}
    for proc in psutil.process_iter(["name"]):
        try:
            name = proc.info["name"]
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        if name in wanted:
            found.setdefault(name, []).append(proc)
    return found


def restart_apps(names: Iterable[str], dry_run: bool = False) -> List[str]:
    """Terminate the named applications so launchd relaunches them with fresh preferences.

    Returns the names that had at least one process signalled (or would have,
    in a dry run). Applications that are not running are ignored.
    """
    matches = running_processes(names)
    if dry_run:
        return sorted(matches)

    signalled: List[str] = []
    victims: List[psutil.Process] = []
    for name, procs in sorted(matches.items()):
        for proc in procs:
            try:
                proc.terminate()
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            victims.append(proc)
            if name not in signalled:
                signalled.append(name)
                logger.debug("terminated %s (pid %s)", name, proc.pid)

    _, alive = psutil.wait_procs(victims, timeout=TERMINATE_TIMEOUT)
    for proc in alive:
        try:
            proc.kill()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return signalled
