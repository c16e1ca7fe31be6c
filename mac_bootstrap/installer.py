"""The bootstrap steps: Homebrew, brew bundle, macOS preferences, oh-my-zsh."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from . import brewfile, processes
from .commands import CommandRunner
from .config import BootstrapConfig
from .defaults import (
    DefaultsClient,
    PreferenceResult,
    PreferenceStatus,
    apply_preferences,
    needs_sudo,
    restart_targets,
)
from .errors import BootstrapError
from .preferences import Preference, load_preferences

logger = logging.getLogger(__name__)


class StepStatus(str, Enum):
    DONE = "done"
    SKIPPED = "skipped"
    PLANNED = "planned"
    FAILED = "failed"


@dataclass
class StepResult:
    name: str
    status: StepStatus
    detail: str = ""
    preferences: List[PreferenceResult] = field(default_factory=list)
    restarted: List[str] = field(default_factory=list)


@dataclass
class Context:
    config: BootstrapConfig
    runner: CommandRunner = field(default_factory=CommandRunner)
    dry_run: bool = False
    restart: Callable[..., List[str]] = processes.restart_apps
    loaded_preferences: Optional[List[Preference]] = None

    @property
    def preferences(self) -> List[Preference]:
        if self.loaded_preferences is None:
            self.loaded_preferences = load_preferences(self.config.preferences)
        return self.loaded_preferences


def install_brew(ctx: Context) -> StepResult:
    if brewfile.brew_installed(ctx.runner):
        return StepResult("install-brew", StepStatus.SKIPPED, "Homebrew is already installed")
    if ctx.dry_run:
        return StepResult("install-brew", StepStatus.PLANNED, f"run {ctx.config.homebrew_install_url}")
    logger.info("Homebrew not found, installing...")
    ctx.runner.run_remote_script(ctx.config.homebrew_install_url)
    return StepResult("install-brew", StepStatus.DONE, "Homebrew installed")


def brew_bundle(ctx: Context) -> StepResult:
    manifest = brewfile.load_brewfile(ctx.config.brewfile)
    counts = ", ".join(f"{count} {kind}" for kind, count in manifest.summary().items() if count)
    brew = brewfile.find_brew(ctx.runner)
    if brew is None:
        if ctx.dry_run:
            return StepResult("brew-bundle", StepStatus.PLANNED, f"brew bundle ({counts or 'empty'})")
        raise BootstrapError("brew not found; run install-brew first")
    if brewfile.bundle_check(manifest.path, ctx.runner, brew):
        return StepResult("brew-bundle", StepStatus.SKIPPED, f"all dependencies satisfied ({counts or 'empty'})")
    if ctx.dry_run:
        return StepResult("brew-bundle", StepStatus.PLANNED, f"brew bundle --file={manifest.path}")
    brewfile.bundle_install(manifest.path, ctx.runner, brew)
    return StepResult("brew-bundle", StepStatus.DONE, counts)


def config_mac(ctx: Context) -> StepResult:
    preferences = ctx.preferences
    client = DefaultsClient(ctx.runner)

    if not ctx.dry_run:
        # An open System Settings window can overwrite what we are about to write.
        for app in ("System Settings", "System Preferences"):
            ctx.runner.run(["osascript", "-e", f'tell application "{app}" to quit'], check=False)
        if needs_sudo(preferences):
            ctx.runner.run(["sudo", "-v"], interactive=True)

    results = apply_preferences(preferences, client, dry_run=ctx.dry_run)
    failed = [r for r in results if r.status is PreferenceStatus.FAILED]
    changed = [r for r in results if r.status in (PreferenceStatus.APPLIED, PreferenceStatus.PLANNED)]

    restarted: List[str] = []
    if ctx.dry_run:
        planned = [PreferenceResult(r.preference, PreferenceStatus.APPLIED) for r in changed]
        restarted = ctx.restart(restart_targets(planned, ctx.config.restart_apps), dry_run=True)
    elif changed:
        restarted = ctx.restart(restart_targets(results, ctx.config.restart_apps))

    detail = f"{len(changed)} changed, {len(results) - len(changed) - len(failed)} unchanged"
    if failed:
        detail += f", {len(failed)} failed"
        status = StepStatus.FAILED
    elif ctx.dry_run:
        status = StepStatus.PLANNED if changed else StepStatus.SKIPPED
    else:
        status = StepStatus.DONE if changed else StepStatus.SKIPPED
        if changed:
            detail += "; some changes require a logout/restart to take effect"
    return StepResult("config-mac", status, detail, preferences=results, restarted=restarted)


def install_ohmyzsh(ctx: Context) -> StepResult:
    if ctx.config.ohmyzsh_dir.exists():
        return StepResult("install-ohmyzsh", StepStatus.SKIPPED, f"{ctx.config.ohmyzsh_dir} already exists")
    if ctx.dry_run:
        return StepResult("install-ohmyzsh", StepStatus.PLANNED, f"run {ctx.config.ohmyzsh_install_url}")
    ctx.runner.run_remote_script(
        ctx.config.ohmyzsh_install_url,
        env={"RUNZSH": "no", "ZSH": str(ctx.config.ohmyzsh_dir)},
    )
    return StepResult("install-ohmyzsh", StepStatus.DONE, f"installed into {ctx.config.ohmyzsh_dir}")


STEPS: Dict[str, Tuple[str, Callable[[Context], StepResult]]] = {
    "install-brew": ("[install] Homebrew", install_brew),
    "brew-bundle": ("[install] brew bundle", brew_bundle),
    "config-mac": ("[config] macOS preferences", config_mac),
    "install-ohmyzsh": ("[install] oh-my-zsh", install_ohmyzsh),
}

ALL = "all"


def resolve_steps(names: Sequence[str]) -> List[str]:
    """Expand ``all`` and validate names, keeping the canonical order for ``all``."""
    resolved: List[str] = []
    for name in names or [ALL]:
        if name == ALL:
            candidates = list(STEPS)
        elif name in STEPS:
            candidates = [name]
        else:
            raise BootstrapError(f"unknown target {name!r}; choose from {', '.join([ALL, *STEPS])}")
        for candidate in candidates:
            if candidate not in resolved:
                resolved.append(candidate)
    return resolved


def run_steps(names: Sequence[str], ctx: Context) -> List[StepResult]:
    """Run steps in order, stopping at the first failure like ``make`` does."""
    results: List[StepResult] = []
    for name in resolve_steps(names):
        _, step = STEPS[name]
        logger.info("Start %s...", name)
        try:
            result = step(ctx)
        except BootstrapError as exc:
            logger.error("%s failed: %s", name, exc)
            results.append(StepResult(name, StepStatus.FAILED, str(exc)))
            break
        results.append(result)
        if result.status is StepStatus.FAILED:
            break
    return results
