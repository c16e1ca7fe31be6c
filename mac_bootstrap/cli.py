"""Entry point for the mac-bootstrap command line tool."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import BootstrapConfig, load_config
from .defaults import DefaultsClient, PreferenceResult, diff_preferences
from .errors import BootstrapError
from .formatting import (
    format_preference_table,
    format_step_table,
    format_targets,
    format_value,
    log_line,
    success_line,
)
from .installer import ALL, STEPS, Context, StepResult, StepStatus, run_steps
from .preferences import load_preferences

HELP_TARGETS = ("help", "h")
DIFF_TARGET = "diff"

_STATUS_STYLES = {
    "done": "green",
    "skipped": "dim",
    "planned": "cyan",
    "failed": "bold red",
    "applied": "green",
    "unchanged": "dim",
    "different": "yellow",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mac-bootstrap",
        description="Bootstrap a Mac: Homebrew, brew bundle, macOS preferences and oh-my-zsh.",
    )
    parser.add_argument(
        "targets",
        nargs="*",
        default=[ALL],
        help=f"targets to run: {', '.join([ALL, *STEPS, DIFF_TARGET, HELP_TARGETS[0]])} (default: all)",
    )
    parser.add_argument("--dry-run", action="store_true", help="show what would change without changing anything")
    parser.add_argument("--json", action="store_true", help="print results as JSON")
    parser.add_argument("--ui", action="store_true", help="render results with Rich tables")
    parser.add_argument("--list", action="store_true", help="list targets and exit")
    parser.add_argument("--config", help="path to the YAML config (default: ~/.mac-bootstrap.yaml)")
    parser.add_argument("--brewfile", help="Brewfile to install from (default: ~/.brew/Brewfile)")
    parser.add_argument("--preferences", help="preference manifest (default: the bundled one)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = Console()

    if args.list or any(target in HELP_TARGETS for target in args.targets):
        print(format_targets(_target_descriptions()))
        return 0

    try:
        config = _load_config(args)
    except BootstrapError as exc:
        console.print(f"[bold red]✗ Error:[/bold red] {exc}")
        return 1
    configure_logging("DEBUG" if args.verbose else config.log_level)

    try:
        if args.targets == [DIFF_TARGET]:
            return _diff(config, args, console)
        if DIFF_TARGET in args.targets:
            raise BootstrapError("diff cannot be combined with other targets")
        ctx = Context(config=config, dry_run=args.dry_run)
        results = run_steps(args.targets, ctx)
    except BootstrapError as exc:
        console.print(f"[bold red]✗ Error:[/bold red] {exc}")
        return 1

    if args.json:
        print(_to_json(results))
    elif args.ui:
        _render_rich(results, console, dry_run=args.dry_run)
    else:
        _print_plain(results)

    return 1 if any(result.status is StepStatus.FAILED for result in results) else 0


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(args: argparse.Namespace) -> BootstrapConfig:
    config = load_config(args.config)
    if args.brewfile:
        config.brewfile = Path(args.brewfile).expanduser()
    if args.preferences:
        config.preferences = Path(args.preferences).expanduser()
    return config


def _target_descriptions() -> List[List[str]]:
    targets = [[ALL, "[all] " + " ".join(STEPS)]]
    targets.extend([name, description] for name, (description, _) in STEPS.items())
    targets.append([DIFF_TARGET, "[check] preferences that differ from the manifest"])
    targets.append([" ".join(HELP_TARGETS), "[help] print all targets"])
    return targets


def _diff(config: BootstrapConfig, args: argparse.Namespace, console: Console) -> int:
    results = diff_preferences(load_preferences(config.preferences), DefaultsClient())
    different = [result for result in results if result.changed]
    if args.json:
        print(json.dumps([_preference_dict(r) for r in results], ensure_ascii=False, indent=2, default=str))
    elif args.ui:
        console.print(_rich_preference_table("Preferences", results))
    else:
        print(format_preference_table(results))
    return 1 if different else 0


def _print_plain(results: List[StepResult]) -> None:
    for result in results:
        if result.status is StepStatus.FAILED:
            print(log_line(f"{result.name} failed: {result.detail}"))
        elif result.status is StepStatus.PLANNED:
            print(log_line(f"{result.name} would run: {result.detail}"))
        else:
            print(success_line(f"{result.name} {result.status.value}: {result.detail}"))
        if result.preferences:
            print(format_preference_table(result.preferences))
        if result.restarted:
            print(log_line(f"restarted: {', '.join(result.restarted)}"))
    print()
    print(format_step_table(results))


def _preference_dict(result: PreferenceResult) -> Dict[str, Any]:
    payload = asdict(result)
    payload["changed"] = result.changed
    return payload


def _to_json(results: List[StepResult]) -> str:
    payload: Dict[str, Any] = {
        "steps": [asdict(result) for result in results],
        "ok": not any(result.status is StepStatus.FAILED for result in results),
    }
    return json.dumps(payload, ensure_ascii=False, indent=2, default=str)


def _render_rich(results: List[StepResult], console: Console, dry_run: bool) -> None:
    title = "mac-bootstrap (dry run)" if dry_run else "mac-bootstrap"
    console.print(Panel(title, style="bold cyan"))

    steps = Table(title="Targets", box=box.SIMPLE_HEAD)
    steps.add_column("Target", style="bold")
    steps.add_column("Status")
    steps.add_column("Detail")
    for result in results:
        style = _STATUS_STYLES.get(result.status.value, "")
        steps.add_row(result.name, f"[{style}]{result.status.value}[/{style}]" if style else result.status.value, result.detail)
    console.print(steps)

    for result in results:
        changed = [r for r in result.preferences if r.changed or r.message]
        if changed:
            console.print(_rich_preference_table(f"{result.name} preferences", changed))
        if result.restarted:
            console.print(f"Restarted: {', '.join(result.restarted)}")

    if any(result.status is StepStatus.FAILED for result in results):
        console.print(Panel("Bootstrap stopped at a failing target.", style="bold red"))
    else:
        console.print(Panel("Done 🥑", style="bold green"))


def _rich_preference_table(title: str, results: List[PreferenceResult]) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("Section")
    table.add_column("Domain")
    table.add_column("Key", style="bold")
    table.add_column("Current", justify="right")
    table.add_column("Desired", justify="right")
    table.add_column("Status")

    if not results:
        table.add_row("-", "-", "no changes", "-", "-", "-")
        return table

    for result in results:
        pref = result.preference
        style = _STATUS_STYLES.get(result.status.value, "")
        table.add_row(
            pref.section,
            pref.domain,
            pref.key,
            format_value(result.current),
            format_value(pref.value),
            f"[{style}]{result.status.value}[/{style}]" if style else result.status.value,
        )
    return table


if __name__ == "__main__":
    raise SystemExit(main())
