"""Console-friendly formatting utilities."""

from __future__ import annotations

from typing import Iterable, Sequence

from .defaults import PreferenceResult
from .installer import StepResult

LOG_PREFIX = "[🦁]"
SUCCESS_SUFFIX = "🥑"


def log_line(message: str) -> str:
    return f"{LOG_PREFIX} {message}"


def success_line(message: str) -> str:
    return f"{LOG_PREFIX} {message} {SUCCESS_SUFFIX}"


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))
    lines = []
    lines.append(_format_row(headers, widths))
    lines.append(_format_row(["-" * w for w in widths], widths))
    for row in rows:
        lines.append(_format_row(row, widths))
    return "\n".join(lines)


def format_value(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format(value, "g")
    if isinstance(value, list):
        return "(" + ", ".join(str(item) for item in value) + ")"
    return str(value)


def format_preference_table(results: Iterable[PreferenceResult], only_changed: bool = True) -> str:
    rows = [
        [
            result.preference.section,
            result.preference.domain,
            result.preference.key,
            format_value(result.current),
            format_value(result.preference.value),
            result.status.value,
        ]
        for result in results
        if result.changed or not only_changed or result.message
    ]
    if not rows:
        return "All preferences already match."
    return render_table(["Section", "Domain", "Key", "Current", "Desired", "Status"], rows)


def format_step_table(results: Iterable[StepResult]) -> str:
    rows = [[result.name, result.status.value, result.detail] for result in results]
    return render_table(["Target", "Status", "Detail"], rows) if rows else "Nothing to do."


def format_targets(targets: Sequence[Sequence[str]]) -> str:
    lines = ["-" * 71, "Usage: mac-bootstrap [options] [targets]"]
    lines.extend(f"  {name:<16} {description}" for name, description in targets)
    lines.append("-" * 71)
    return "\n".join(lines)


def _format_row(row: Sequence[str], widths: Sequence[int]) -> str:
    padded = [cell.ljust(width) for cell, width in zip(row, widths)]
    return " | ".join(padded).rstrip()
