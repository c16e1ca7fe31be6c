"""Declarative macOS preference settings and their ``defaults`` encoding."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
import os
from pathlib import Path
import re
from typing import Any, Dict, List, Optional

import yaml

from .errors import ManifestError

BUNDLED_MANIFEST = Path(__file__).parent / "data" / "preferences.yaml"

GLOBAL_DOMAIN = "NSGlobalDomain"
_GLOBAL_ALIASES = {"-g", "-globalDomain", "NSGlobalDomain"}
_ENTRY_KEYS = {"domain", "key", "type", "value", "description", "current_host", "sudo", "restart"}
_TRUE_VALUES = {"1", "true", "yes"}
_FALSE_VALUES = {"0", "false", "no"}


class ValueType(str, Enum):
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    ARRAY = "array"


@dataclass
class Preference:
    domain: str
    key: str
    type: ValueType
    value: Any
    section: str = ""
    description: str = ""
    current_host: bool = False
    sudo: bool = False
    restart: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.domain} {self.key}"


@dataclass
class Section:
    name: str
    restart: Optional[str] = None
    preferences: List[Preference] = field(default_factory=list)


def load_preferences(path: Optional[Path] = None) -> List[Preference]:
    """Load the preference manifest, defaulting to the bundled one."""
    manifest = path or BUNDLED_MANIFEST
    if not manifest.exists():
        raise ManifestError("preference manifest not found", str(manifest))
    try:
        with open(manifest, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ManifestError(f"cannot parse YAML: {exc}", str(manifest)) from exc
    sections = parse_manifest(data, source=str(manifest))
    return [pref for section in sections for pref in section.preferences]


def parse_manifest(data: Dict[str, Any], source: Optional[str] = None) -> List[Section]:
    if not isinstance(data, dict) or not isinstance(data.get("sections"), dict):
        raise ManifestError("manifest needs a 'sections' mapping", source)

    sections: List[Section] = []
    for name, body in data["sections"].items():
        if not isinstance(body, dict) or not isinstance(body.get("settings"), list):
            raise ManifestError(f"section {name!r} needs a 'settings' list", source)
        section = Section(name=name, restart=body.get("restart"))
        for index, entry in enumerate(body["settings"]):
            section.preferences.append(_parse_entry(entry, name, section.restart, f"{name}[{index}]", source))
        sections.append(section)
    return sections


def _parse_entry(entry: Any, section: str, restart: Optional[str], where: str, source: Optional[str]) -> Preference:
    if not isinstance(entry, dict):
        raise ManifestError(f"{where}: must be a mapping", source)
    missing = [name for name in ("domain", "key", "type", "value") if name not in entry]
    if missing:
        raise ManifestError(f"{where}: missing {', '.join(missing)}", source)
    unexpected = sorted(set(entry) - _ENTRY_KEYS)
    if unexpected:
        raise ManifestError(f"{where}: unexpected field(s) {', '.join(unexpected)}", source)
    try:
        value_type = ValueType(entry["type"])
    except ValueError:
        choices = ", ".join(t.value for t in ValueType)
        raise ManifestError(f"{where}: type must be one of {choices}, got {entry['type']!r}", source)

    domain = str(entry["domain"])
    if domain in _GLOBAL_ALIASES:
        domain = GLOBAL_DOMAIN
    return Preference(
        domain=domain,
        key=str(entry["key"]),
        type=value_type,
        value=_coerce(entry["value"], value_type, where, source),
        section=section,
        description=entry.get("description", ""),
        current_host=bool(entry.get("current_host", False)),
        sudo=bool(entry.get("sudo", False)),
        restart=entry.get("restart", restart),
    )


def _coerce(value: Any, value_type: ValueType, where: str, source: Optional[str]) -> Any:
    if value_type is ValueType.BOOL:
        if isinstance(value, bool):
            return value
        raise ManifestError(f"{where}: expected a boolean, got {value!r}", source)
    if value_type is ValueType.INT:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise ManifestError(f"{where}: expected an integer, got {value!r}", source)
    if value_type is ValueType.FLOAT:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise ManifestError(f"{where}: expected a number, got {value!r}", source)
    if value_type is ValueType.ARRAY:
        if isinstance(value, list):
            return [_expand(str(item)) for item in value]
        raise ManifestError(f"{where}: expected a list, got {value!r}", source)
    return _expand(str(value))


def _expand(value: str) -> str:
    return os.path.expanduser(os.path.expandvars(value))


def write_args(pref: Preference) -> List[str]:
    """The full ``defaults write`` argv for a preference."""
    argv = ["sudo"] if pref.sudo else []
    argv.append("defaults")
    if pref.current_host:
        argv.append("-currentHost")
    argv.extend(["write", pref.domain, pref.key])
    argv.extend(format_write_value(pref.value, pref.type))
    return argv


def read_args(pref: Preference) -> List[str]:
    argv = ["defaults"]
    if pref.current_host:
        argv.append("-currentHost")
    argv.extend(["read", pref.domain, pref.key])
    return argv


def format_write_value(value: Any, value_type: ValueType) -> List[str]:
    if value_type is ValueType.BOOL:
        return ["-bool", "true" if value else "false"]
    if value_type is ValueType.INT:
        return ["-int", str(value)]
    if value_type is ValueType.FLOAT:
        return ["-float", _format_float(value)]
    if value_type is ValueType.ARRAY:
        return ["-array", *[str(item) for item in value]]
    return ["-string", str(value)]


def parse_read_value(raw: str, value_type: ValueType) -> Any:
    """Interpret the text printed by ``defaults read``."""
    text = raw.strip()
    if value_type is ValueType.BOOL:
        lowered = text.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        return text
    if value_type is ValueType.INT:
        try:
            return int(text)
        except ValueError:
            return text
    if value_type is ValueType.FLOAT:
        try:
            return float(text)
        except ValueError:
            return text
    if value_type is ValueType.ARRAY:
        return _parse_plist_array(text)
    return text


def values_equal(current: Any, desired: Any, value_type: ValueType) -> bool:
    if value_type is ValueType.FLOAT:
        try:
            return math.isclose(float(current), float(desired), rel_tol=1e-6, abs_tol=1e-9)
        except (TypeError, ValueError):
            return False
    if value_type is ValueType.BOOL:
        return isinstance(current, bool) and current == bool(desired)
    if value_type is ValueType.ARRAY:
        return isinstance(current, list) and [str(v) for v in current] == [str(v) for v in desired]
    return current == desired


def _format_float(value: float) -> str:
    return repr(float(value))


def _parse_plist_array(text: str) -> Any:
    # defaults prints arrays as "(\n    a,\n    \"b c\"\n)"
    if not (text.startswith("(") and text.endswith(")")):
        return text
    inner = text[1:-1].strip()
    if not inner:
        return []
    items = []
    for item in re.split(r",\s*\n", inner):
        item = item.strip().rstrip(",").strip()
        if len(item) >= 2 and item[0] == item[-1] == '"':
            item = item[1:-1].replace('\\"', '"')
        items.append(item)
    return items
