import pytest

from mac_bootstrap.errors import ManifestError
from mac_bootstrap.preferences import (
    GLOBAL_DOMAIN,
    Preference,
    ValueType,
    load_preferences,
    parse_manifest,
    parse_read_value,
    values_equal,
    write_args,
)


def make_pref(**overrides) -> Preference:
    values = dict(domain="com.apple.dock", key="tilesize", type=ValueType.INT, value=36, section="dock")
    values.update(overrides)
    return Preference(**values)


def test_bundled_manifest_loads():
    prefs = load_preferences()
    assert prefs
    sections = {pref.section for pref in prefs}
    assert {"general", "finder", "mission_control", "hot_corners", "other", "safari", "date_time"} <= sections
    by_key = {(p.domain, p.key, p.current_host): p for p in prefs}
    dock = by_key[("com.apple.dock", "wvous-br-corner", False)]
    assert dock.value == 4
    assert dock.restart == "Dock"
    assert by_key[("com.apple.Safari", "HomePage", False)].restart == "Safari"
    assert by_key[("com.apple.menuextra.clock", "DateFormat", False)].value == "MM/dd HH:mm:ss"
    assert by_key[("/Library/Preferences/com.apple.timezone.auto", "Active", False)].sudo
    assert by_key[("com.apple.screencapture", "disable-shadow", False)].value is False
    assert by_key[("com.apple.dock", "autohide-time-modifier", False)].type is ValueType.FLOAT
    assert by_key[("com.apple.finder", "FXPreferredViewStyle", False)].value == "Nlsv"
    assert len(by_key) == len(prefs)


def test_home_is_expanded(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    sections = parse_manifest(
        {"sections": {"screen": {"settings": [
            {"domain": "com.apple.screencapture", "key": "location", "type": "string", "value": "${HOME}/Desktop"},
        ]}}}
    )
    assert sections[0].preferences[0].value == f"{tmp_path}/Desktop"


def test_global_domain_alias_and_flags():
    sections = parse_manifest(
        {"sections": {"trackpad": {"restart": "SystemUIServer", "settings": [
            {"domain": "-g", "key": "com.apple.trackpad.scaling", "type": "float", "value": 2},
            {"domain": "NSGlobalDomain", "key": "com.apple.mouse.tapBehavior", "type": "int", "value": 1,
             "current_host": True, "restart": None},
        ]}}}
    )
    scaling, tap = sections[0].preferences
    assert scaling.domain == GLOBAL_DOMAIN
    assert scaling.value == 2.0
    assert scaling.restart == "SystemUIServer"
    assert tap.current_host is True
    assert tap.restart is None


@pytest.mark.parametrize(
    "entry, message",
    [
        ({"domain": "d", "key": "k", "type": "bool"}, "missing value"),
        ({"domain": "d", "key": "k", "type": "bool", "value": "yes"}, "expected a boolean"),
        ({"domain": "d", "key": "k", "type": "int", "value": True}, "expected an integer"),
        ({"domain": "d", "key": "k", "type": "dict", "value": {}}, "type must be one of"),
        ({"domain": "d", "key": "k", "type": "int", "value": 1, "colour": "red"}, "unexpected field"),
    ],
)
def test_invalid_entries_are_rejected(entry, message):
    with pytest.raises(ManifestError) as excinfo:
        parse_manifest({"sections": {"broken": {"settings": [entry]}}})
    assert message in str(excinfo.value)
    assert "broken[0]" in str(excinfo.value)


def test_write_args():
    assert write_args(make_pref()) == ["defaults", "write", "com.apple.dock", "tilesize", "-int", "36"]
    assert write_args(make_pref(type=ValueType.BOOL, value=False, current_host=True)) == [
        "defaults", "-currentHost", "write", "com.apple.dock", "tilesize", "-bool", "false",
    ]
    assert write_args(make_pref(type=ValueType.FLOAT, value=0.1, sudo=True))[:2] == ["sudo", "defaults"]
    assert write_args(make_pref(type=ValueType.FLOAT, value=0.1))[-2:] == ["-float", "0.1"]
    assert write_args(make_pref(type=ValueType.ARRAY, value=["4", "8"]))[-3:] == ["-array", "4", "8"]


def test_parse_read_value():
    assert parse_read_value("1\n", ValueType.BOOL) is True
    assert parse_read_value("0", ValueType.BOOL) is False
    assert parse_read_value("36", ValueType.INT) == 36
    assert parse_read_value("0.1", ValueType.FLOAT) == 0.1
    assert parse_read_value("WhenScrolling\n", ValueType.STRING) == "WhenScrolling"
    assert parse_read_value('(\n    4,\n    "zh Hant"\n)', ValueType.ARRAY) == ["4", "zh Hant"]
    assert parse_read_value("(\n)", ValueType.ARRAY) == []


def test_values_equal():
    assert values_equal(0.10000001, 0.1, ValueType.FLOAT)
    assert not values_equal(0.2, 0.1, ValueType.FLOAT)
    assert values_equal(True, True, ValueType.BOOL)
    assert not values_equal("1", True, ValueType.BOOL)
    assert values_equal(["4"], ["4"], ValueType.ARRAY)
    assert not values_equal("36", 36, ValueType.INT)
