"""
Tests for terminal template selection.
"""

import pytest

from hytale_launcher.terminals import (
    DEFAULT_RANKING,
    TERMINAL_TEMPLATES,
    TerminalKind,
    resolve_terminal_templates,
)


def test_every_named_kind_has_a_template():
    named = {k for k in TerminalKind if k is not TerminalKind.CUSTOM}
    assert set(TERMINAL_TEMPLATES) == named
    for tokens in TERMINAL_TEMPLATES.values():
        assert any("$command_line" in t for t in tokens)


def test_default_ranking():
    names = [t.name for t in resolve_terminal_templates()]
    assert names == [k.value for k in DEFAULT_RANKING]
    assert names[0] == "x-terminal-emulator"


@pytest.mark.parametrize("given", ["kitty", "KITTY", " kitty "])
def test_named_kind_replaces_ranking(given):
    templates = resolve_terminal_templates(given)
    assert [t.name for t in templates] == ["kitty"]


def test_enum_style_names_are_accepted():
    assert resolve_terminal_templates("gnome_terminal")[0].name == "gnome-terminal"


def test_custom_command_wins_over_kind():
    templates = resolve_terminal_templates("kitty", ["wezterm", "start", "--", "$command_line"])
    assert len(templates) == 1
    assert templates[0].name == "custom"
    assert templates[0].render("srv") == ["wezterm", "start", "--", "srv"]


def test_unknown_kind():
    with pytest.raises(ValueError, match="Unknown terminal"):
        resolve_terminal_templates("hyperterm")


def test_custom_kind_without_command():
    with pytest.raises(ValueError, match="explicit command"):
        resolve_terminal_templates("custom")
