from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from string import Template
from typing import Dict, List, Optional, Sequence, Tuple

PLACEHOLDER = "command_line"


class TerminalKind(str, Enum):
    GHOSTTY = "ghostty"
    KITTY = "kitty"
    KONSOLE = "konsole"
    GNOME_TERMINAL = "gnome-terminal"
    X_TERMINAL_EMULATOR = "x-terminal-emulator"
    XTERM = "xterm"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TerminalTemplate:
    """Command tokens containing a `$command_line` placeholder."""
    name: str
    command: Tuple[str, ...]

    def render(self, command_line: str) -> List[str]:
        return [Template(tok).safe_substitute({PLACEHOLDER: command_line}) for tok in self.command]


TERMINAL_TEMPLATES: Dict[TerminalKind, Tuple[str, ...]] = {
    TerminalKind.GHOSTTY: ("bash", "-lc", "ghostty -e bash -lc '$command_line'"),
    TerminalKind.KITTY: ("bash", "-lc", "kitty --hold bash -lc '$command_line'"),
    TerminalKind.KONSOLE: ("bash", "-lc", "konsole -e bash -lc '$command_line; exec bash'"),
    TerminalKind.GNOME_TERMINAL: ("bash", "-lc", "gnome-terminal -- bash -lc '$command_line; exec bash'"),
    TerminalKind.X_TERMINAL_EMULATOR: ("bash", "-lc", "x-terminal-emulator -e $command_line"),
    TerminalKind.XTERM: ("bash", "-lc", "xterm -e $command_line"),
}

DEFAULT_RANKING = (
    TerminalKind.X_TERMINAL_EMULATOR,
    TerminalKind.GNOME_TERMINAL,
    TerminalKind.KONSOLE,
    TerminalKind.XTERM,
)


def template_for(kind: TerminalKind) -> TerminalTemplate:
    if kind is TerminalKind.CUSTOM:
        raise ValueError("custom terminals need an explicit command")
    return TerminalTemplate(name=kind.value, command=TERMINAL_TEMPLATES[kind])


def resolve_terminal_templates(kind: Optional[str] = None,
                               custom_command: Optional[Sequence[str]] = None) -> List[TerminalTemplate]:
    """
    Ranked terminal templates to try.

    A custom command wins over a named kind, and either one replaces the
    default ranking entirely.
    """
    if custom_command:
        return [TerminalTemplate(name=TerminalKind.CUSTOM.value, command=tuple(custom_command))]
    if kind:
        try:
            parsed = TerminalKind(kind.strip().lower().replace("_", "-"))
        except ValueError:
            known = ", ".join(k.value for k in TERMINAL_TEMPLATES)
            raise ValueError(f"Unknown terminal {kind!r} (known: {known})") from None
        return [template_for(parsed)]
    return [template_for(k) for k in DEFAULT_RANKING]
