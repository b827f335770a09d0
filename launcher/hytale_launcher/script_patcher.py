"""
script_patcher.py — injects user JVM args into the bundled start scripts
------------------------------------------------------------------------
The server bundle ships start.bat / start.sh. Both are patched so they read
one line of extra JVM arguments from `.hytale-jvm.args` and pass it to java.
Patching is idempotent and never fails the install for one unpatchable script.
"""

from __future__ import annotations
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .fs_layout import JVM_ARGS_FILE_NAME, build_layout
from .logging_setup import get_logger

logger = get_logger("hytale.launcher.scripts")

USER_ARGS_VAR = "USER_JVM_ARGS"


@dataclass(frozen=True)
class ScriptPatch:
    name: str
    anchor: str
    block: str
    insert_before: bool
    launch_line: str
    patched_launch_line: str
    launch_marker: str


BAT_PATCH = ScriptPatch(
    name="start.bat",
    anchor="rem Default server arguments",
    block=(
        "rem Extra JVM args injected by hytale-launcher\r\n"
        f"set {USER_ARGS_VAR}=\r\n"
        f"if exist \"%SCRIPT_DIR%\\{JVM_ARGS_FILE_NAME}\" (\r\n"
        f"    for /f \"usebackq delims=\" %%A in (\"%SCRIPT_DIR%\\{JVM_ARGS_FILE_NAME}\") do set {USER_ARGS_VAR}=%%A\r\n"
        ")\r\n"
        "\r\n"
    ),
    insert_before=True,
    launch_line="java %JVM_ARGS% -jar HytaleServer.jar",
    patched_launch_line=f"java %JVM_ARGS% %{USER_ARGS_VAR}% -jar HytaleServer.jar",
    launch_marker=f"%{USER_ARGS_VAR}%",
)

# the sh block must follow the cd so $SCRIPT_DIR is already set
SH_PATCH = ScriptPatch(
    name="start.sh",
    anchor='cd "$SCRIPT_DIR"',
    block=(
        "\n"
        "\n"
        f"{USER_ARGS_VAR}=\"\"\n"
        f"if [ -f \"$SCRIPT_DIR/{JVM_ARGS_FILE_NAME}\" ]; then\n"
        f"  read -r {USER_ARGS_VAR} < \"$SCRIPT_DIR/{JVM_ARGS_FILE_NAME}\"\n"
        "fi"
    ),
    insert_before=False,
    launch_line="java $JVM_ARGS -jar HytaleServer.jar",
    patched_launch_line=f"java $JVM_ARGS ${USER_ARGS_VAR} -jar HytaleServer.jar",
    launch_marker=f"${USER_ARGS_VAR}",
)


def patch_script_text(text: str, patch: ScriptPatch, log: Optional[logging.Logger] = None) -> str:
    """Apply one script patch to `text`; running it on its own output changes nothing."""
    log = log or logger
    updated = text

    if JVM_ARGS_FILE_NAME.lower() not in updated.lower():
        if patch.anchor in updated:
            if patch.insert_before:
                updated = updated.replace(patch.anchor, patch.block + patch.anchor, 1)
            else:
                updated = updated.replace(patch.anchor, patch.anchor + patch.block, 1)
        else:
            log.warning("Could not patch %s: expected anchor %r not found", patch.name, patch.anchor)

    if patch.launch_marker.lower() not in updated.lower():
        if patch.launch_line in updated:
            updated = updated.replace(patch.launch_line, patch.patched_launch_line, 1)
        else:
            log.warning("Could not patch %s: expected launch line %r not found", patch.name, patch.launch_line)

    return updated


def _make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def _patch_file(path: Path, patch: ScriptPatch, log: logging.Logger) -> bool:
    if not path.exists():
        return False
    # bytes in / bytes out keeps CRLF line endings and non-UTF-8 (cp1252) bytes intact
    text = path.read_bytes().decode("utf-8", errors="surrogateescape")
    updated = patch_script_text(text, patch, log)
    if updated == text:
        return False
    path.write_bytes(updated.encode("utf-8", errors="surrogateescape"))
    log.info("Patched %s", path)
    return True


def ensure_scripts_patched(server_dir: Path, log: Optional[logging.Logger] = None) -> List[Path]:
    """Patch start.bat and start.sh if present. Returns the scripts that were rewritten."""
    log = log or logger
    layout = build_layout(server_dir)
    changed: List[Path] = []

    if _patch_file(layout.start_bat, BAT_PATCH, log):
        changed.append(layout.start_bat)
    if _patch_file(layout.start_sh, SH_PATCH, log):
        changed.append(layout.start_sh)
    if layout.start_sh.exists():
        _make_executable(layout.start_sh)

    return changed


def write_jvm_args_file(server_dir: Path, jvm_args: Sequence[str]) -> Path:
    path = build_layout(server_dir).jvm_args_file
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(" ".join(jvm_args), encoding="utf-8")
    return path
