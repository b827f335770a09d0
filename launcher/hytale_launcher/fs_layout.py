from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import List

STATE_FILE_NAME = ".hytale-setup-state.json"
JVM_ARGS_FILE_NAME = ".hytale-jvm.args"

@dataclass(frozen=True)
class Layout:
    server_dir: Path
    server_jar: Path
    assets_zip: Path
    start_bat: Path
    start_sh: Path
    state_file: Path
    jvm_args_file: Path

    def has_artifacts(self) -> bool:
        return self.server_jar.exists() and self.assets_zip.exists()

    def has_launcher_script(self) -> bool:
        return self.start_bat.exists() or self.start_sh.exists()

    def is_installed(self) -> bool:
        """Both artifacts exist and at least one launcher script exists."""
        return self.has_artifacts() and self.has_launcher_script()

    def missing_paths(self) -> List[Path]:
        return [p for p in (self.assets_zip, self.server_jar) if not p.exists()]

def build_layout(server_dir: Path) -> Layout:
    server_dir = Path(server_dir)
    return Layout(
        server_dir=server_dir,
        server_jar=server_dir / "Server" / "HytaleServer.jar",
        assets_zip=server_dir / "Assets.zip",
        start_bat=server_dir / "start.bat",
        start_sh=server_dir / "start.sh",
        state_file=server_dir / STATE_FILE_NAME,
        jvm_args_file=server_dir / JVM_ARGS_FILE_NAME,
    )
