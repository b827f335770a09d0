"""
Shared fixtures: fake Hytale server installations on disk.
"""

import zipfile
from pathlib import Path

import pytest


def write_jar(path: Path, version: str | None = "1.0.0", key: str = "Implementation-Version") -> Path:
    """Write a minimal jar whose manifest carries `key: version`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = "Manifest-Version: 1.0\r\n"
    if version is not None:
        manifest += f"{key}: {version}\r\n"
    manifest += "\r\n"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("META-INF/MANIFEST.MF", manifest)
        zf.writestr("com/hypixel/hytale/Main.class", b"\xca\xfe\xba\xbe")
    return path


def make_installation(server_dir: Path, version: str = "1.0.0") -> Path:
    server_dir.mkdir(parents=True, exist_ok=True)
    write_jar(server_dir / "Server" / "HytaleServer.jar", version)
    (server_dir / "Assets.zip").write_bytes(b"fake assets content")
    (server_dir / "start.sh").write_text(
        '#!/bin/bash\nSCRIPT_DIR="$(dirname "$0")"\ncd "$SCRIPT_DIR"\njava $JVM_ARGS -jar HytaleServer.jar\n'
    )
    (server_dir / "start.bat").write_bytes(
        b"@echo off\r\nrem Default server arguments\r\njava %JVM_ARGS% -jar HytaleServer.jar\r\n"
    )
    return server_dir


@pytest.fixture
def server_dir(tmp_path):
    """Fully installed server directory (jar 1.0.0, assets, both start scripts)."""
    return make_installation(tmp_path / "run")


@pytest.fixture(autouse=True)
def _isolate_logging():
    """Undo logging config changes (e.g. cli.main -> setup_logging) between tests."""
    import logging

    root = logging.getLogger()
    launcher_log = logging.getLogger("hytale.launcher")
    saved = (list(root.handlers), root.level, list(launcher_log.handlers), launcher_log.propagate)
    yield
    for h in launcher_log.handlers:
        if h not in saved[2]:
            h.close()
    root.handlers[:] = saved[0]
    root.setLevel(saved[1])
    launcher_log.handlers[:] = saved[2]
    launcher_log.propagate = saved[3]
