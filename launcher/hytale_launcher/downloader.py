"""
downloader.py — fetches and unpacks the Hytale server bundle
------------------------------------------------------------
Downloads the official hytale-downloader, runs it for the requested channel,
and extracts the produced server/assets archive into the server directory.
"""

from __future__ import annotations
import logging
import os
import shutil
import stat
import subprocess
import time
import urllib.request
import zipfile
from pathlib import Path
from typing import Callable, List, Optional

from .settings import DEFAULT_DOWNLOADER_URL
from .logging_setup import get_logger

logger = get_logger("hytale.launcher.download")

OUTPUT_ARCHIVE = "hytale-server-assets.zip"


def download_file(url: str, dest: Path, *, timeout: float = 30.0) -> Path:
    dest.parent.mkdir(parents=True, exist_ok=True)
    req = urllib.request.Request(url, headers={"User-Agent": "hytale-launcher"})
    with urllib.request.urlopen(req, timeout=timeout) as response, open(dest, "wb") as fh:
        shutil.copyfileobj(response, fh)
    return dest


def extract_archive(archive: Path, dest: Path) -> None:
    dest.mkdir(parents=True, exist_ok=True)
    root = dest.resolve()
    with zipfile.ZipFile(archive) as zf:
        for member in zf.namelist():
            target = (root / member).resolve()
            if target != root and root not in target.parents:
                raise RuntimeError(f"Refusing to extract {member!r} outside of {dest}")
        zf.extractall(root)


def delete_tree_with_retry(path: Path, attempts: int = 10, delay: float = 0.25,
                           sleep: Callable[[float], None] = time.sleep,
                           log: Optional[logging.Logger] = None) -> bool:
    """
    Remove a directory tree, retrying while files are still locked.

    Gives up quietly after `attempts`; returns whether the tree is gone.
    """
    log = log or logger
    for attempt in range(1, attempts + 1):
        if not path.exists():
            return True
        try:
            shutil.rmtree(path)
        except OSError as e:
            log.debug("Delete attempt %d/%d for %s failed: %s", attempt, attempts, path, e)
        if not path.exists():
            return True
        if attempt < attempts:
            sleep(delay)
    log.warning("Could not delete %s after %d attempts", path, attempts)
    return False


def downloader_executable_name(windows: Optional[bool] = None) -> str:
    if windows is None:
        windows = os.name == "nt"
    return "hytale-downloader-windows-amd64.exe" if windows else "hytale-downloader-linux-amd64"


def find_file(root: Path, name: str) -> Optional[Path]:
    wanted = name.lower()
    for p in sorted(root.rglob("*")):
        if p.is_file() and p.name.lower() == wanted:
            return p
    return None


class HytaleDownloader:
    def __init__(self, url: str = DEFAULT_DOWNLOADER_URL, *, log: Optional[logging.Logger] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.url = url
        self.log = log or logger
        self.sleep = sleep

    def downloader_args(self, channel: str) -> List[str]:
        args = ["-download-path", OUTPUT_ARCHIVE]
        if channel.lower() == "pre-release":
            args += ["-patchline", "pre-release"]
        return args

    def _run(self, exe: Path, args: List[str], cwd: Path) -> None:
        cmd = [str(exe)] + args
        self.log.info("Running Hytale Downloader: %s", " ".join(cmd))
        proc = subprocess.run(cmd, cwd=str(cwd), check=False)
        if proc.returncode != 0:
            raise RuntimeError(f"Hytale Downloader failed (rc={proc.returncode}): {' '.join(cmd)}")

    def install(self, channel: str, server_dir: Path, work_dir: Path) -> None:
        temp_dir = work_dir / "temp_downloader"
        delete_tree_with_retry(temp_dir, sleep=self.sleep, log=self.log)
        temp_dir.mkdir(parents=True, exist_ok=True)
        server_dir.mkdir(parents=True, exist_ok=True)

        try:
            downloader_zip = temp_dir / "hytale-downloader.zip"
            self.log.info("Downloading Hytale Downloader from %s...", self.url)
            download_file(self.url, downloader_zip)

            self.log.info("Extracting Hytale Downloader...")
            extract_archive(downloader_zip, temp_dir)

            exe_name = downloader_executable_name()
            exe = find_file(temp_dir, exe_name)
            if exe is None:
                found = ", ".join(str(p.relative_to(temp_dir)) for p in sorted(temp_dir.rglob("*")))
                raise RuntimeError(f"Could not find {exe_name} after extraction in {temp_dir}. Found files: {found}")
            exe.chmod(exe.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

            self.log.info("Running Hytale Downloader (%s)...", channel)
            self._run(exe, self.downloader_args(channel), temp_dir)

            output = temp_dir / OUTPUT_ARCHIVE
            if not output.is_file():
                raise RuntimeError(f"Hytale Downloader did not produce {output}")

            self.log.info("Extracting server artifacts to %s...", server_dir)
            extract_archive(output, server_dir)
        finally:
            self.log.info("Cleaning up temporary files...")
            delete_tree_with_retry(temp_dir, sleep=self.sleep, log=self.log)
