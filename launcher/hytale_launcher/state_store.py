"""
Persisted installation state for a server directory.

The state file is the only record of what was installed. It is written once,
at the end of a successful install, and read when deciding whether the
installation is stale. Reading fails soft: anything unreadable is reported
as "no record", which triggers a reinstall.
"""

from __future__ import annotations
import hashlib
import json
import logging
from pathlib import Path
from typing import Optional
from pydantic import ValidationError

from .fs_layout import build_layout
from .models import ArtifactFingerprint, InstallationRecord
from .logging_setup import get_logger

_CHUNK_SIZE = 64 * 1024


def file_mtime_ms(path: Path) -> int:
    return path.stat().st_mtime_ns // 1_000_000


class InstallationStateStore:
    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or get_logger("hytale.launcher.state")

    def sha256(self, path: Path) -> str:
        digest = hashlib.sha256()
        with open(path, "rb") as fh:
            for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def fingerprint(self, path: Path) -> ArtifactFingerprint:
        if not path.is_file():
            return ArtifactFingerprint()
        st = path.stat()
        return ArtifactFingerprint(
            size_bytes=st.st_size,
            last_modified_ms=file_mtime_ms(path),
            sha256=self.sha256(path),
        )

    def load(self, server_dir: Path) -> Optional[InstallationRecord]:
        state_file = build_layout(server_dir).state_file
        if not state_file.exists():
            self.log.debug("No install state at %s", state_file)
            return None
        try:
            data = json.loads(state_file.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self.log.warning("Ignoring unreadable install state %s: %s", state_file, e)
            return None
        if not isinstance(data, dict):
            self.log.warning("Ignoring install state %s: root is not an object", state_file)
            return None
        try:
            return InstallationRecord.from_state_dict(data)
        except ValidationError as e:
            self.log.warning("Ignoring incomplete install state %s: %s", state_file, e.errors()[0].get("msg"))
            return None

    def save(self, server_dir: Path, channel: str, resolved_version: str, detected_version: str) -> InstallationRecord:
        layout = build_layout(server_dir)
        record = InstallationRecord(
            channel=channel,
            version=resolved_version,
            resolved_version=resolved_version,
            detected_version=detected_version,
            server_jar=self.fingerprint(layout.server_jar),
            assets_zip=self.fingerprint(layout.assets_zip),
        )
        path = layout.state_file
        path.parent.mkdir(parents=True, exist_ok=True)
        # Atomic write: temp file, then rename
        temp_path = path.with_suffix(path.suffix + ".tmp")
        temp_path.write_text(json.dumps(record.to_state_dict(), indent=2), encoding="utf-8")
        temp_path.replace(path)
        self.log.info("Saved install state: %s (channel=%s, version=%s)", path, channel, resolved_version)
        return record

    def matches(self, path: Path, expected: ArtifactFingerprint) -> bool:
        """
        Check a file against a recorded fingerprint.

        Incomplete fingerprints never match. Equal size and mtime is accepted
        without hashing; otherwise the SHA-256 decides, since extraction does
        not always preserve mtimes.
        """
        if not expected.is_complete:
            return False
        if not path.is_file():
            return False

        st = path.stat()
        if st.st_size == expected.size_bytes and file_mtime_ms(path) == expected.last_modified_ms:
            return True

        actual = self.sha256(path)
        same = actual.lower() == expected.sha256.lower()
        if not same:
            self.log.info("Fingerprint mismatch for %s", path)
        return same
