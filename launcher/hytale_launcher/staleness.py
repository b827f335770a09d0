"""
Decides whether the server directory has to be (re)installed.

Checks run cheapest first and stop at the first trigger: local structure and
the state record, then version identity, then (only for "latest") a remote
metadata lookup, and finally fingerprint verification, which may hash the
artifacts.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional

from .fs_layout import Layout
from .models import InstallationRecord
from .state_store import InstallationStateStore
from .version_resolver import RemoteVersionSource, VersionResolver

LATEST = "latest"


class StalenessReason(str, Enum):
    FORCED = "forced"
    NOT_INSTALLED = "not_installed"
    NO_RECORD = "no_record"
    CHANNEL_CHANGED = "channel_changed"
    DETECTED_VERSION_CHANGED = "detected_version_changed"
    UPDATE_AVAILABLE = "update_available"
    VERSION_CHANGED = "version_changed"
    ARTIFACT_MISSING = "artifact_missing"
    FINGERPRINT_MISMATCH = "fingerprint_mismatch"
    UP_TO_DATE = "up_to_date"


@dataclass(frozen=True)
class StalenessCheck:
    must_reinstall: bool
    reason: StalenessReason
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["reason"] = self.reason.value
        return d


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").lower() == (b or "").lower()


def _stale(reason: StalenessReason, detail: str) -> StalenessCheck:
    return StalenessCheck(must_reinstall=True, reason=reason, detail=detail)


def evaluate_staleness(
    layout: Layout,
    desired_channel: str,
    desired_version: str,
    record: Optional[InstallationRecord],
    *,
    resolver: VersionResolver,
    store: InstallationStateStore,
    remote: Optional[RemoteVersionSource] = None,
    force_update: bool = False,
) -> StalenessCheck:
    remote = remote or resolver

    if force_update:
        return _stale(StalenessReason.FORCED, "update forced by caller")

    if not layout.is_installed():
        return _stale(StalenessReason.NOT_INSTALLED, f"server not installed in {layout.server_dir}")

    if record is None:
        return _stale(StalenessReason.NO_RECORD, f"no valid install state in {layout.state_file}")

    if not _same(record.channel, desired_channel):
        return _stale(StalenessReason.CHANNEL_CHANGED, f"channel {record.channel} -> {desired_channel}")

    detected = resolver.detect_installed_version(layout.server_dir)
    if not _same(detected, record.detected_version):
        return _stale(StalenessReason.DETECTED_VERSION_CHANGED,
                      f"installed jar reports {detected}, state says {record.detected_version}")

    if _same(desired_version, LATEST):
        remote_version = remote.fetch_latest_remote_version(desired_channel)
        if remote_version is not None and not _same(remote_version, record.resolved_version):
            return _stale(StalenessReason.UPDATE_AVAILABLE,
                          f"new version {remote_version} (current: {record.resolved_version})")
    elif not _same(record.resolved_version, desired_version):
        return _stale(StalenessReason.VERSION_CHANGED, f"version {record.resolved_version} -> {desired_version}")

    for path in (layout.assets_zip, layout.server_jar):
        if not path.exists():
            return _stale(StalenessReason.ARTIFACT_MISSING, f"missing {path}")

    if not store.matches(layout.server_jar, record.server_jar):
        return _stale(StalenessReason.FINGERPRINT_MISMATCH, f"{layout.server_jar} changed since install")
    if not store.matches(layout.assets_zip, record.assets_zip):
        return _stale(StalenessReason.FINGERPRINT_MISMATCH, f"{layout.assets_zip} changed since install")

    return StalenessCheck(must_reinstall=False, reason=StalenessReason.UP_TO_DATE,
                          detail=f"{record.channel} {record.resolved_version} is current")


def must_reinstall(*args, **kwargs) -> bool:
    return evaluate_staleness(*args, **kwargs).must_reinstall
