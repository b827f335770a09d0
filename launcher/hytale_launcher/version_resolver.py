from __future__ import annotations

import logging
import re
import urllib.error
import urllib.request
import zipfile
import zlib
from pathlib import Path
from typing import Dict, Optional, Protocol

from .fs_layout import build_layout
from .settings import DEFAULT_METADATA_URL
from .logging_setup import get_logger

UNKNOWN_VERSION = "unknown"
MANIFEST_PATH = "META-INF/MANIFEST.MF"
VERSION_KEYS = ("Implementation-Version", "Bundle-Version")

_VERSIONS_BLOCK_RE = re.compile(r"<versions>\s*(.*?)\s*</versions>", re.IGNORECASE | re.DOTALL)
_VERSION_RE = re.compile(r"<version>\s*([^<]+?)\s*</version>", re.IGNORECASE)


class RemoteVersionSource(Protocol):
    def fetch_latest_remote_version(self, channel: str) -> Optional[str]: ...


def extract_xml_tag_value(xml: str, tag: str) -> Optional[str]:
    """First `<tag>value</tag>` in the document, trimmed; blank values count as missing."""
    m = re.search(rf"<{re.escape(tag)}>\s*([^<]+?)\s*</{re.escape(tag)}>", xml, re.IGNORECASE)
    if not m:
        return None
    value = m.group(1).strip()
    return value or None


def extract_last_version_in_versions_block(xml: str) -> Optional[str]:
    """
    Last `<version>` inside the `<versions>` block, in document order.

    This is deliberately not a semantic-version maximum: maven metadata lists
    versions in publish order, so the last entry is the newest upload.
    """
    block = _VERSIONS_BLOCK_RE.search(xml)
    if not block:
        return None
    versions = [v.strip() for v in _VERSION_RE.findall(block.group(1)) if v.strip()]
    return versions[-1] if versions else None


def parse_manifest(text: str) -> Dict[str, str]:
    """Main section of a jar manifest (continuation lines start with one space)."""
    attrs: Dict[str, str] = {}
    last_key: Optional[str] = None
    for line in text.splitlines():
        if not line:
            break
        if line.startswith(" ") and last_key:
            attrs[last_key] += line[1:]
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        last_key = key.strip()
        attrs[last_key] = value.strip()
    return attrs


class VersionResolver:
    def __init__(self, metadata_url: str = DEFAULT_METADATA_URL, *, timeout: float = 5.0,
                 log: Optional[logging.Logger] = None):
        self.metadata_url = metadata_url
        self.timeout = timeout
        self.log = log or get_logger("hytale.launcher.version")

    def detect_installed_version(self, server_dir: Path) -> str:
        jar = build_layout(server_dir).server_jar
        if not jar.is_file():
            return UNKNOWN_VERSION
        try:
            with zipfile.ZipFile(jar) as zf:
                raw = zf.read(MANIFEST_PATH)
        except (OSError, KeyError, EOFError, RuntimeError, NotImplementedError,
                zlib.error, zipfile.BadZipFile) as e:
            self.log.debug("Could not read manifest from %s: %s", jar, e)
            return UNKNOWN_VERSION

        attrs = parse_manifest(raw.decode("utf-8", errors="replace"))
        for key in VERSION_KEYS:
            if attrs.get(key):
                return attrs[key]
        return UNKNOWN_VERSION

    def metadata_url_for(self, channel: str) -> str:
        return self.metadata_url.format(channel=channel.lower())

    def _fetch_text(self, url: str) -> str:
        req = urllib.request.Request(url, headers={"User-Agent": "hytale-launcher"})
        with urllib.request.urlopen(req, timeout=self.timeout) as response:
            return response.read().decode("utf-8")

    def fetch_latest_remote_version(self, channel: str) -> Optional[str]:
        url = self.metadata_url_for(channel)
        self.log.info("Checking for updates at %s...", url)
        try:
            xml = self._fetch_text(url)
        except (urllib.error.URLError, OSError, UnicodeDecodeError, ValueError) as e:
            self.log.warning("Failed to fetch remote version metadata from %s: %s", url, e)
            return None

        return (
            extract_last_version_in_versions_block(xml)
            or extract_xml_tag_value(xml, "release")
            or extract_xml_tag_value(xml, "latest")
        )
