"""
Tests for installed-version detection and remote metadata parsing.
"""

import logging
import struct
import urllib.error
import zipfile
from unittest.mock import patch

import pytest

from hytale_launcher.version_resolver import (
    UNKNOWN_VERSION,
    VersionResolver,
    extract_last_version_in_versions_block,
    extract_xml_tag_value,
    parse_manifest,
)
from conftest import write_jar


@pytest.fixture
def resolver():
    return VersionResolver("https://example.invalid/{channel}/maven-metadata.xml")


class TestExtractXmlTagValue:
    def test_simple_tag(self):
        assert extract_xml_tag_value("<metadata><release>1.2.3</release></metadata>", "release") == "1.2.3"

    def test_missing_tag(self):
        assert extract_xml_tag_value("<metadata><latest>1.0.0</latest></metadata>", "release") is None

    def test_trims_whitespace(self):
        assert extract_xml_tag_value("<release>  1.2.3  </release>", "release") == "1.2.3"

    def test_case_insensitive(self):
        assert extract_xml_tag_value("<Release>1.2.3</Release>", "release") == "1.2.3"

    def test_blank_tag_is_absent(self):
        assert extract_xml_tag_value("<release>  </release>", "release") is None


class TestExtractLastVersionInVersionsBlock:
    def test_returns_last_in_document_order(self):
        xml = """
            <versions>
                <version>1.0.0</version>
                <version>1.1.0</version>
                <version>1.2.0</version>
            </versions>
        """
        assert extract_last_version_in_versions_block(xml) == "1.2.0"

    def test_not_semver_max(self):
        xml = "<versions><version>2.0.0</version><version>1.9.0</version></versions>"
        assert extract_last_version_in_versions_block(xml) == "1.9.0"

    def test_missing_block(self):
        assert extract_last_version_in_versions_block("<metadata><release>1.0.0</release></metadata>") is None

    def test_empty_block(self):
        assert extract_last_version_in_versions_block("<versions></versions>") is None

    def test_single_version(self):
        xml = "<versions><version>2026.01.29-build.123</version></versions>"
        assert extract_last_version_in_versions_block(xml) == "2026.01.29-build.123"

    def test_trims_whitespace(self):
        xml = "<versions>\n  <version>  1.0.0  </version>\n  <version>  2.0.0  </version>\n</versions>"
        assert extract_last_version_in_versions_block(xml) == "2.0.0"


class TestParseManifest:
    def test_joins_continuation_lines(self):
        attrs = parse_manifest("Manifest-Version: 1.0\r\nImplementation-Version: 2026.01\r\n .29-abc\r\n")
        assert attrs["Implementation-Version"] == "2026.01.29-abc"

    def test_stops_at_first_blank_line(self):
        attrs = parse_manifest("Manifest-Version: 1.0\n\nName: foo\nImplementation-Version: 9\n")
        assert "Implementation-Version" not in attrs


class TestDetectInstalledVersion:
    def test_missing_directory(self, resolver, tmp_path):
        assert resolver.detect_installed_version(tmp_path / "nope") == UNKNOWN_VERSION

    def test_reads_implementation_version(self, resolver, tmp_path):
        write_jar(tmp_path / "Server" / "HytaleServer.jar", "2026.01.29")
        assert resolver.detect_installed_version(tmp_path) == "2026.01.29"

    def test_falls_back_to_bundle_version(self, resolver, tmp_path):
        write_jar(tmp_path / "Server" / "HytaleServer.jar", "3.1", key="Bundle-Version")
        assert resolver.detect_installed_version(tmp_path) == "3.1"

    def test_no_version_keys(self, resolver, tmp_path):
        write_jar(tmp_path / "Server" / "HytaleServer.jar", None)
        assert resolver.detect_installed_version(tmp_path) == UNKNOWN_VERSION

    def test_corrupt_jar(self, resolver, tmp_path):
        jar = tmp_path / "Server" / "HytaleServer.jar"
        jar.parent.mkdir(parents=True)
        jar.write_bytes(b"not a zip")
        assert resolver.detect_installed_version(tmp_path) == UNKNOWN_VERSION

    def test_corrupt_deflated_manifest(self, resolver, tmp_path):
        jar = tmp_path / "Server" / "HytaleServer.jar"
        jar.parent.mkdir(parents=True)
        manifest = "Manifest-Version: 1.0\r\nImplementation-Version: 1.0.0\r\n" + "X-Pad: abcdefgh\r\n" * 50
        with zipfile.ZipFile(jar, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("META-INF/MANIFEST.MF", manifest)
            info = zf.getinfo("META-INF/MANIFEST.MF")

        data = bytearray(jar.read_bytes())
        name_len, extra_len = struct.unpack("<HH", data[info.header_offset + 26:info.header_offset + 30])
        start = info.header_offset + 30 + name_len + extra_len
        for i in range(start, start + 8):
            data[i] ^= 0xFF
        jar.write_bytes(bytes(data))

        assert resolver.detect_installed_version(tmp_path) == UNKNOWN_VERSION


class TestFetchLatestRemoteVersion:
    def test_url_uses_lowercase_channel(self, resolver):
        assert resolver.metadata_url_for("Pre-Release") == "https://example.invalid/pre-release/maven-metadata.xml"

    def test_prefers_versions_block(self, resolver):
        xml = "<metadata><release>1.0.0</release><versions><version>1.0.0</version><version>1.1.0</version></versions></metadata>"
        with patch.object(resolver, "_fetch_text", return_value=xml):
            assert resolver.fetch_latest_remote_version("release") == "1.1.0"

    def test_falls_back_to_release_then_latest(self, resolver):
        with patch.object(resolver, "_fetch_text", return_value="<release>2.0</release><latest>3.0</latest>"):
            assert resolver.fetch_latest_remote_version("release") == "2.0"
        with patch.object(resolver, "_fetch_text", return_value="<latest>3.0</latest>"):
            assert resolver.fetch_latest_remote_version("release") == "3.0"

    def test_nothing_found(self, resolver):
        with patch.object(resolver, "_fetch_text", return_value="<metadata/>"):
            assert resolver.fetch_latest_remote_version("release") is None

    def test_network_failure_is_logged_not_raised(self, resolver, caplog):
        err = urllib.error.URLError("connection refused")
        with patch.object(resolver, "_fetch_text", side_effect=err), \
             caplog.at_level(logging.WARNING, logger="hytale.launcher.version"):
            assert resolver.fetch_latest_remote_version("release") is None
        assert "Failed to fetch remote version metadata" in caplog.text
        assert "example.invalid" in caplog.text

    def test_uses_short_timeout(self, resolver):
        with patch("urllib.request.urlopen", side_effect=OSError("boom")) as urlopen:
            assert resolver.fetch_latest_remote_version("release") is None
        assert urlopen.call_args.kwargs["timeout"] == 5.0
