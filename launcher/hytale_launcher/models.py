from __future__ import annotations
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        if isinstance(value, float):
            return int(value)
        return int(str(value).strip())
    except (ValueError, OverflowError):
        # nan, inf, 1e400 and non-numeric strings
        return None


class ArtifactFingerprint(BaseModel):
    """
    Size, modification time (epoch ms) and SHA-256 of one artifact.

    Every field is optional. A fingerprint with any field missing can never
    verify a file; absent values are kept absent and never written as zero.
    """
    size_bytes: Optional[int] = None
    last_modified_ms: Optional[int] = None
    sha256: Optional[str] = None

    @field_validator("size_bytes", "last_modified_ms", mode="before")
    @classmethod
    def _parse_number(cls, v: Any) -> Optional[int]:
        return _coerce_int(v)

    @field_validator("sha256", mode="before")
    @classmethod
    def _parse_hash(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @property
    def is_complete(self) -> bool:
        return self.size_bytes is not None and self.last_modified_ms is not None and bool(self.sha256)


class InstallationRecord(BaseModel):
    """What is currently installed in a server directory (`.hytale-setup-state.json`)."""
    channel: str
    version: str
    resolved_version: Optional[str] = None
    detected_version: Optional[str] = None
    server_jar: ArtifactFingerprint = Field(default_factory=ArtifactFingerprint)
    assets_zip: ArtifactFingerprint = Field(default_factory=ArtifactFingerprint)

    @field_validator("channel", "version", "resolved_version", "detected_version", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @model_validator(mode="after")
    def _legacy_defaults(self) -> "InstallationRecord":
        # records written before resolved/detected were tracked only carry "version"
        if self.resolved_version is None:
            self.resolved_version = self.version
        if self.detected_version is None:
            self.detected_version = self.version
        return self

    @classmethod
    def from_state_dict(cls, data: Dict[str, Any]) -> "InstallationRecord":
        return cls(
            channel=data.get("channel"),
            version=data.get("version"),
            resolved_version=data.get("resolvedVersion"),
            detected_version=data.get("detectedVersion"),
            server_jar=ArtifactFingerprint(
                size_bytes=data.get("serverJarSize"),
                last_modified_ms=data.get("serverJarLastModified"),
                sha256=data.get("serverJarSha256"),
            ),
            assets_zip=ArtifactFingerprint(
                size_bytes=data.get("assetsZipSize"),
                last_modified_ms=data.get("assetsZipLastModified"),
                sha256=data.get("assetsZipSha256"),
            ),
        )

    def to_state_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "channel": self.channel,
            "version": self.version,
            "resolvedVersion": self.resolved_version,
            "detectedVersion": self.detected_version,
        }
        for prefix, fp in (("serverJar", self.server_jar), ("assetsZip", self.assets_zip)):
            if fp.size_bytes is not None:
                out[f"{prefix}Size"] = fp.size_bytes
            if fp.last_modified_ms is not None:
                out[f"{prefix}LastModified"] = fp.last_modified_ms
            if fp.sha256 is not None:
                out[f"{prefix}Sha256"] = fp.sha256
        return out
