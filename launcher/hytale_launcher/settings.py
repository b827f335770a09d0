from __future__ import annotations
from pathlib import Path
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_METADATA_URL = "https://maven.hytale.com/{channel}/com/hypixel/hytale/Server/maven-metadata.xml"
DEFAULT_DOWNLOADER_URL = "https://downloader.hytale.com/hytale-downloader.zip"

class Settings(BaseSettings):
    server_dir: Path = Field(default=Path("run"), alias="HYTALE_SERVER_DIR")
    work_dir: Path = Field(default=Path("build/hytale"), alias="HYTALE_WORK_DIR")
    runtimes_dir: Path = Field(default=Path.home() / ".hytale" / "jdks", alias="HYTALE_RUNTIMES_DIR")

    channel: str = Field(default="release", alias="HYTALE_CHANNEL")
    version: str = Field(default="latest", alias="HYTALE_VERSION")
    force_update: bool = Field(default=False, alias="HYTALE_FORCE_UPDATE")

    jvm_args: List[str] = Field(default_factory=list, alias="HYTALE_JVM_ARGS")
    server_args: str = Field(default="", alias="HYTALE_ARGS")
    java_version: int = Field(default=25, alias="HYTALE_JAVA_VERSION")

    terminal: Optional[str] = Field(default=None, alias="HYTALE_TERMINAL")
    terminal_command: Optional[List[str]] = Field(default=None, alias="HYTALE_TERMINAL_COMMAND")

    metadata_url: str = Field(default=DEFAULT_METADATA_URL, alias="HYTALE_METADATA_URL")
    downloader_url: str = Field(default=DEFAULT_DOWNLOADER_URL, alias="HYTALE_DOWNLOADER_URL")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    def split_server_args(self) -> List[str]:
        return self.server_args.split()
