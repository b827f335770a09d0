from __future__ import annotations
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .settings import Settings
from .logging_setup import get_logger
from .fs_layout import Layout, build_layout
from .state_store import InstallationStateStore
from .version_resolver import VersionResolver
from .staleness import LATEST, StalenessCheck, evaluate_staleness
from .script_patcher import ensure_scripts_patched, write_jvm_args_file
from .downloader import HytaleDownloader
from .process_runner import ProcessSupervisor, SupervisorState, is_windows
from .terminals import resolve_terminal_templates

log = get_logger("hytale.launcher.orch")

class Orchestrator:
    def __init__(self, settings: Settings, *,
                 store: Optional[InstallationStateStore] = None,
                 resolver: Optional[VersionResolver] = None,
                 downloader: Optional[HytaleDownloader] = None,
                 supervisor: Optional[ProcessSupervisor] = None):
        self.settings = settings
        self.layout: Layout = build_layout(settings.server_dir)
        self.store = store or InstallationStateStore()
        self.resolver = resolver or VersionResolver(settings.metadata_url)
        self.downloader = downloader or HytaleDownloader(settings.downloader_url)
        self.supervisor = supervisor or ProcessSupervisor(runtimes_dir=settings.runtimes_dir)

    def check(self, *, force: bool = False) -> StalenessCheck:
        record = self.store.load(self.layout.server_dir)
        return evaluate_staleness(
            self.layout,
            self.settings.channel,
            self.settings.version,
            record,
            resolver=self.resolver,
            store=self.store,
            force_update=force or self.settings.force_update,
        )

    def setup(self, *, force: bool = False) -> bool:
        """Install or update the server if needed. Returns True if an install ran."""
        result = self.check(force=force)
        if not result.must_reinstall:
            log.info("Hytale server is up to date (%s)", result.detail)
            return False

        log.info("Installing Hytale server into %s (%s: %s)",
                 self.layout.server_dir, result.reason.value, result.detail)
        self.install()
        return True

    def install(self) -> None:
        channel = self.settings.channel
        server_dir = self.layout.server_dir

        self.downloader.install(channel, server_dir, self.settings.work_dir)
        ensure_scripts_patched(server_dir)
        write_jvm_args_file(server_dir, self.settings.jvm_args)

        detected = self.resolver.detect_installed_version(server_dir)
        if self.settings.version.lower() == LATEST:
            resolved = self.resolver.fetch_latest_remote_version(channel) or detected
        else:
            resolved = detected

        # written last: a failed install must leave no record behind
        self.store.save(server_dir, channel, resolved, detected)
        log.info("Hytale server %s (%s) installed", resolved, channel)

    def _launcher_script(self) -> Path:
        return self.layout.start_bat if is_windows() else self.layout.start_sh

    def verify_installed(self) -> Path:
        if not self.layout.is_installed():
            raise RuntimeError(f"Server is not installed in {self.layout.server_dir}. Run setup first.")
        missing = self.layout.missing_paths()
        if missing:
            raise RuntimeError(f"Missing {missing[0].name} at {missing[0]}")
        script = self._launcher_script()
        if not script.exists():
            raise RuntimeError(f"Missing {script.name} at {script}")
        return script

    def run_server(self, extra_args: Optional[Sequence[str]] = None) -> SupervisorState:
        script = self.verify_installed()
        args: List[str] = list(extra_args) if extra_args is not None else self.settings.split_server_args()

        # JVM args may have changed since install
        write_jvm_args_file(self.layout.server_dir, self.settings.jvm_args)

        runtime_home = self.supervisor.resolve_runtime_home(self.settings.java_version)
        if runtime_home is None:
            log.info("No Java %s runtime found, relying on the environment", self.settings.java_version)
        return self.supervisor.run_attached(self.layout.server_dir, script, args, runtime_home)

    def interactive_command(self, extra_args: Optional[Sequence[str]] = None) -> List[str]:
        cmd = [
            sys.executable, "-m", "hytale_launcher",
            "--server-dir", str(self.layout.server_dir.resolve()),
            "--channel", self.settings.channel,
            "--version", self.settings.version,
            "run", "--no-setup",
        ]
        args = list(extra_args) if extra_args is not None else self.settings.split_server_args()
        if args:
            # one token, so a value like "--allow-op" is not taken for an option
            cmd.append(f"--args={' '.join(args)}")
        return cmd

    def run_interactive(self, extra_args: Optional[Sequence[str]] = None) -> Optional[str]:
        templates = resolve_terminal_templates(self.settings.terminal, self.settings.terminal_command)
        return self.supervisor.launch_in_terminal(self.interactive_command(extra_args), templates, Path.cwd())
