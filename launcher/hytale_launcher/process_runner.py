from __future__ import annotations
import logging
import os
import shutil
import subprocess
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .terminals import TerminalTemplate
from .logging_setup import get_logger

logger = get_logger("hytale.launcher.proc")

RESTART_EXIT_CODE = 8


class SupervisorState(str, Enum):
    RUNNING = "running"
    RESTARTING = "restarting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ServerExitError(RuntimeError):
    def __init__(self, exit_code: int):
        self.exit_code = exit_code
        super().__init__(
            f"Hytale server exited with code {exit_code}. "
            "If you didn't see any server output, run the launcher in the foreground "
            "(not as a daemon/background service) to get the console attached."
        )


def is_windows() -> bool:
    return os.name == "nt"


def _has_bin(home: Optional[Path]) -> bool:
    return home is not None and (home / "bin").is_dir()


def current_runtime_home(environ: Mapping[str, str] = os.environ) -> Optional[Path]:
    java_home = environ.get("JAVA_HOME")
    if java_home:
        return Path(java_home)
    java = shutil.which("java", path=environ.get("PATH"))
    if java:
        # <home>/bin/java
        return Path(os.path.realpath(java)).parent.parent
    return None


def find_managed_runtime(version: int, runtimes_dir: Optional[Path],
                         environ: Mapping[str, str] = os.environ) -> Optional[Path]:
    for var in (f"JAVA_HOME_{version}_X64", f"JAVA_HOME_{version}_AARCH64", f"JAVA_{version}_HOME"):
        value = environ.get(var)
        if value and _has_bin(Path(value)):
            return Path(value)

    if runtimes_dir is None or not runtimes_dir.is_dir():
        return None
    prefixes = (f"jdk-{version}", f"jdk{version}", f"{version}")
    for candidate in sorted(runtimes_dir.iterdir()):
        name = candidate.name.lower()
        if not any(name == p or name.startswith(p + ".") or name.startswith(p + "-") or name.startswith(p + "+")
                   for p in prefixes):
            continue
        if _has_bin(candidate):
            return candidate
        # macOS bundles keep the home under Contents/Home
        mac_home = candidate / "Contents" / "Home"
        if _has_bin(mac_home):
            return mac_home
    return None


class ProcessSupervisor:
    """
    Runs the server's start script attached to our own console and
    restarts it whenever it exits with the restart sentinel (8).
    """

    def __init__(self, *, log: Optional[logging.Logger] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 runtimes_dir: Optional[Path] = None):
        self.log = log or logger
        self.environ = dict(os.environ if environ is None else environ)
        self.runtimes_dir = runtimes_dir
        self.state: Optional[SupervisorState] = None
        self.restarts = 0

    # ---------------------------------------------------------------------- #
    def resolve_runtime_home(self, desired_version: int) -> Optional[Path]:
        managed = find_managed_runtime(desired_version, self.runtimes_dir, self.environ)
        if managed is not None:
            self.log.debug("Using managed Java %s runtime at %s", desired_version, managed)
            return managed

        current = current_runtime_home(self.environ)
        if current is None:
            return None
        if _has_bin(current):
            return current
        if _has_bin(current.parent):
            return current.parent
        return None

    def runtime_env(self, runtime_home: Optional[Path]) -> Dict[str, str]:
        env = dict(self.environ)
        if not _has_bin(runtime_home):
            return env
        env["JAVA_HOME"] = str(runtime_home.resolve())
        bin_dir = str((runtime_home / "bin").resolve())
        current_path = env.get("PATH", "")
        env["PATH"] = bin_dir + (os.pathsep + current_path if current_path else "")
        return env

    def launcher_command(self, script: Path, extra_args: Sequence[str]) -> List[str]:
        if is_windows():
            return ["cmd", "/c", "call", str(script.resolve())] + list(extra_args)
        return ["bash", str(script.resolve())] + list(extra_args)

    def launch_attached(self, server_dir: Path, script: Path, extra_args: Sequence[str],
                        runtime_home: Optional[Path]) -> int:
        cmd = self.launcher_command(script, extra_args)
        self.log.info("Starting server: %s", " ".join(cmd))
        # stdin/stdout/stderr are inherited so the console reaches the server
        proc = subprocess.Popen(cmd, cwd=str(server_dir), env=self.runtime_env(runtime_home))
        try:
            rc = proc.wait()
        except KeyboardInterrupt:
            # Ctrl+C reached the server too; let it finish saving instead of killing it
            self.log.info("Interrupted, waiting for the server (pid=%s) to shut down", proc.pid)
            proc.wait()
            raise
        self.log.info("Server exited with rc=%s", rc)
        return rc

    # ---------------------------------------------------------------------- #
    def supervise(self, launch: Callable[[], int]) -> SupervisorState:
        self.restarts = 0
        while True:
            self.state = SupervisorState.RUNNING
            rc = launch()
            if rc == RESTART_EXIT_CODE:
                # restart requests are intentional (e.g. after an in-place update): no backoff
                self.state = SupervisorState.RESTARTING
                self.restarts += 1
                self.log.info("Server requested a restart (rc=%s), relaunching", rc)
                continue
            if rc != 0:
                self.state = SupervisorState.FAILED
                raise ServerExitError(rc)
            self.state = SupervisorState.SUCCEEDED
            self.log.info("Server stopped normally")
            return self.state

    def run_attached(self, server_dir: Path, script: Path, extra_args: Sequence[str],
                     runtime_home: Optional[Path]) -> SupervisorState:
        return self.supervise(lambda: self.launch_attached(server_dir, script, extra_args, runtime_home))

    # ---------------------------------------------------------------------- #
    def _spawn_detached(self, cmd: List[str], cwd: Path) -> None:
        kwargs = {}
        if is_windows():
            kwargs["creationflags"] = getattr(subprocess, "DETACHED_PROCESS", 0)
        else:
            kwargs["start_new_session"] = True
        subprocess.Popen(cmd, cwd=str(cwd), stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL,
                         stderr=subprocess.DEVNULL, **kwargs)

    def launch_in_terminal(self, command: Sequence[str], templates: Sequence[TerminalTemplate],
                           cwd: Path) -> Optional[str]:
        """
        Open `command` in the first terminal that starts.

        Returns the name of the terminal used, or None when every candidate
        failed to spawn and the command was run attached instead.
        """
        command_line = " ".join(quote_arg(a) for a in command)

        if is_windows():
            try:
                subprocess.run(["cmd", "/c", "start", "Hytale Server", "cmd", "/k", command_line],
                               cwd=str(cwd), check=False)
                return "cmd"
            except OSError as e:
                self.log.debug("cmd start failed: %s", e)
        else:
            for template in templates:
                cmd = template.render(command_line)
                try:
                    self._spawn_detached(cmd, cwd)
                except OSError as e:
                    self.log.debug("Terminal %s failed to start: %s", template.name, e)
                    continue
                self.log.info("Opened server console in %s", template.name)
                return template.name

        self.log.warning("No terminal could be opened, running in this console instead")
        subprocess.run(list(command), cwd=str(cwd), check=False)
        return None


def quote_arg(arg: str) -> str:
    trimmed = arg.strip()
    return f'"{trimmed}"' if any(c.isspace() for c in trimmed) else trimmed
