from __future__ import annotations
import argparse
import json
from pathlib import Path
from typing import Any, Dict
import uvicorn
from .settings import Settings
from .logging_setup import get_logger, setup_logging
from .orchestrator import Orchestrator
from .api import create_app

log = get_logger("hytale.launcher.cli")

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hytale-launcher")
    parser.add_argument("--server-dir", type=Path, help="Server installation directory (default: ./run)")
    parser.add_argument("--channel", help="Release channel: release | pre-release")
    parser.add_argument("--version", help="Server version or 'latest'")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("check", help="Print whether the installation is stale as JSON and exit")

    setup_p = sub.add_parser("setup", help="Download + install the server if missing or outdated")
    setup_p.add_argument("--update", action="store_true", help="Force a fresh install")

    run_p = sub.add_parser("run", help="Setup (if needed) and run the server attached to this console")
    run_p.add_argument("--args", dest="server_args", default=None, help="Extra server arguments")
    run_p.add_argument("--no-setup", action="store_true", help="Don't check for updates before starting")
    run_p.add_argument("--update", action="store_true", help="Force a fresh install before starting")

    inter_p = sub.add_parser("run-interactive", help="Setup (if needed) and run the server in a new terminal window")
    inter_p.add_argument("--args", dest="server_args", default=None, help="Extra server arguments")
    inter_p.add_argument("--update", action="store_true", help="Force a fresh install before starting")

    api_p = sub.add_parser("api", help="Run REST API (FastAPI)")
    api_p.add_argument("--host", default="127.0.0.1")
    api_p.add_argument("--port", type=int, default=8000)
    return parser

def load_settings(args: argparse.Namespace) -> Settings:
    overrides: Dict[str, Any] = {}
    if args.server_dir is not None:
        overrides["server_dir"] = args.server_dir
    if args.channel:
        overrides["channel"] = args.channel
    if args.version:
        overrides["version"] = args.version
    if getattr(args, "server_args", None) is not None:
        overrides["server_args"] = args.server_args
    settings = Settings()
    return settings.model_copy(update=overrides) if overrides else settings

def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args)
    setup_logging(settings)

    try:
        if args.cmd == "check":
            orch = Orchestrator(settings)
            result = orch.check()
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            return 1 if result.must_reinstall else 0

        if args.cmd == "setup":
            Orchestrator(settings).setup(force=args.update)
            return 0

        if args.cmd == "run":
            orch = Orchestrator(settings)
            if not args.no_setup:
                orch.setup(force=args.update)
            orch.run_server()
            return 0

        if args.cmd == "run-interactive":
            orch = Orchestrator(settings)
            orch.setup(force=args.update)
            orch.run_interactive()
            return 0

        if args.cmd == "api":
            uvicorn.run(create_app(settings), host=args.host, port=args.port, log_level=settings.log_level.lower())
            return 0
    except KeyboardInterrupt:
        log.info("%s interrupted", args.cmd)
        return 130
    except Exception as e:
        log.exception("%s failed: %s", args.cmd, e)
        return 1

    return 2
