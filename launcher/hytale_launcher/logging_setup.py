from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from .settings import Settings

class JsonLineFormatter(logging.Formatter):
    """One JSON object per line (LOG_JSON=true), for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "pid": record.process,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)
        return json.dumps(entry, ensure_ascii=False, default=str)

def setup_logging(settings: Settings, *, log_file: bool = True) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(settings.log_level.upper())

    fmt = JsonLineFormatter() if settings.log_json else logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    root.addHandler(ch)

    launcher_log = logging.getLogger("hytale.launcher")
    for h in list(launcher_log.handlers):
        if isinstance(h, RotatingFileHandler):
            launcher_log.removeHandler(h)
            h.close()

    if log_file:
        logs_dir = settings.work_dir / "logs"
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(logs_dir / "launcher.log", maxBytes=5_000_000, backupCount=3, encoding="utf-8")
        except OSError as e:
            # keep console logging only
            root.warning("Could not open log file in %s (%s), continuing with console logging only.", logs_dir, e)
        else:
            fh.setFormatter(fmt)
            fh.setLevel(settings.log_level.upper())
            launcher_log.addHandler(fh)
    launcher_log.propagate = True

def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
