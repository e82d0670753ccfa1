"""
CLI helper utilities.

- Logging setup: console on stderr, optional log file (size-rotated), text
  or JSON records
- Reading command input from a file or stdin
- Writing command output to a file or stdout
"""

import json
import logging
import sys
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Handler
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

from ..constants import LoggingConfig

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with ``extra=`` fields (plan, step, uri...) inlined."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": created.strftime(LoggingConfig.JSON_DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            entry.setdefault(key, value if isinstance(value, (str, int, float, bool, type(None))) else repr(value))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


@dataclass(frozen=True)
class LogSettings:
    """Effective logging settings after merging flags with the config section."""

    level: int = logging.INFO
    style: str = LoggingConfig.DEFAULT_FORMAT_STYLE
    file: Optional[str] = None
    max_bytes: int = LoggingConfig.MAX_LOG_FILE_MB * 1024 * 1024
    backup_count: int = LoggingConfig.LOG_BACKUP_COUNT
    rotate: bool = LoggingConfig.ROTATION_ENABLED
    pattern: str = LoggingConfig.LOG_FORMAT
    date_format: str = LoggingConfig.DATE_FORMAT
    console: bool = True

    @classmethod
    def resolve(
        cls,
        level: Optional[str],
        log_file: Optional[str],
        section: Mapping[str, Any],
        console: bool = True,
    ) -> "LogSettings":
        level_name = str(level or section.get("level") or LoggingConfig.DEFAULT_LOG_LEVEL).upper()
        style = str(section.get("format", LoggingConfig.DEFAULT_FORMAT_STYLE)).lower()
        if style not in LoggingConfig.SUPPORTED_FORMATS:
            style = LoggingConfig.DEFAULT_FORMAT_STYLE
        rotation = section.get("rotation")
        rotation = rotation if isinstance(rotation, Mapping) else {}
        return cls(
            level=getattr(logging, level_name, logging.INFO),
            style=style,
            file=log_file if log_file is not None else section.get("file"),
            max_bytes=_positive(rotation.get("max_mb"), LoggingConfig.MAX_LOG_FILE_MB) * 1024 * 1024,
            backup_count=_positive(rotation.get("backup_count"), LoggingConfig.LOG_BACKUP_COUNT),
            rotate=bool(rotation.get("enabled", LoggingConfig.ROTATION_ENABLED)),
            pattern=section.get("pattern") or LoggingConfig.LOG_FORMAT,
            date_format=section.get("date_format") or LoggingConfig.DATE_FORMAT,
            console=console,
        )

    def formatter(self) -> logging.Formatter:
        if self.style == "json":
            return JSONFormatter()
        return logging.Formatter(fmt=self.pattern, datefmt=self.date_format)


def _positive(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


_MANAGED_HANDLERS: List[Handler] = []
_LOGGING_SIGNATURE: Optional[LogSettings] = None
_LAST_LOG_FILE: Optional[str] = None


def _clear_managed_handlers() -> None:
    """Detach and close the handlers installed by setup_logging."""
    root = logging.getLogger()
    while _MANAGED_HANDLERS:
        handler = _MANAGED_HANDLERS.pop()
        root.removeHandler(handler)
        handler.close()


def _log_file_candidates(path: str) -> Iterator[Path]:
    requested = Path(path).expanduser()
    yield requested
    name = requested.name or "semlift.log"
    yield Path(tempfile.gettempdir()) / name
    yield Path.home() / name


def _open_log_file(settings: LogSettings) -> Optional[Handler]:
    if not settings.file:
        return None
    for candidate in _log_file_candidates(settings.file):
        try:
            candidate.parent.mkdir(parents=True, exist_ok=True)
            if settings.rotate:
                handler: Handler = RotatingFileHandler(
                    candidate,
                    maxBytes=settings.max_bytes,
                    backupCount=settings.backup_count,
                    encoding="utf-8",
                )
            else:
                handler = logging.FileHandler(candidate, encoding="utf-8")
        except OSError as exc:
            print(f"  Cannot open log file {candidate}: {exc}", file=sys.stderr)
            continue
        handler.set_name(str(candidate))
        return handler
    return None


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    *,
    config: Optional[Mapping[str, Any]] = None,
    include_console: bool = True,
) -> Optional[str]:
    """
    Configure root logging for a CLI run.

    Flags win over the ``logging`` section of the configuration file. When
    the log file cannot be opened, the same file name is tried in the temp
    directory and then the home directory; failing all three, only the
    console handler is installed. Calling again with identical settings is a
    no-op.

    Args:
        level: Level name (DEBUG, INFO, ...).
        log_file: Log file path.
        config: The ``logging`` configuration section.
        include_console: Install the stderr handler.

    Returns:
        Path of the log file in use, or None.
    """
    global _LOGGING_SIGNATURE, _LAST_LOG_FILE

    settings = LogSettings.resolve(level, log_file, config or {}, include_console)
    if settings == _LOGGING_SIGNATURE and _MANAGED_HANDLERS:
        return _LAST_LOG_FILE

    handlers: List[Handler] = []
    file_handler = _open_log_file(settings) if settings.file else None
    if file_handler is not None:
        handlers.append(file_handler)
    elif settings.file:
        print(f"Warning: logging to console only, {settings.file} is not writable", file=sys.stderr)
    if settings.console or not handlers:
        handlers.insert(0, logging.StreamHandler(sys.stderr))

    formatter = settings.formatter()
    _clear_managed_handlers()
    root = logging.getLogger()
    root.setLevel(settings.level)
    logging.captureWarnings(True)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
        _MANAGED_HANDLERS.append(handler)

    _LOGGING_SIGNATURE = settings
    _LAST_LOG_FILE = file_handler.get_name() if file_handler is not None else None
    if _LAST_LOG_FILE and _LAST_LOG_FILE != str(Path(settings.file).expanduser()):
        logging.getLogger(__name__).warning("Using fallback log file %s", _LAST_LOG_FILE)
    return _LAST_LOG_FILE


def read_input(path: Optional[str]) -> bytes:
    """Bytes of ``path``; stdin when the path is None or ``-``."""
    if not path or path == "-":
        return sys.stdin.buffer.read()
    return Path(path).read_bytes()


def write_output(data: bytes, path: Optional[str]) -> None:
    """Write ``data`` to ``path`` (parents created); stdout when the path is None or ``-``."""
    if not path or path == "-":
        sys.stdout.buffer.write(data)
        sys.stdout.flush()
        return
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


def report_path(out_path: str) -> str:
    """Location of the SHACL report written next to ``out_path``."""
    return f"{out_path}.shacl.ttl"
