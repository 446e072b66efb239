import datetime
import logging
import shutil
from pathlib import Path
from typing import TextIO
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .settings import settings

_LOGGING_CONFIGURED = False


class LocalTimezoneFormatter(logging.Formatter):
    """
    Logging formatter that forces timestamps into a configured timezone.
    Defaults to the system local timezone when LOG_TIMEZONE is not set
    or when the provided timezone is invalid.
    """

    def __init__(self, *args, timezone_name: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._tzinfo = _resolve_tzinfo(timezone_name)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.datetime.fromtimestamp(record.created, tz=self._tzinfo)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(timespec="milliseconds")


def _project_root() -> Path:
    # claude_relay/logging_config.py -> claude_relay -> repo root
    return Path(__file__).resolve().parents[1]


def _resolve_log_dir(value: str | Path) -> Path:
    p = value if isinstance(value, Path) else Path(value)
    if p.is_absolute():
        return p
    return _project_root() / p


def _resolve_tzinfo(timezone_name: str | None) -> datetime.tzinfo:
    if timezone_name:
        try:
            return ZoneInfo(timezone_name)
        except ZoneInfoNotFoundError:
            pass
    # Fallback to system local timezone
    return datetime.datetime.now().astimezone().tzinfo or datetime.timezone.utc


def infer_log_business(record: logging.LogRecord) -> str:
    """
    Best-effort mapping from a log record back to a "business bucket".

    Most modules import the shared `logger` instance (name always
    "claude_relay"), so the call site path decides the bucket.
    """
    name = record.name or ""
    if name.startswith("uvicorn.access"):
        return "access"
    if name.startswith(("uvicorn.error", "uvicorn")):
        return "server"

    path = (record.pathname or "").replace("\\", "/")
    if "/claude_relay/api/v1/chat_routes.py" in path or "/claude_relay/services/" in path:
        return "chat"
    if "/claude_relay/translation/" in path:
        return "chat"
    if "/claude_relay/session/" in path or "/claude_relay/api/v1/session_routes.py" in path:
        return "session"
    if "/claude_relay/auth/" in path or "/claude_relay/auth_store.py" in path:
        return "auth"
    if "/claude_relay/api/v1/auth_routes.py" in path:
        return "auth"

    return "app"


class _DailyFolderHandler(logging.Handler):
    """
    Base for handlers writing under <log_dir>/<YYYY-MM-DD>/.
    Switching to a new day closes the open files and prunes old folders.
    """

    def __init__(
        self,
        log_dir: Path,
        backup_days: int = 7,
        encoding: str = "utf-8",
        timezone_name: str | None = None,
    ) -> None:
        super().__init__()
        self.log_dir = log_dir
        self.backup_days = backup_days
        self.encoding = encoding
        self.terminator = "\n"
        self._tzinfo = _resolve_tzinfo(timezone_name)
        self._current_date: datetime.date | None = None
        self._streams: dict[str, TextIO] = {}

    def _rotate_if_needed(self) -> datetime.date:
        today = datetime.datetime.now(tz=self._tzinfo).date()
        if self._current_date != today:
            self._current_date = today
            self._close_all_streams()
            (self.log_dir / today.isoformat()).mkdir(parents=True, exist_ok=True)
            cleanup_old_log_dirs(self.log_dir, self.backup_days)
        return today

    def _stream(self, filename: str) -> TextIO:
        stream = self._streams.get(filename)
        if stream is None:
            day = self._rotate_if_needed()
            stream = open(self.log_dir / day.isoformat() / filename, "a", encoding=self.encoding)
            self._streams[filename] = stream
        return stream

    def _close_all_streams(self) -> None:
        for stream in self._streams.values():
            try:
                stream.close()
            except OSError:
                pass
        self._streams.clear()

    def _filename_for(self, record: logging.LogRecord) -> str:
        raise NotImplementedError

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._rotate_if_needed()
            stream = self._stream(self._filename_for(record))
            stream.write(self.format(record) + self.terminator)
            stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            self._close_all_streams()
        finally:
            super().close()


class DailyFolderFileHandler(_DailyFolderHandler):
    """Single file per day: <log_dir>/<YYYY-MM-DD>/<filename>."""

    def __init__(self, log_dir: Path, filename: str, **kwargs) -> None:
        super().__init__(log_dir, **kwargs)
        self.filename = filename

    def _filename_for(self, record: logging.LogRecord) -> str:
        return self.filename


class DailyFolderBusinessFileHandler(_DailyFolderHandler):
    """One file per business bucket: <log_dir>/<YYYY-MM-DD>/<business>.log."""

    def _filename_for(self, record: logging.LogRecord) -> str:
        biz = infer_log_business(record)
        setattr(record, "biz", biz)
        safe = "".join(c if (c.isalnum() or c in ("-", "_")) else "_" for c in biz)
        return f"{safe}.log"


def cleanup_old_log_dirs(log_dir: Path, backup_days: int) -> None:
    if backup_days <= 0:
        return
    try:
        dirs = [p for p in log_dir.iterdir() if p.is_dir()]
    except OSError:
        return

    dated: list[tuple[datetime.date, Path]] = []
    for p in dirs:
        try:
            day = datetime.date.fromisoformat(p.name)
        except ValueError:
            continue
        dated.append((day, p))

    dated.sort(key=lambda x: x[0])
    if len(dated) <= backup_days:
        return
    for _, old_dir in dated[: len(dated) - backup_days]:
        try:
            shutil.rmtree(old_dir)
        except OSError:
            # Best-effort cleanup; ignore failures.
            pass


class EnsureBizFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if not hasattr(record, "biz"):
            setattr(record, "biz", infer_log_business(record))
        return True


class FixedBizFilter(logging.Filter):
    def __init__(self, biz: str) -> None:
        super().__init__()
        self._biz = biz

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        setattr(record, "biz", self._biz)
        return True


def setup_logging() -> None:
    """
    Configure application logging.
    Writes logs to a daily rotating folder under LOG_DIR (default: ./logs/),
    with files split by business, e.g. logs/2025-12-12/session.log.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    log_dir = _resolve_log_dir(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    app_logger = logging.getLogger("claude_relay")
    access_logger = logging.getLogger("uvicorn.access")
    uvicorn_logger = logging.getLogger("uvicorn")

    level_value = getattr(logging, settings.log_level.upper(), logging.INFO)

    formatter = LocalTimezoneFormatter(
        "%(asctime)s [%(levelname)s] [%(biz)s] %(name)s - %(message)s",
        timezone_name=settings.log_timezone,
    )

    if settings.log_split_by_business:
        file_handler: logging.Handler = DailyFolderBusinessFileHandler(
            log_dir=log_dir,
            backup_days=settings.log_backup_days,
            timezone_name=settings.log_timezone,
        )
    else:
        file_handler = DailyFolderFileHandler(
            log_dir=log_dir,
            filename="app.log",
            backup_days=settings.log_backup_days,
            timezone_name=settings.log_timezone,
        )
    file_handler.setFormatter(formatter)
    file_handler.addFilter(EnsureBizFilter())
    # Only application logs (logger "claude_relay") go into the business log files.
    file_handler.addFilter(lambda record: record.name.startswith("claude_relay"))
    app_logger.setLevel(level_value)
    app_logger.propagate = True  # let logs also go to root/uvicorn handlers (console)
    app_logger.addHandler(file_handler)

    access_file_handler = DailyFolderFileHandler(
        log_dir=log_dir,
        filename="access.log",
        backup_days=settings.log_backup_days,
        timezone_name=settings.log_timezone,
    )
    access_file_handler.setFormatter(formatter)
    access_file_handler.addFilter(FixedBizFilter("access"))
    access_logger.setLevel(level_value)
    access_logger.propagate = True
    access_logger.addHandler(access_file_handler)

    server_file_handler = DailyFolderFileHandler(
        log_dir=log_dir,
        filename="server.log",
        backup_days=settings.log_backup_days,
        timezone_name=settings.log_timezone,
    )
    server_file_handler.setFormatter(formatter)
    server_file_handler.addFilter(FixedBizFilter("server"))
    server_file_handler.addFilter(
        lambda record: not (record.name or "").startswith("uvicorn.access")
    )
    uvicorn_logger.setLevel(level_value)
    uvicorn_logger.propagate = True
    uvicorn_logger.addHandler(server_file_handler)

    # Console handler: attach to root so that uvicorn and claude_relay
    # logs are visible in the terminal.
    root_logger.setLevel(level_value)
    has_console = False
    for h in root_logger.handlers:
        if isinstance(h, logging.StreamHandler) and not isinstance(
            h, logging.FileHandler
        ):
            has_console = True
            break
    if not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.addFilter(EnsureBizFilter())
        root_logger.addHandler(console_handler)

    _LOGGING_CONFIGURED = True


logger = logging.getLogger("claude_relay")
