"""Structured logging configuration with JSON formatting and sync-task context."""

import contextvars
import logging
import sys
import traceback
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me, the sync task key ("favorite::123", "multiPage::BV1xx...") rides along
# in a contextvar so every log line emitted during one sync carries it, even from deep
# inside the services. contextvars are per-asyncio-task, so concurrent syncs of
# different folders never see each other's key. Empty string means "not in a sync".
sync_task_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "sync_task", default=""
)


def get_sync_task() -> str:
    """Get the sync task key of the current context ("" if none)."""
    return sync_task_var.get()


def set_sync_task(sync_key: str) -> contextvars.Token[str]:
    """Set the sync task key for the current context.

    Returns:
        Token to hand to reset_sync_task() when the sync finishes
    """
    return sync_task_var.set(sync_key)


def reset_sync_task(token: contextvars.Token[str]) -> None:
    """Restore the sync task key that was active before set_sync_task()."""
    sync_task_var.reset(token)


class SyncTaskFilter(logging.Filter):
    """Add sync_task to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.sync_task = get_sync_task()
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Formatter that prints exception chains compactly, root cause first.

    Only frames from our own package are shown. Example:

    ERROR │ playlist_sync_service:210 │ Favorite 123 sync failed
    ╰─► OperationalError: database is locked
        File "repositories.py", line 175, in _insert_ignoring_conflicts
          await session.execute(insert(model).values(chunk).on_conflict_do_nothing())
    ╰─► DatabaseError: Failed to find or create tracks in batch
    ╰─► SyncFavoriteFailed: Favorite 123 sync failed
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        sync_task = getattr(record, "sync_task", "")
        return f"[{sync_task}] {message}" if sync_task else message

    def formatException(self, ei: Any) -> str:
        _exc_type, exc_value, _exc_tb = ei
        if exc_value is None:
            return ""

        chain: list[BaseException] = []
        current: BaseException | None = exc_value
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__
        chain.reverse()

        lines: list[str] = []
        for exc in chain:
            lines.append(f"╰─► {exc.__class__.__name__}: {exc}")
            if exc.__traceback__ is None:
                continue
            for frame in traceback.extract_tb(exc.__traceback__):
                if "/site-packages/" in frame.filename or "bbsync" not in frame.filename:
                    continue
                lines.append(
                    f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
                )
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """One JSON object per line: level, logger, source line and the sync task key."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            source=f"{record.module}:{record.lineno}",
        )
        if getattr(record, "sync_task", ""):
            log_record["sync_task"] = record.sync_task
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"
CONSOLE_FORMAT = "%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s"

# Chatty at INFO/DEBUG and never interesting for a sync
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite", "uvicorn.access")


def _build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return CustomJsonFormatter(JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    return CompactExceptionFormatter(fmt=CONSOLE_FORMAT, datefmt="%H:%M:%S")


# Call once at startup. It replaces the root logger's handlers, so calling it again
# (tests, reloads) doesn't duplicate output.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "bbsync",
) -> None:
    """Route all logging to stdout through one handler.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; unknown values mean INFO
        json_format: JSON lines instead of the compact console format
        app_name: Reported in the first log line
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(SyncTaskFilter())
    handler.setFormatter(_build_formatter(json_format))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured for {app_name} "
        f"(level={logging.getLevelName(level)}, json={json_format})"
    )
