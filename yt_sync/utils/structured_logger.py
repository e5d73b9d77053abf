"""
Structured logging system for better log analysis and debugging.
Provides JSON-formatted logs with context and metadata.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.markup import escape


class StructuredLogger:
    """
    Enhanced logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("yt_sync", log_dir=Path("logs"))
        logger.info("item_downloaded", playlist_id="PL123", item_id="abc", attempts=1)
    """

    def __init__(self, name: str, log_dir: Path | None = None):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = log_dir is not None

        self._logger = logging.getLogger(name)

        self._json_file = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            json_log_path = log_dir / f"yt_sync_{timestamp}.jsonl"
            self._json_file = open(json_log_path, "a", encoding="utf-8")  # noqa: SIM115
            self.json_log_path = json_log_path

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    def _format_message(self, event: str, **context) -> str:
        parts = [f"[{event}]"]
        for key, value in context.items():
            parts.append(f"{key}={value}")
        return escape(" ".join(parts))

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, ValueError) as e:
            # Fallback to stderr if JSON logging fails
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _emit(self, level: int, event: str, **context) -> None:
        self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        self._emit(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._emit(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._emit(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._emit(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class SyncEventLogger:
    """Specialized logger for sync session, target and item events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def session_started(self, total_targets: int, dry_run: bool = False):
        self.logger.debug("session_started", total_targets=total_targets, dry_run=dry_run)

    def session_completed(
        self, duration_s: float, downloaded: int, kept: int, removed: int, failed: int
    ):
        self.logger.debug(
            "session_completed",
            duration_s=round(duration_s, 2),
            downloaded=downloaded,
            kept=kept,
            removed=removed,
            failed=failed,
        )

    def target_started(self, playlist_id: str, location: str, media_format: str):
        self.logger.debug(
            "target_started",
            playlist_id=playlist_id,
            location=location,
            format=media_format,
        )

    def target_planned(self, playlist_id: str, counts: dict[str, int]):
        self.logger.debug("target_planned", playlist_id=playlist_id, **counts)

    def target_completed(self, playlist_id: str, state: str, duration_s: float):
        self.logger.debug(
            "target_completed",
            playlist_id=playlist_id,
            state=state,
            duration_s=round(duration_s, 2),
        )

    def target_failed(self, playlist_id: str, state: str, error: str):
        self.logger.error("target_failed", playlist_id=playlist_id, state=state, error=error)

    def item_downloaded(self, playlist_id: str, item_id: str, path: str, attempts: int):
        self.logger.debug(
            "item_downloaded",
            playlist_id=playlist_id,
            item_id=item_id,
            path=path,
            attempts=attempts,
        )

    def item_failed(self, playlist_id: str, item_id: str, error: str, attempts: int):
        self.logger.warning(
            "item_failed",
            playlist_id=playlist_id,
            item_id=item_id,
            error=error,
            attempts=attempts,
        )

    def item_removed(self, playlist_id: str, item_id: str, path: str):
        self.logger.debug(
            "item_removed", playlist_id=playlist_id, item_id=item_id, path=path
        )


def create_structured_logger(
    log_dir: Path | None = None,
) -> tuple[StructuredLogger, SyncEventLogger]:
    """
    Create the structured loggers.

    Returns:
        Tuple of (base_logger, event_logger)
    """
    base = StructuredLogger("yt_sync.events", log_dir=log_dir)
    return base, SyncEventLogger(base)
