# Tweaq Change Engine
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Tweaq Change Engine.
#
# Tweaq Change Engine is dual-licensed:
#
# 1. Open Source: GNU Affero General Public License v3.0 (AGPL-3.0)
#    You may use, modify, and distribute this file under AGPL-3.0.
#    See LICENSE for the full text.
#
# 2. Commercial: Available from Phoenix Link (Pty) Ltd
#    For proprietary use, SaaS deployment, or enterprise licensing.
#    See LICENSE-ENTERPRISE.md or contact info@phoenixlink.co.za
#
# Contributions require a signed CLA. See COPYRIGHT.md and CLA.md.
"""
Tweaq Change Engine -- Live Execution Log

Every request that passes through the engine leaves a trail in a rotating
log file: which component it resolved to, which tier was chosen, every
attempt, every LLM call and every validation verdict.

LOG LOCATION:
    <tweaq home>/logs/tweaq.log      (current)
    <tweaq home>/logs/tweaq.log.1    (previous rotation)

RULES:
    - Single log file, max 10 MB before rotation
    - Log folder purges oldest files once it exceeds 1 GB
    - One line per event: TIMESTAMP | LEVEL | COMPONENT | MESSAGE | k=v ...
    - WARNING and above are mirrored to stderr

USAGE:
    from tweaq.core.logging import get_logger
    log = get_logger()
    log.strategy("medium-confidence-guided", confidence=0.71, request_id="edit-1")
    log.attempt(2, "retry", reason="scope-exceeded")
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tweaq.core.config import tweaq_home

# =============================================================================
# CONSTANTS
# =============================================================================

MAX_LOG_FILE_BYTES = 10 * 1024 * 1024  # 10 MB per file
MAX_LOG_FOLDER_BYTES = 1024 * 1024 * 1024  # 1 GB total
LOG_BACKUP_COUNT = 100
LOG_FILENAME = "tweaq.log"


# =============================================================================
# FORMATTER
# =============================================================================


class TweaqLogFormatter(logging.Formatter):
    """
    Format: TIMESTAMP | LEVEL | COMPONENT | MESSAGE | {structured fields}

    Example:
    2026-02-09T17:30:45.123Z | RESOL | Resolver     | Resolved target | target="Hero" confidence=0.920
    2026-02-09T17:30:46.500Z | LLM   | Executor     | LLM call | model=gpt-4o latency_ms=1377
    2026-02-09T17:30:46.501Z | VALID | Gate         | Validation failed | errors=1 warnings=0
    """

    LEVEL_WIDTH = 5
    COMPONENT_WIDTH = 12

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        ts = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"

        level = getattr(record, "tweaq_level", record.levelname)
        component = getattr(record, "component", "System")
        message = record.getMessage()

        fields = getattr(record, "fields", {})
        field_str = ""
        if fields:
            parts = []
            for k, v in fields.items():
                if isinstance(v, str):
                    parts.append(f'{k}="{v}"')
                elif isinstance(v, float):
                    parts.append(f"{k}={v:.3f}")
                else:
                    parts.append(f"{k}={v}")
            field_str = " | " + " ".join(parts)

        return (
            f"{ts} | {level:<{self.LEVEL_WIDTH}} | "
            f"{component:<{self.COMPONENT_WIDTH}} | {message}{field_str}"
        )


# =============================================================================
# FOLDER PURGE
# =============================================================================


def _purge_old_logs(log_dir: Path, max_bytes: int = MAX_LOG_FOLDER_BYTES) -> int:
    """Delete the oldest rotated logs until the folder fits in max_bytes."""
    removed = 0
    try:
        log_files = sorted(
            (f for f in log_dir.iterdir() if f.is_file() and f.name.startswith(LOG_FILENAME)),
            key=lambda f: f.stat().st_mtime,
        )
        total_size = sum(f.stat().st_size for f in log_files)
        while total_size > max_bytes and len(log_files) > 1:
            oldest = log_files.pop(0)
            total_size -= oldest.stat().st_size
            oldest.unlink()
            removed += 1
    except OSError as e:
        logging.getLogger("tweaq.core.logging").warning("Log purge failed: %s", e)
    return removed


# =============================================================================
# TWEAQ LOGGER
# =============================================================================


class TweaqLogger:
    """
    Live logger for the change engine.

    Writes to <tweaq home>/logs/tweaq.log with 10 MB rotation and
    component-tagged entries for filtering.
    """

    def __init__(self, log_dir: Path | None = None):
        self._log_dir = log_dir or tweaq_home() / "logs"
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._log_file = self._log_dir / LOG_FILENAME

        self._logger = logging.getLogger("tweaq.live")
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        self._logger.handlers.clear()

        file_handler = logging.handlers.RotatingFileHandler(
            str(self._log_file),
            maxBytes=MAX_LOG_FILE_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(TweaqLogFormatter())
        self._logger.addHandler(file_handler)

        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.WARNING)
        stderr_handler.setFormatter(TweaqLogFormatter())
        self._logger.addHandler(stderr_handler)

        self._session_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        self._execution_count = 0

        _purge_old_logs(self._log_dir)

        self.info("System", "Logger initialized", log_file=str(self._log_file))

    def _log(self, level: int, tweaq_level: str, component: str, message: str, **fields):
        fields["session"] = self._session_id
        record = self._logger.makeRecord(
            name="tweaq.live",
            level=level,
            fn="",
            lno=0,
            msg=message,
            args=(),
            exc_info=None,
        )
        record.component = component
        record.tweaq_level = tweaq_level
        record.fields = fields
        self._logger.handle(record)

    # =========================================================================
    # PUBLIC API -- Standard levels
    # =========================================================================

    def info(self, component: str, message: str, **fields):
        self._log(logging.INFO, "INFO", component, message, **fields)

    def warn(self, component: str, message: str, **fields):
        self._log(logging.WARNING, "WARN", component, message, **fields)

    def error(self, component: str, message: str, **fields):
        self._log(logging.ERROR, "ERROR", component, message, **fields)

    def debug(self, component: str, message: str, **fields):
        self._log(logging.DEBUG, "DEBUG", component, message, **fields)

    # =========================================================================
    # PUBLIC API -- Pipeline events
    # =========================================================================

    def resolution(self, request_id: str, component: str = "", confidence: float = 0, **fields):
        """Log the Intent Resolver's verdict."""
        fields.update(request_id=request_id, target=component or "<unresolved>", confidence=confidence)
        self._log(logging.INFO, "RESOL", "Resolver", "Intent resolved", **fields)

    def strategy(self, approach: str, confidence: float = 0, **fields):
        """Log the tier chosen for an execution."""
        fields.update(approach=approach, confidence=confidence)
        self._log(logging.INFO, "STRAT", "Assessor", f"Selected {approach}", **fields)
        self._execution_count += 1

    def attempt(self, number: int, transition: str, **fields):
        """Log an executor state transition for one attempt."""
        fields.update(attempt=number, transition=transition)
        level = logging.WARNING if transition in ("fail", "fallback") else logging.INFO
        self._log(level, "ATTMP", "Executor", f"Attempt {number}: {transition}", **fields)

    def llm(
        self,
        component: str,
        model: str = "",
        latency_ms: int = 0,
        success: bool = True,
        **fields,
    ):
        """Log a text-generation call."""
        fields.update(model=model, latency_ms=latency_ms, success=success)
        level = "LLM" if success else "LLM-ERR"
        self._log(logging.INFO if success else logging.WARNING, level, component, "LLM call", **fields)

    def validation(self, file_path: str, passed: bool, errors: int = 0, warnings: int = 0, **fields):
        """Log a Validation Gate verdict."""
        fields.update(file=file_path, passed=passed, errors=errors, warnings=warnings)
        message = "Validation passed" if passed else "Validation failed"
        self._log(logging.INFO, "VALID", "Gate", message, **fields)

    # =========================================================================
    # UTILITY
    # =========================================================================

    @property
    def log_file(self) -> str:
        return str(self._log_file)

    @property
    def log_dir(self) -> str:
        return str(self._log_dir)

    def get_log_stats(self) -> dict[str, Any]:
        """Get statistics about the log folder."""
        log_files = [f for f in self._log_dir.iterdir() if f.is_file()]
        total_size = sum(f.stat().st_size for f in log_files)
        return {
            "log_file": str(self._log_file),
            "log_dir": str(self._log_dir),
            "file_count": len(log_files),
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "session_id": self._session_id,
            "executions_logged": self._execution_count,
        }


# =============================================================================
# SINGLETON
# =============================================================================

_logger_instance: TweaqLogger | None = None


def get_logger() -> TweaqLogger:
    """Get or create the global TweaqLogger singleton."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = TweaqLogger()
    return _logger_instance
