"""Unit tests for the live execution log."""

import logging
import os

from tweaq.core.logging import (
    LOG_FILENAME,
    TweaqLogFormatter,
    TweaqLogger,
    _purge_old_logs,
    get_logger,
)


def _read(log: TweaqLogger) -> str:
    with open(log.log_file, encoding="utf-8") as f:
        return f.read()


class TestFormatter:
    def test_line_layout(self):
        record = logging.LogRecord("tweaq.live", logging.INFO, "", 0, "Intent resolved", (), None)
        record.component = "Resolver"
        record.tweaq_level = "RESOL"
        record.fields = {"target": "Hero", "confidence": 0.92, "candidates": 1}
        line = TweaqLogFormatter().format(record)

        parts = line.split(" | ")
        assert parts[1] == "RESOL"
        assert parts[2].strip() == "Resolver"
        assert parts[3] == "Intent resolved"
        assert parts[4] == 'target="Hero" confidence=0.920 candidates=1'


class TestTweaqLogger:
    def test_writes_pipeline_events(self, tmp_path):
        log = TweaqLogger(log_dir=tmp_path)
        log.resolution("edit-1", component="Hero", confidence=0.9)
        log.strategy("high-confidence-direct", confidence=0.87, request_id="edit-1")
        log.attempt(2, "fallback", approach="medium-confidence-guided")
        log.validation("src/Hero.tsx", False, errors=1)

        text = _read(log)
        assert "Logger initialized" in text
        assert 'target="Hero"' in text
        assert "Selected high-confidence-direct" in text
        assert "Attempt 2: fallback" in text
        assert "Validation failed" in text

    def test_stats(self, tmp_path):
        log = TweaqLogger(log_dir=tmp_path)
        log.strategy("human-review-required", confidence=0.2)
        stats = log.get_log_stats()
        assert stats["executions_logged"] == 1
        assert stats["log_dir"] == str(tmp_path)

    def test_singleton(self):
        assert get_logger() is get_logger()


class TestPurge:
    def test_oldest_rotations_go_first(self, tmp_path):
        for i, name in enumerate([f"{LOG_FILENAME}.2", f"{LOG_FILENAME}.1", LOG_FILENAME]):
            path = tmp_path / name
            path.write_bytes(b"x" * 100)
            os.utime(path, (1_000_000 + i, 1_000_000 + i))

        removed = _purge_old_logs(tmp_path, max_bytes=150)
        assert removed == 2
        assert [p.name for p in tmp_path.iterdir()] == [LOG_FILENAME]
