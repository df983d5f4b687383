import logging
from datetime import datetime, timezone

import pytest

import newsdesk.utils.logging_config as mod


class _FixedDateTime:
    @classmethod
    def now(cls):  # noqa: N805
        return datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_setup_logging_creates_handlers_and_files(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    # 保存根日志器状态，避免影响其他用例
    root = logging.getLogger()
    old_level = root.level
    old_handlers = list(root.handlers)

    monkeypatch.setattr(mod, "datetime", _FixedDateTime)

    log_dir = tmp_path / "nested" / "logs"
    try:
        mod.setup_logging(log_level="DEBUG", log_dir=str(log_dir), app_name="newsdesk")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 3

        paths = [h.baseFilename for h in root.handlers if isinstance(h, logging.FileHandler)]
        assert any(p.endswith("newsdesk_2026-01-01.log") for p in paths)
        assert any(p.endswith("newsdesk_error_2026-01-01.log") for p in paths)
        assert (log_dir / "newsdesk_2026-01-01.log").exists()
        assert (log_dir / "newsdesk_error_2026-01-01.log").exists()

        for name in mod.NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
    finally:
        for h in root.handlers:
            h.close()
        root.handlers = old_handlers
        root.setLevel(old_level)


def test_setup_logging_unknown_level_falls_back_to_info(tmp_path) -> None:
    root = logging.getLogger()
    old_level = root.level
    old_handlers = list(root.handlers)
    try:
        mod.setup_logging(log_level="chatty", log_dir=str(tmp_path), app_name="x")
        assert root.level == logging.INFO
    finally:
        for h in root.handlers:
            h.close()
        root.handlers = old_handlers
        root.setLevel(old_level)
