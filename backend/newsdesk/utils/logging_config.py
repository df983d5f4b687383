"""日志配置"""
import logging
import sys
from pathlib import Path
from datetime import datetime


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS: tuple[str, ...] = ("uvicorn", "uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")


def setup_logging(
    log_level: str = "INFO",
    log_dir: str = "logs",
    app_name: str = "newsdesk"
) -> None:
    """
    配置日志系统

    Args:
        log_level: 日志级别
        log_dir: 日志目录
        app_name: 应用名称（日志文件名前缀）
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    # 控制台
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    today = datetime.now().strftime("%Y-%m-%d")

    # 普通日志
    file_handler = logging.FileHandler(log_path / f"{app_name}_{today}.log", encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # 错误日志
    error_handler = logging.FileHandler(log_path / f"{app_name}_error_{today}.log", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)
    root_logger.addHandler(error_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info("Logging configured: level=%s, dir=%s", log_level, log_dir)
