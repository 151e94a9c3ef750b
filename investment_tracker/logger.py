# investment_tracker/logger.py
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Dict, Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
LOG_FILE_NAME = "tracker.log"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# 每个日志文件只对应一个滚动 handler，由所有 logger 共用
_file_handlers: Dict[str, RotatingFileHandler] = {}


def log_dir() -> str:
    return os.getenv("LOG_DIR", "logs")


def log_level() -> int:
    return getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def _shared_file_handler(directory: str, formatter: logging.Formatter) -> Optional[RotatingFileHandler]:
    path = os.path.abspath(os.path.join(directory, LOG_FILE_NAME))
    if path in _file_handlers:
        return _file_handlers[path]
    try:
        os.makedirs(directory, exist_ok=True)
        handler = RotatingFileHandler(
            path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as e:
        # 目录不可写：只保留控制台输出
        logging.getLogger(__name__).warning(f"File logging disabled for {path}: {e}")
        return None
    handler.setFormatter(formatter)
    _file_handlers[path] = handler
    return handler


def get_logger(name: str) -> logging.Logger:
    '''
    Module logger with console output plus the shared rotating file under LOG_DIR.
    LOG_DIR / LOG_LEVEL are read when a logger is first requested, not at import.
    '''
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger  # 防止重复添加 handler

    logger.setLevel(log_level())
    formatter = logging.Formatter(LOG_FORMAT)

    # 控制台输出
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 文件输出（滚动）
    file_handler = _shared_file_handler(log_dir(), formatter)
    if file_handler is not None:
        logger.addHandler(file_handler)

    return logger
