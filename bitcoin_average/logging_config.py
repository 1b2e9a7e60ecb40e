from __future__ import annotations

import logging
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .infra.settings import SettingsLoader

LOGGER_NAME = "bitcoin_average.retrieval"

_retrieval_logger: Optional[logging.Logger] = None
_init_lock = threading.Lock()


def _build_file_handler(logs_dir: Path, formatter: logging.Formatter) -> logging.Handler:
    logs_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        logs_dir / "retrieval.log",
        maxBytes=1_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def get_retrieval_logger() -> logging.Logger:
    """Вернуть логгер процесса загрузки курсов.

    Ленивая инициализация по настройкам SettingsLoader:
    - файл logs/retrieval.log получает всё от log_level и выше,
      с именем потока в каждой строке;
    - консоль получает только console_log_level и выше, чтобы не
      перемешивать служебные строки с выводом CLI.

    Первый вызов может прийти одновременно из нескольких рабочих
    потоков, поэтому инициализация идёт под блокировкой.
    """
    global _retrieval_logger

    if _retrieval_logger is not None:
        return _retrieval_logger

    with _init_lock:
        if _retrieval_logger is not None:
            return _retrieval_logger

        settings = SettingsLoader()
        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(settings.get("log_level", "INFO"))

        if not logger.handlers:
            log_format = settings.get(
                "log_format",
                "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            )
            file_formatter = logging.Formatter(
                fmt=log_format.replace("%(name)s", "%(name)s [%(threadName)s]"),
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
            logger.addHandler(
                _build_file_handler(Path(settings.get("logs_dir")), file_formatter),
            )

            stream_handler = logging.StreamHandler()
            stream_handler.setLevel(settings.get("console_log_level", "WARNING"))
            stream_handler.setFormatter(
                logging.Formatter("[%(levelname)s] %(message)s"),
            )
            logger.addHandler(stream_handler)

        _retrieval_logger = logger
        return logger
