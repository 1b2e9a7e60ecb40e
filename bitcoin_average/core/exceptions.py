from __future__ import annotations

from typing import Sequence


class BitcoinAverageError(Exception):
    """Базовое исключение приложения."""


class CurrencyNotFoundError(BitcoinAverageError):
    """Неизвестная или неподдерживаемая валюта."""


class ApiRequestError(BitcoinAverageError):
    """Ошибка при обращении к внешнему API или разборе его ответа."""


class EmptyResultSetError(BitcoinAverageError):
    """Нельзя посчитать среднее: не собрано ни одной записи."""


class BatchTimeoutError(BitcoinAverageError):
    """Пачка запросов не уложилась в общий дедлайн.

    Хранит записи, собранные до истечения дедлайна, чтобы вызывающий
    код сам решил, годятся ли частичные результаты.
    """

    def __init__(self, entries: Sequence = (), timeout: float | None = None) -> None:
        self.entries = tuple(entries)
        self.timeout = timeout
        super().__init__(
            f"Not terminated, only {len(self.entries)} computed so far",
        )
