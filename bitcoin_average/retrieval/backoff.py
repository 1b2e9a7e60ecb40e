from __future__ import annotations

import random
import threading

from tenacity import RetryCallState
from tenacity.wait import wait_base


class BackoffPolicy(wait_base):
    """Экспоненциальная задержка со случайным разбросом для tenacity.

    Перед попыткой с индексом 0 не ждём. Для попытки a >= 1 задержка
    выбирается равномерно из [0, (2**a - 1) * unit). Случайный разброс
    не даёт параллельным задачам повторять запросы синхронно.

    tenacity вызывает стратегию после неудачной попытки номер N
    (attempt_number, с единицы), то есть перед попыткой с индексом N.

    Источник случайности передаётся явно (в тестах — с фиксированным
    seed) и разделяется потоками под блокировкой.
    """

    def __init__(self, unit: float = 0.1, rng: random.Random | None = None) -> None:
        if unit <= 0:
            raise ValueError("unit должен быть положительным.")
        self.unit = float(unit)
        self._rng = rng or random.Random()
        self._lock = threading.Lock()

    def __call__(self, retry_state: RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number)

    def max_delay(self, attempt: int) -> float:
        """Верхняя (не включаемая) граница задержки для попытки."""
        if attempt <= 0:
            return 0.0
        return ((1 << attempt) - 1) * self.unit

    def delay_for(self, attempt: int) -> float:
        """Задержка в секундах перед попыткой с индексом attempt."""
        if attempt < 0:
            raise ValueError("attempt не может быть отрицательным.")
        bound = self.max_delay(attempt)
        if bound == 0.0:
            return 0.0
        with self._lock:
            fraction = self._rng.random()
        return fraction * bound
