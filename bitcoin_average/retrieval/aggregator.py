from __future__ import annotations

import math
from typing import Iterable

from ..core.exceptions import EmptyResultSetError
from ..core.models import Entry


def average_rates(entries: Iterable[Entry]) -> float:
    """Среднее арифметическое курсов.

    Сумма считается через math.fsum: результат не зависит от порядка
    записей. Для пустого набора бросаем EmptyResultSetError.
    """
    rates = [entry.rate for entry in entries]
    if not rates:
        raise EmptyResultSetError(
            "Не собрано ни одного курса: среднее не определено.",
        )
    return math.fsum(rates) / len(rates)
