from __future__ import annotations

import threading
from typing import Iterator, List, Set, Tuple

from ..core.models import Entry


class ResultCollector:
    """Потокобезопасная коллекция собранных записей, только на добавление.

    Записи не удаляются и не изменяются. На один день (label) хранится
    не больше одной записи: повторное добавление отклоняется.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: List[Entry] = []
        self._labels: Set[str] = set()

    def append(self, entry: Entry) -> bool:
        """Добавить запись. False, если запись для этого дня уже есть."""
        with self._lock:
            if entry.label in self._labels:
                return False
            self._labels.add(entry.label)
            self._entries.append(entry)
            return True

    def size(self) -> int:
        """Текущее число записей."""
        with self._lock:
            return len(self._entries)

    def snapshot(self) -> Tuple[Entry, ...]:
        """Неизменяемая копия всех записей, добавленных к моменту вызова."""
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.snapshot())
