from __future__ import annotations

import os
import queue
import threading
from dataclasses import dataclass, field
from time import monotonic
from typing import Dict, Optional, Sequence, Tuple

from ..core.models import Entry, TaskState
from ..logging_config import get_retrieval_logger
from .collector import ResultCollector
from .task import RetryingTask


@dataclass(frozen=True)
class BatchResult:
    """Итог запуска пачки задач.

    states и entries сняты в один и тот же момент: по завершении
    всех задач либо по истечении дедлайна, до рассылки отмены.
    """

    completed: bool
    states: Dict[str, TaskState] = field(default_factory=dict)
    entries: Tuple[Entry, ...] = ()
    elapsed_seconds: float = 0.0

    @property
    def pending(self) -> list[str]:
        """Дни, задачи которых не дошли до конечного состояния."""
        return [
            label for label, state in self.states.items()
            if not state.is_terminal
        ]


class WorkerPool:
    """Ограниченный пул потоков с одним дедлайном на всю пачку.

    Рабочие потоки — демоны: зависший запрос не мешает процессу
    завершиться. Задачи получают общий cancel_event. Если дедлайн истёк
    раньше, чем завершились все задачи, пул снимает состояние, очищает
    очередь, взводит cancel_event и возвращает управление, не дожидаясь
    потоков: они завершатся на ближайшей проверке отмены или будут
    брошены при выходе из процесса.
    """

    def __init__(
        self,
        global_timeout: float,
        max_workers: int | None = None,
    ) -> None:
        if global_timeout <= 0:
            raise ValueError("global_timeout должен быть положительным.")
        self.global_timeout = float(global_timeout)
        self.max_workers = max_workers or os.cpu_count() or 1
        self.cancel_event = threading.Event()
        self._logger = get_retrieval_logger()

    def run(
        self,
        tasks: Sequence[RetryingTask],
        collector: Optional[ResultCollector] = None,
    ) -> BatchResult:
        """Выполнить задачи и дождаться их завершения или дедлайна.

        Возвращает BatchResult с completed=False, если к дедлайну не все
        задачи дошли до конечного состояния. Записи из collector
        попадают в результат только для дней, завершённых к этому моменту.
        """
        logger = self._logger
        start = monotonic()
        deadline = start + self.global_timeout

        backlog: "queue.SimpleQueue[RetryingTask]" = queue.SimpleQueue()
        for task in tasks:
            backlog.put(task)

        lock = threading.Lock()
        all_done = threading.Event()
        finished = 0
        if not tasks:
            all_done.set()

        def worker() -> None:
            nonlocal finished
            while not self.cancel_event.is_set():
                try:
                    task = backlog.get_nowait()
                except queue.Empty:
                    return
                task.run()
                with lock:
                    finished += 1
                    if finished == len(tasks):
                        all_done.set()

        for index in range(min(self.max_workers, len(tasks))):
            threading.Thread(
                target=worker,
                name=f"day-fetch_{index}",
                daemon=True,
            ).start()

        completed = all_done.wait(max(0.0, deadline - monotonic()))
        # Состояния и записи фиксируем на момент дедлайна, до рассылки отмены.
        states = {task.label: task.state for task in tasks}
        entries = self._settled_entries(collector, states)

        if not completed:
            logger.warning(
                "WORKER_POOL status=TIMEOUT timeout=%.1fs pending=%d",
                self.global_timeout,
                sum(1 for state in states.values() if not state.is_terminal),
            )
            # Сначала снимаем задачи из очереди, затем будим работающие.
            while True:
                try:
                    backlog.get_nowait()
                except queue.Empty:
                    break
            self.cancel_event.set()

        elapsed = monotonic() - start
        logger.debug(
            "WORKER_POOL status=%s tasks=%d elapsed=%.2fs",
            "DONE" if completed else "CANCELLED",
            len(tasks),
            elapsed,
        )
        return BatchResult(
            completed=completed,
            states=states,
            entries=entries,
            elapsed_seconds=elapsed,
        )

    @staticmethod
    def _settled_entries(
        collector: Optional[ResultCollector],
        states: Dict[str, TaskState],
    ) -> Tuple[Entry, ...]:
        # Задача добавляет запись чуть раньше, чем меняет состояние:
        # запись дня, ещё не завершённого в снимке, отбрасываем.
        if collector is None:
            return ()
        return tuple(
            entry for entry in collector.snapshot()
            if states.get(entry.label, TaskState.SUCCEEDED).is_terminal
        )
