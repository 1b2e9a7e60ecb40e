from __future__ import annotations

import threading
from datetime import date
from typing import Callable, Optional

from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt

from ..core.currencies import Currency
from ..core.models import AttemptOutcome, Entry, OutcomeKind, TaskState
from ..core.utils import day_label, day_start_timestamp
from ..logging_config import get_retrieval_logger
from .api_clients import BaseRateFetcher
from .backoff import BackoffPolicy
from .collector import ResultCollector

EntryCallback = Callable[[Entry], None]


class RetryingTask:
    """Загрузка курса за один день с повторами при отказе по лимиту.

    Переходы состояний:
    IDLE → ATTEMPTING → SUCCEEDED | EXHAUSTED | ABORTED | FAILED

    - RATE_LIMITED: ждём по BackoffPolicy и повторяем;
    - FAILURE: ошибка транспорта/формата, день пропускается без повторов;
    - CANCELLED или сигнал отмены во время ожидания: ABORTED;
    - попытки закончились: EXHAUSTED, записи за день не будет.

    run() не бросает исключений: ошибки одного дня не валят всю пачку.
    """

    def __init__(
        self,
        day: int,
        currency: Currency,
        fetcher: BaseRateFetcher,
        backoff: BackoffPolicy,
        collector: ResultCollector,
        cancel_event: threading.Event,
        max_attempts: int = 10,
        today: Optional[date] = None,
        on_entry: Optional[EntryCallback] = None,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts должен быть положительным.")
        self.day = day
        self.label = day_label(day)
        self.currency = currency
        self.max_attempts = max_attempts
        self.today = today
        self.state = TaskState.IDLE
        self.attempts = 0
        self.entry: Optional[Entry] = None

        self._fetcher = fetcher
        self._backoff = backoff
        self._collector = collector
        self._cancel_event = cancel_event
        self._on_entry = on_entry
        self._logger = get_retrieval_logger()

    def run(self) -> TaskState:
        try:
            self._run()
        except Exception:  # noqa: BLE001
            self._logger.exception(
                "DAY_FETCH day=%s status=UNEXPECTED_ERROR attempts=%d",
                self.label,
                self.attempts,
            )
            if not self.state.is_terminal:
                self.state = TaskState.FAILED
        return self.state

    def _run(self) -> None:
        logger = self._logger
        self.state = TaskState.ATTEMPTING
        timestamp = day_start_timestamp(self.day, self.today)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._backoff,
            retry=retry_if_result(
                lambda outcome: outcome.kind is OutcomeKind.RATE_LIMITED,
            ),
            # Ожидание прерывается сигналом отмены; следующая попытка
            # увидит его и вернёт CANCELLED.
            sleep=self._cancel_event.wait,
        )
        try:
            outcome = retrying(self._attempt, timestamp)
        except RetryError:
            logger.warning(
                "DAY_FETCH day=%s status=EXHAUSTED attempts=%d",
                self.label,
                self.attempts,
            )
            self.state = TaskState.EXHAUSTED
            return

        if outcome.kind is OutcomeKind.CANCELLED:
            self._abort()
            return

        if not outcome.is_success:
            logger.error(
                "DAY_FETCH day=%s attempt=%d status=ERROR error=%s",
                self.label,
                self.attempts,
                outcome.cause,
            )
            self.state = TaskState.FAILED
            return

        entry = Entry(self.label, outcome.rate, self.currency)
        if self._collector.append(entry):
            self.entry = entry
            logger.info(
                "DAY_FETCH day=%s attempt=%d status=OK rate=%s",
                self.label,
                self.attempts,
                self.currency.format(entry.rate),
            )
        else:
            logger.warning(
                "DAY_FETCH day=%s status=DUPLICATE entry already collected",
                self.label,
            )
        self.state = TaskState.SUCCEEDED
        if self.entry is not None and self._on_entry is not None:
            self._on_entry(self.entry)

    def _attempt(self, timestamp: int) -> AttemptOutcome:
        """Одна попытка: проверка отмены, запрос, учёт попытки."""
        if self._cancel_event.is_set():
            return AttemptOutcome.cancelled()

        outcome = self._fetcher.fetch(timestamp, self.currency, self._cancel_event)
        self.attempts += 1
        if outcome.kind is OutcomeKind.RATE_LIMITED:
            self._logger.info(
                "DAY_FETCH day=%s attempt=%d status=RATE_LIMITED",
                self.label,
                self.attempts,
            )
        return outcome

    def _abort(self) -> None:
        self._logger.debug(
            "DAY_FETCH day=%s status=ABORTED attempts=%d",
            self.label,
            self.attempts,
        )
        self.state = TaskState.ABORTED

    def __repr__(self) -> str:
        return (
            f"<RetryingTask(day={self.day}, state={self.state.name}, "
            f"attempts={self.attempts})>"
        )
