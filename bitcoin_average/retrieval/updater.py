from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, Tuple

from ..core.currencies import Currency, get_currency
from ..core.exceptions import BatchTimeoutError, EmptyResultSetError
from ..core.models import Entry, TaskState
from ..core.utils import today_utc
from ..logging_config import get_retrieval_logger
from .aggregator import average_rates
from .api_clients import BaseRateFetcher, CryptoCompareClient
from .backoff import BackoffPolicy
from .collector import ResultCollector
from .config import RetrievalConfig
from .pool import WorkerPool
from .task import EntryCallback, RetryingTask


@dataclass(frozen=True)
class CollectionReport:
    """Результат успешно завершённой загрузки."""

    entries: Tuple[Entry, ...]
    average: float
    currency: Currency
    total_days: int
    states: Dict[str, TaskState] = field(default_factory=dict)
    elapsed_seconds: float = 0.0

    @property
    def formatted_average(self) -> str:
        return self.currency.format(self.average)


class HistoryCollector:
    """Координатор загрузки курсов за последние N дней.

    Задачи:
    - создать по одной задаче RetryingTask на каждый день 1..N;
    - запустить их в WorkerPool с общим дедлайном;
    - при истечении дедлайна бросить BatchTimeoutError с частичными данными;
    - иначе посчитать среднее по собранным записям;
    - подробно логировать шаги и итог.
    """

    def __init__(
        self,
        fetcher: BaseRateFetcher | None = None,
        config: RetrievalConfig | None = None,
        backoff: BackoffPolicy | None = None,
        on_entry: EntryCallback | None = None,
    ) -> None:
        self.config = config or RetrievalConfig()
        # Если клиента явно не передали — ходим в CryptoCompare.
        self.fetcher = fetcher or CryptoCompareClient(self.config)
        self.backoff = backoff or BackoffPolicy(
            unit=self.config.backoff_unit_seconds,
            rng=random.Random(),
        )
        self.on_entry = on_entry
        self._logger = get_retrieval_logger()

    def run(self, today: date | None = None) -> CollectionReport:
        """Запустить одну загрузку и вернуть отчёт.

        Бросает BatchTimeoutError, если не все дни уложились в дедлайн,
        и EmptyResultSetError, если не удалось собрать ни одного курса.
        """
        logger = self._logger
        cfg = self.config
        currency = get_currency(cfg.currency)
        today = today or today_utc()

        started_str = (
            datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        )
        logger.info(
            "HISTORY_COLLECT start timestamp=%s days=%d currency=%s "
            "timeout=%.1fs attempts=%d workers=%d",
            started_str,
            cfg.total_days,
            currency.code,
            cfg.global_timeout_seconds,
            cfg.max_attempts_per_day,
            cfg.max_workers,
        )

        collector = ResultCollector()
        pool = WorkerPool(
            global_timeout=cfg.global_timeout_seconds,
            max_workers=cfg.max_workers,
        )
        tasks = [
            RetryingTask(
                day=day,
                currency=currency,
                fetcher=self.fetcher,
                backoff=self.backoff,
                collector=collector,
                cancel_event=pool.cancel_event,
                max_attempts=cfg.max_attempts_per_day,
                today=today,
                on_entry=self.on_entry,
            )
            for day in range(1, cfg.total_days + 1)
        ]

        result = pool.run(tasks, collector)
        entries = result.entries
        summary = Counter(state.name for state in result.states.values())

        if not result.completed:
            logger.error(
                "HISTORY_COLLECT status=TIMEOUT entries=%d pending=%s states=%s",
                len(entries),
                ", ".join(result.pending),
                dict(summary),
            )
            raise BatchTimeoutError(entries, timeout=cfg.global_timeout_seconds)

        logger.info(
            "HISTORY_COLLECT completed entries=%d elapsed=%.2fs states=%s",
            len(entries),
            result.elapsed_seconds,
            dict(summary),
        )

        try:
            average = average_rates(entries)
        except EmptyResultSetError:
            logger.warning(
                "HISTORY_COLLECT completed: no entries collected; "
                "average is undefined.",
            )
            raise

        return CollectionReport(
            entries=entries,
            average=average,
            currency=currency,
            total_days=cfg.total_days,
            states=result.states,
            elapsed_seconds=result.elapsed_seconds,
        )
