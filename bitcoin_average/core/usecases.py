from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional

from ..decorators import log_action
from ..retrieval.api_clients import BaseRateFetcher
from ..retrieval.backoff import BackoffPolicy
from ..retrieval.config import RetrievalConfig
from ..retrieval.task import EntryCallback
from ..retrieval.updater import CollectionReport, HistoryCollector
from .currencies import get_currency
from .utils import validate_positive_int, validate_positive_number


@log_action("COLLECT", verbose=True)
def compute_average(
    *,
    total_days: Optional[int] = None,
    currency_code: Optional[str] = None,
    timeout: Optional[float] = None,
    max_attempts: Optional[int] = None,
    fetcher: Optional[BaseRateFetcher] = None,
    backoff: Optional[BackoffPolicy] = None,
    on_entry: Optional[EntryCallback] = None,
    config: Optional[RetrievalConfig] = None,
    today: Optional[date] = None,
) -> CollectionReport:
    """Загрузить курсы за последние дни и посчитать средний курс.

    Шаги:
    1. Взять конфигурацию по умолчанию и наложить явные параметры.
    2. Проверить параметры (положительные числа, известная валюта).
    3. Запустить HistoryCollector и вернуть его отчёт.

    Бросает BatchTimeoutError, EmptyResultSetError, CurrencyNotFoundError
    и ValueError/TypeError при некорректных параметрах.
    """
    cfg = config or RetrievalConfig()
    overrides = {}

    if total_days is not None:
        overrides["total_days"] = validate_positive_int(total_days, "total_days")
    if max_attempts is not None:
        overrides["max_attempts_per_day"] = validate_positive_int(
            max_attempts,
            "max_attempts",
        )
    if timeout is not None:
        overrides["global_timeout_seconds"] = validate_positive_number(
            timeout,
            "timeout",
        )
    if currency_code is not None:
        overrides["currency"] = get_currency(currency_code).code

    if overrides:
        cfg = replace(cfg, **overrides)

    # Проверяем и значения, пришедшие из настроек.
    validate_positive_int(cfg.total_days, "total_days")
    validate_positive_int(cfg.max_attempts_per_day, "max_attempts")
    validate_positive_number(cfg.global_timeout_seconds, "timeout")
    get_currency(cfg.currency)

    collector = HistoryCollector(
        fetcher=fetcher,
        config=cfg,
        backoff=backoff,
        on_entry=on_entry,
    )
    return collector.run(today=today)
