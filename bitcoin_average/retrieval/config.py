from __future__ import annotations

import os
from dataclasses import dataclass, field

from ..infra.settings import SettingsLoader

# Маркер, которым CryptoCompare сообщает о превышении лимита запросов.
# Орфография API сохранена как есть.
RATE_LIMIT_MARKER = "Rate limit excedeed!"


def _setting(key: str):
    return lambda: SettingsLoader().get(key)


@dataclass(frozen=True)
class RetrievalConfig:
    """Конфигурация загрузки исторических курсов.

    Здесь фиксируем:
    - total_days: сколько последних дней запрашивать (день 1 = вчера);
    - global_timeout_seconds: один дедлайн на всю пачку, а не на задачу;
    - max_attempts_per_day: потолок попыток на один день;
    - currency: код целевой валюты;
    - backoff_unit_seconds: шаг экспоненциальной задержки между попытками;
    - request_timeout: таймаут одного HTTP-запроса;
    - max_workers: число рабочих потоков;
    - CRYPTOCOMPARE_API_KEY: необязательный ключ API (из окружения).

    Значения по умолчанию берутся из SettingsLoader в момент создания
    экземпляра, любое поле можно переопределить явно.
    """

    total_days: int = field(default_factory=_setting("total_days"))
    global_timeout_seconds: float = field(
        default_factory=_setting("global_timeout_seconds"),
    )
    max_attempts_per_day: int = field(
        default_factory=_setting("max_attempts_per_day"),
    )
    currency: str = field(default_factory=_setting("currency"))
    backoff_unit_seconds: float = field(
        default_factory=_setting("backoff_unit_seconds"),
    )
    request_timeout: float = field(default_factory=_setting("request_timeout"))
    max_workers: int = field(default_factory=_setting("max_workers"))

    # Ключ необязателен: без него CryptoCompare отвечает с более
    # жёстким лимитом запросов.
    CRYPTOCOMPARE_API_KEY: str = field(
        default_factory=lambda: os.getenv("CRYPTOCOMPARE_API_KEY", ""),
    )

    base_asset: str = "BTC"
    day_avg_url: str = "https://min-api.cryptocompare.com/data/dayAvg"
    rate_limit_marker: str = RATE_LIMIT_MARKER
