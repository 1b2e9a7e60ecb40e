from __future__ import annotations

import math
import threading
from abc import ABC, abstractmethod
from time import monotonic
from typing import Any, Dict, Optional

import requests

from ..core.currencies import Currency
from ..core.exceptions import ApiRequestError
from ..core.models import AttemptOutcome
from ..logging_config import get_retrieval_logger
from .config import RetrievalConfig


class BaseRateFetcher(ABC):
    """Базовый клиент внешнего API исторических курсов.

    Наследники реализуют fetch(), который выполняет ровно один запрос
    и классифицирует ответ как AttemptOutcome. Метод не бросает
    исключений: любая ошибка превращается в AttemptOutcome.failure().
    """

    def __init__(self, config: RetrievalConfig | None = None) -> None:
        self.config = config or RetrievalConfig()

    @abstractmethod
    def fetch(
        self,
        timestamp: int,
        currency: Currency,
        cancel_event: Optional[threading.Event] = None,
    ) -> AttemptOutcome:
        """Запросить курс BTC в валюте currency на момент timestamp."""


class CryptoCompareClient(BaseRateFetcher):
    """Клиент CryptoCompare (эндпоинт dayAvg) для исторических курсов."""

    def __init__(
        self,
        config: RetrievalConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(config)
        # requests.Session не гарантирует потокобезопасность, поэтому
        # по умолчанию каждый вызов идёт через requests.get.
        self._http = session or requests
        self._logger = get_retrieval_logger()

    def build_params(self, timestamp: int, currency: Currency) -> Dict[str, Any]:
        """Параметры запроса к dayAvg: пара BTC/валюта, момент и ключ API."""
        cfg = self.config
        params: Dict[str, Any] = {
            "fsym": cfg.base_asset,
            "tsym": currency.api_id,
            "toTs": int(timestamp),
        }
        if cfg.CRYPTOCOMPARE_API_KEY:
            params["api_key"] = cfg.CRYPTOCOMPARE_API_KEY
        return params

    def fetch(
        self,
        timestamp: int,
        currency: Currency,
        cancel_event: Optional[threading.Event] = None,
    ) -> AttemptOutcome:
        if cancel_event is not None and cancel_event.is_set():
            return AttemptOutcome.cancelled()

        start = monotonic()
        try:
            outcome = self._request_rate(timestamp, currency)
        except ApiRequestError as exc:
            outcome = AttemptOutcome.failure(exc)
        elapsed_ms = int((monotonic() - start) * 1000)

        # Запрос нельзя прервать на лету: отмену проверяем после него.
        if cancel_event is not None and cancel_event.is_set():
            return AttemptOutcome.cancelled()

        self._logger.debug(
            "API_CALL ts=%s currency=%s status=%s elapsed_ms=%d",
            timestamp,
            currency.code,
            outcome.kind.name,
            elapsed_ms,
        )
        return outcome

    def _request_rate(
        self,
        timestamp: int,
        currency: Currency,
    ) -> AttemptOutcome:
        """Выполнить запрос: курс или отказ по лимиту.

        Бросает ApiRequestError при ошибках транспорта или формата ответа.
        """
        cfg = self.config

        try:
            response = self._http.get(
                cfg.day_avg_url,
                params=self.build_params(timestamp, currency),
                timeout=cfg.request_timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise ApiRequestError(
                f"Ошибка при обращении к CryptoCompare: {exc}",
            ) from exc

        text = response.text or ""
        if response.status_code == 429 or cfg.rate_limit_marker in text:
            return AttemptOutcome.rate_limited()

        if response.status_code != 200:
            raise ApiRequestError(
                "Ошибка CryptoCompare: HTTP "
                f"{response.status_code} — {text[:200]}",
            )

        try:
            payload: Dict[str, Any] = response.json()
        except ValueError as exc:
            raise ApiRequestError(
                "Некорректный JSON-ответ от CryptoCompare.",
            ) from exc

        if not isinstance(payload, dict):
            raise ApiRequestError(
                "Неожиданный формат ответа CryptoCompare: ожидался объект JSON.",
            )

        raw_rate = payload.get(currency.api_id)
        if (
            isinstance(raw_rate, bool)
            or not isinstance(raw_rate, (int, float))
            or not math.isfinite(raw_rate)
        ):
            message = payload.get("Message")
            raise ApiRequestError(
                "CryptoCompare вернул ответ без курса "
                f"для {currency.api_id}"
                + (f": {message}" if message else "."),
            )

        return AttemptOutcome.success(float(raw_rate))
