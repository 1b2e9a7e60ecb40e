"""
Shared test configuration and fixtures.
"""

import random
import threading
from collections import defaultdict
from datetime import date

import pytest

from bitcoin_average.core.currencies import USD
from bitcoin_average.core.models import AttemptOutcome
from bitcoin_average.core.utils import day_start_timestamp
from bitcoin_average.retrieval.api_clients import BaseRateFetcher
from bitcoin_average.retrieval.backoff import BackoffPolicy
from bitcoin_average.retrieval.collector import ResultCollector
from bitcoin_average.retrieval.config import RetrievalConfig

TODAY = date(2024, 3, 15)
TEST_UNIT = 0.0001


class ScriptedFetcher(BaseRateFetcher):
    """Fake fetcher: per-day scripted outcomes, thread-safe call counting.

    A script item is either an AttemptOutcome or a callable taking the
    cancel event and returning one. The last item repeats once the
    script runs out.
    """

    def __init__(self, script, today=TODAY, default=None):
        super().__init__(RetrievalConfig(CRYPTOCOMPARE_API_KEY=""))
        self._lock = threading.Lock()
        self._days = {
            day_start_timestamp(day, today): day for day in script
        }
        self._script = {day: list(items) for day, items in script.items()}
        self._default = default
        self.calls = defaultdict(int)

    def fetch(self, timestamp, currency, cancel_event=None):
        with self._lock:
            day = self._days.get(timestamp)
            self.calls[day] += 1
            items = self._script.get(day)
            if items:
                item = items.pop(0) if len(items) > 1 else items[0]
            else:
                item = self._default
        if item is None:
            return AttemptOutcome.failure(LookupError(f"unscripted ts {timestamp}"))
        if callable(item):
            return item(cancel_event)
        return item


def block_until_cancelled(cancel_event, limit=5.0):
    """Script item that hangs like a slow request until cancellation."""
    cancel_event.wait(limit)
    return AttemptOutcome.cancelled()


def ok(rate):
    return AttemptOutcome.success(rate)


def limited():
    return AttemptOutcome.rate_limited()


@pytest.fixture
def usd():
    return USD


@pytest.fixture
def collector():
    return ResultCollector()


@pytest.fixture
def backoff():
    """Seeded backoff with a tiny unit so retries don't slow the suite."""
    return BackoffPolicy(unit=TEST_UNIT, rng=random.Random(1234))


@pytest.fixture
def cancel_event():
    return threading.Event()


@pytest.fixture
def make_config():
    def _make(**overrides):
        params = {
            "total_days": 3,
            "global_timeout_seconds": 5.0,
            "max_attempts_per_day": 10,
            "currency": "USD",
            "backoff_unit_seconds": TEST_UNIT,
            "request_timeout": 1.0,
            "max_workers": 4,
            "CRYPTOCOMPARE_API_KEY": "",
        }
        params.update(overrides)
        return RetrievalConfig(**params)

    return _make
