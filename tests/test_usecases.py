import logging

import pytest

from bitcoin_average.core.exceptions import BatchTimeoutError, CurrencyNotFoundError
from bitcoin_average.core.usecases import compute_average
from conftest import TODAY, ScriptedFetcher, block_until_cancelled, ok


@pytest.fixture
def three_days():
    return ScriptedFetcher({1: [ok(10.0)], 2: [ok(20.0)], 3: [ok(30.0)]})


class TestComputeAverage:

    def test_explicit_parameters_override_config(self, make_config, backoff, three_days):
        report = compute_average(
            total_days=3,
            currency_code="usd",
            max_attempts=2,
            timeout=5,
            fetcher=three_days,
            backoff=backoff,
            config=make_config(total_days=50),
            today=TODAY,
        )

        assert report.total_days == 3
        assert report.average == 20.0

    @pytest.mark.parametrize("kwargs", [
        {"total_days": 0},
        {"total_days": -3},
        {"max_attempts": 0},
        {"timeout": 0},
        {"timeout": -1.5},
    ])
    def test_invalid_parameters(self, make_config, backoff, three_days, kwargs):
        with pytest.raises(ValueError):
            compute_average(
                fetcher=three_days, backoff=backoff, config=make_config(), **kwargs,
            )

    def test_unknown_currency(self, make_config, three_days):
        with pytest.raises(CurrencyNotFoundError):
            compute_average(
                currency_code="GBP", fetcher=three_days, config=make_config(),
            )

    def test_batch_timeout_propagates(self, make_config, backoff):
        fetcher = ScriptedFetcher({1: [ok(1.0)], 2: [block_until_cancelled]})
        config = make_config(total_days=2, max_workers=2)

        with pytest.raises(BatchTimeoutError) as exc_info:
            compute_average(
                timeout=0.2, fetcher=fetcher, backoff=backoff, config=config,
                today=TODAY,
            )

        assert len(exc_info.value.entries) == 1

    def test_run_is_logged(self, make_config, backoff, three_days, caplog):
        with caplog.at_level(logging.INFO, logger="bitcoin_average.retrieval"):
            compute_average(
                currency_code="USD", fetcher=three_days, backoff=backoff,
                config=make_config(), today=TODAY,
            )

        messages = [r.getMessage() for r in caplog.records]
        assert any(
            m.startswith("COLLECT currency='USD'") and "result=OK" in m
            for m in messages
        )
        assert any("entries=3" in m and "average=20.00" in m for m in messages)

    def test_failed_run_is_logged_and_reraised(self, make_config, three_days, caplog):
        with caplog.at_level(logging.INFO, logger="bitcoin_average.retrieval"):
            with pytest.raises(CurrencyNotFoundError):
                compute_average(
                    currency_code="XYZ", fetcher=three_days, config=make_config(),
                )

        assert any(
            "result=ERROR" in r.getMessage()
            and "error_type='CurrencyNotFoundError'" in r.getMessage()
            for r in caplog.records
        )
