import threading
from unittest.mock import Mock, patch

import pytest
import requests

from bitcoin_average.core.currencies import EUR, USD
from bitcoin_average.core.exceptions import ApiRequestError
from bitcoin_average.core.models import OutcomeKind
from bitcoin_average.retrieval.api_clients import CryptoCompareClient
from bitcoin_average.retrieval.config import RATE_LIMIT_MARKER, RetrievalConfig

TIMESTAMP = 1710374400


class MockResponse:
    """Mock HTTP response for testing"""

    def __init__(self, json_data=None, status_code=200, text=None):
        self.json_data = json_data
        self.status_code = status_code
        self.text = text if text is not None else str(json_data)

    def json(self):
        if self.json_data is None:
            raise ValueError("No JSON object could be decoded")
        return self.json_data


@pytest.fixture
def config():
    return RetrievalConfig(CRYPTOCOMPARE_API_KEY="", request_timeout=2.5)


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def client(config, session):
    return CryptoCompareClient(config, session=session)


class TestCryptoCompareClassification:

    def test_success_returns_rate(self, client, session):
        session.get.return_value = MockResponse(
            {"USD": 67123.45, "ConversionType": {"type": "direct"}},
        )

        outcome = client.fetch(TIMESTAMP, USD)

        assert outcome.kind is OutcomeKind.SUCCESS
        assert outcome.rate == 67123.45

    def test_integer_rate_is_converted(self, client, session):
        session.get.return_value = MockResponse({"EUR": 61000})

        outcome = client.fetch(TIMESTAMP, EUR)

        assert outcome.is_success
        assert outcome.rate == 61000.0
        assert isinstance(outcome.rate, float)

    def test_rate_limit_marker_in_body(self, client, session):
        session.get.return_value = MockResponse(
            {"Response": "Error", "Message": RATE_LIMIT_MARKER},
            text=f'{{"Response":"Error","Message":"{RATE_LIMIT_MARKER}"}}',
        )

        assert client.fetch(TIMESTAMP, USD).kind is OutcomeKind.RATE_LIMITED

    def test_http_429_is_rate_limited(self, client, session):
        session.get.return_value = MockResponse(status_code=429, text="Too Many")

        assert client.fetch(TIMESTAMP, USD).kind is OutcomeKind.RATE_LIMITED

    def test_transport_error_is_failure(self, client, session):
        session.get.side_effect = requests.exceptions.ConnectionError("refused")

        outcome = client.fetch(TIMESTAMP, USD)

        assert outcome.kind is OutcomeKind.FAILURE
        assert isinstance(outcome.cause, ApiRequestError)
        assert "refused" in str(outcome.cause)

    def test_server_error_is_failure(self, client, session):
        session.get.return_value = MockResponse(status_code=503, text="down")

        assert client.fetch(TIMESTAMP, USD).kind is OutcomeKind.FAILURE

    def test_invalid_json_is_failure(self, client, session):
        session.get.return_value = MockResponse(None, text="<html>oops</html>")

        outcome = client.fetch(TIMESTAMP, USD)

        assert outcome.kind is OutcomeKind.FAILURE
        assert "JSON" in str(outcome.cause)

    @pytest.mark.parametrize("payload", [
        {"EUR": 61000.0},
        {"USD": "67000"},
        {"USD": None},
        {"USD": True},
        [67000.0],
    ])
    def test_missing_or_non_numeric_rate_is_failure(self, client, session, payload):
        session.get.return_value = MockResponse(payload)

        assert client.fetch(TIMESTAMP, USD).kind is OutcomeKind.FAILURE

    def test_error_message_from_api_is_kept(self, client, session):
        session.get.return_value = MockResponse(
            {"Response": "Error", "Message": "toTs param is not valid"},
        )

        outcome = client.fetch(TIMESTAMP, USD)

        assert "toTs param is not valid" in str(outcome.cause)


class TestCryptoCompareRequest:

    def test_request_parameters(self, client, session, config):
        session.get.return_value = MockResponse({"EUR": 1.0})

        client.fetch(TIMESTAMP, EUR)

        session.get.assert_called_once_with(
            config.day_avg_url,
            params={"fsym": "BTC", "tsym": "EUR", "toTs": TIMESTAMP},
            timeout=2.5,
        )

    def test_api_key_is_sent_when_configured(self, session):
        client = CryptoCompareClient(
            RetrievalConfig(CRYPTOCOMPARE_API_KEY="secret"),
            session=session,
        )

        params = client.build_params(TIMESTAMP, USD)

        assert params["api_key"] == "secret"

    def test_uses_requests_module_by_default(self, config):
        with patch("requests.get", return_value=MockResponse({"USD": 5.0})) as get:
            outcome = CryptoCompareClient(config).fetch(TIMESTAMP, USD)

        assert outcome.rate == 5.0
        get.assert_called_once()


class TestCryptoCompareCancellation:

    def test_cancelled_before_request(self, client, session):
        event = threading.Event()
        event.set()

        outcome = client.fetch(TIMESTAMP, USD, event)

        assert outcome.kind is OutcomeKind.CANCELLED
        session.get.assert_not_called()

    def test_cancellation_observed_after_request(self, client, session):
        event = threading.Event()

        def slow_get(*args, **kwargs):
            event.set()
            return MockResponse({"USD": 1.0})

        session.get.side_effect = slow_get

        assert client.fetch(TIMESTAMP, USD, event).kind is OutcomeKind.CANCELLED


class TestCryptoCompareNonFiniteRates:

    @pytest.mark.parametrize("value, text", [
        (float("nan"), '{"USD": NaN}'),
        (float("inf"), '{"USD": Infinity}'),
        (float("-inf"), '{"USD": -Infinity}'),
    ])
    def test_non_finite_rate_is_failure(self, client, session, value, text):
        session.get.return_value = MockResponse({"USD": value}, text=text)

        outcome = client.fetch(TIMESTAMP, USD)

        assert outcome.kind is OutcomeKind.FAILURE
        assert isinstance(outcome.cause, ApiRequestError)
