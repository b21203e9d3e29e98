"""Shared pytest fixtures for payments service tests."""

import io
import json

import pytest
from fastapi.testclient import TestClient

from payments_service.app import create_app
from payments_service.baggage import RequestContext
from payments_service.config import Settings
from payments_service.gateway import PaymentGateway, SequentialTransactionIds
from payments_service.log import JsonLogger

BAGGAGE = 'trace-id=abc123'


async def no_sleep(_delay: float) -> None:
    return None


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def json_logger(log_stream: io.StringIO) -> JsonLogger:
    return JsonLogger(level='DEBUG', stream=log_stream)


@pytest.fixture
def read_logs(log_stream: io.StringIO):
    """Return a callable that parses every JSON line written so far."""
    def _read() -> list:
        return [json.loads(line) for line in log_stream.getvalue().splitlines() if line.strip()]
    return _read


@pytest.fixture
def context(json_logger: JsonLogger) -> RequestContext:
    return RequestContext(baggage=BAGGAGE, logger=json_logger.bind(BAGGAGE))


@pytest.fixture
def gateway() -> PaymentGateway:
    """Gateway with no latency and ids txn_1, txn_2, ..."""
    return PaymentGateway(ids=SequentialTransactionIds(), sleep=no_sleep)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def client(settings: Settings, gateway: PaymentGateway, json_logger: JsonLogger) -> TestClient:
    with TestClient(create_app(settings, gateway=gateway, logger=json_logger)) as test_client:
        yield test_client
