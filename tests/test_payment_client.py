import pytest
import requests

from app.services import payment_client as module
from app.services.payment_client import PaymentClient


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


@pytest.fixture
def client():
    return PaymentClient(base_url="http://payments.test/", timeout=1)


def fake_post(outcome, calls):
    def _post(url, json, timeout):
        calls.append((url, json, timeout))
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)

    return _post


@pytest.mark.parametrize("status_code,expected", [(200, True), (204, True), (409, True), (402, False), (500, False)])
def test_reversal_status_codes(client, monkeypatch, status_code, expected):
    calls = []
    monkeypatch.setattr(module.requests, "post", fake_post(status_code, calls))

    assert client.reverse_charge(7) is expected
    assert calls == [("http://payments.test/charges/7/reversal", {"order_id": 7}, 1)]


def test_timeout_is_a_failure_and_not_retried(client, monkeypatch):
    calls = []
    monkeypatch.setattr(module.requests, "post", fake_post(requests.ReadTimeout("slow"), calls))

    assert client.reverse_charge(7) is False
    assert len(calls) == 1


def test_connection_errors_are_retried(client, monkeypatch):
    calls = []
    monkeypatch.setattr(module.requests, "post", fake_post(requests.ConnectionError("refused"), calls))

    assert client.reverse_charge(7) is False
    assert len(calls) == 3
