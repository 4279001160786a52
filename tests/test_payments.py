"""Tests for the Razorpay orders client."""

import pytest
import requests

from payments import (
    RazorpayClient,
    RazorpayError,
    RazorpayConnectionError,
    RazorpayAuthError,
    PaymentsNotConfiguredError,
)


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.payload = payload

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload


@pytest.fixture
def client():
    return RazorpayClient(key_id='rzp_test_key', key_secret='rzp_test_secret')


def respond_with(monkeypatch, client, response, calls=None):
    def request(method, url, json=None, timeout=None):
        if calls is not None:
            calls.append((method, url, json))
        if isinstance(response, Exception):
            raise response
        return response
    monkeypatch.setattr(client.session, 'request', request)


def test_create_order(monkeypatch, client):
    calls = []
    respond_with(monkeypatch, client, FakeResponse(200, {'id': 'order_abc', 'amount': 49900}), calls)

    order = client.create_order(49900, 'INR', 'receipt_1', notes={'customer_id': 'c1'})

    assert order['id'] == 'order_abc'
    method, url, payload = calls[0]
    assert method == 'POST'
    assert url == 'https://api.razorpay.com/v1/orders'
    assert payload == {'amount': 49900, 'currency': 'INR', 'receipt': 'receipt_1', 'notes': {'customer_id': 'c1'}}
    assert client.session.auth == ('rzp_test_key', 'rzp_test_secret')

def test_fetch_order(monkeypatch, client):
    calls = []
    respond_with(monkeypatch, client, FakeResponse(200, {'id': 'order_abc', 'status': 'paid'}), calls)
    assert client.fetch_order('order_abc')['status'] == 'paid'
    assert calls[0][:2] == ('GET', 'https://api.razorpay.com/v1/orders/order_abc')

def test_provider_error_carries_description(monkeypatch, client):
    respond_with(monkeypatch, client, FakeResponse(400, {
        'error': {'code': 'BAD_REQUEST_ERROR', 'description': 'The amount must be atleast INR 1.00'}
    }))
    with pytest.raises(RazorpayError) as exc_info:
        client.create_order(0, 'INR', 'receipt_1')
    assert exc_info.value.code == 'BAD_REQUEST_ERROR'
    assert exc_info.value.status_code == 400
    assert 'atleast INR 1.00' in str(exc_info.value)

def test_bad_credentials(monkeypatch, client):
    respond_with(monkeypatch, client, FakeResponse(401))
    with pytest.raises(RazorpayAuthError):
        client.create_order(100, 'INR', 'receipt_1')

@pytest.mark.parametrize('failure', [
    requests.exceptions.Timeout('slow'),
    requests.exceptions.ConnectionError('refused'),
])
def test_connection_failures(monkeypatch, client, failure):
    respond_with(monkeypatch, client, failure)
    with pytest.raises(RazorpayConnectionError):
        client.create_order(100, 'INR', 'receipt_1')

def test_invalid_json(monkeypatch, client):
    respond_with(monkeypatch, client, FakeResponse(200))
    with pytest.raises(RazorpayConnectionError):
        client.fetch_order('order_abc')

def test_disabled_without_keys():
    client = RazorpayClient(key_id=None, key_secret=None)
    assert not client.enabled
    with pytest.raises(PaymentsNotConfiguredError):
        client.create_order(100, 'INR', 'receipt_1')
