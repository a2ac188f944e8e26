"""Pytest fixtures for the honey order service tests."""

import os

# Must happen before the app module is imported: no log file, no real credentials
os.environ["LOG_FILE"] = ""
for _key in (
    "MPESA_ENV", "MPESA_CONSUMER_KEY", "MPESA_CONSUMER_SECRET", "MPESA_SHORTCODE", "MPESA_PASSKEY",
    "MPESA_CALLBACK_URL", "MPESA_BASE_URL", "GMAIL_USER", "GMAIL_PASS", "ORDER_NOTIFICATION_EMAIL",
):
    os.environ.pop(_key, None)

import pytest
from fastapi.testclient import TestClient

from honey_order_service import clients as clients_mod
from honey_order_service.clients import MailConfig, MpesaClient, OrderNotifier
from honey_order_service.config import MpesaSettings
from honey_order_service.main import app, get_mpesa_client, get_notifier
from mock_services import mock_mpesa_gateway


@pytest.fixture
def mpesa_settings():
    return MpesaSettings(
        consumer_key="key",
        consumer_secret="secret",
        shortcode="174379",
        passkey="passkey",
        callback_url="https://shop.example.com/api/mpesa/callback",
    )


@pytest.fixture
def mail_config():
    return MailConfig(
        sender="shop@example.com",
        password="app-password",
        recipient="orders@example.com",
        smtp_host="smtp.example.com",
        smtp_port=465,
    )


class FakeSMTP:
    """Stands in for smtplib.SMTP_SSL and records what would have been sent."""
    instances = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.login_args = None
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def login(self, user, password):
        self.login_args = (user, password)

    def send_message(self, message):
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        self.sent.append(message)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(clients_mod.smtplib, "SMTP_SSL", FakeSMTP)
    return FakeSMTP


class RecordingNotifier:
    def __init__(self):
        self.orders = []

    def notify(self, order):
        self.orders.append(order)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gateway():
    """HTTP client wired to the mock M-Pesa gateway app."""
    mock_mpesa_gateway.reset()
    with TestClient(mock_mpesa_gateway.app) as client:
        yield client
    mock_mpesa_gateway.reset()


@pytest.fixture
def api_client():
    """
    Returns a factory building a TestClient for the order app with the given
    M-Pesa client and notifier injected.
    """
    def build(mpesa_client, order_notifier):
        app.dependency_overrides[get_mpesa_client] = lambda: mpesa_client
        app.dependency_overrides[get_notifier] = lambda: order_notifier
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


@pytest.fixture
def mock_gateway_client(mpesa_settings, gateway):
    return MpesaClient(mpesa_settings, http_client=gateway)


@pytest.fixture
def disabled_notifier():
    return OrderNotifier(None)
