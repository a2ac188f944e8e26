"""
config.py — Environment Configuration for the Honey Order Service

All environment variables recognised by the service are read here and
collected into pydantic models. Defaults and fallbacks (sandbox gateway,
SMTP relay, notification destination, reference/description texts) are
resolved once at load time so request handling never has to.

Recognised variables:
    MPESA_ENV, MPESA_CONSUMER_KEY, MPESA_CONSUMER_SECRET, MPESA_SHORTCODE,
    MPESA_PASSKEY, MPESA_CALLBACK_URL, MPESA_TIMEOUT_SECONDS, MPESA_BASE_URL,
    GMAIL_USER, GMAIL_PASS, ORDER_NOTIFICATION_EMAIL, SMTP_HOST, SMTP_PORT,
    LOG_FILE
"""

import logging
import os
from typing import Callable, Mapping, Optional, TypeVar

from pydantic import BaseModel

SANDBOX_BASE_URL = "https://sandbox.safaricom.co.ke"
PRODUCTION_BASE_URL = "https://api.safaricom.co.ke"

DEFAULT_ACCOUNT_REFERENCE = "ChemaBeez Honey"
DEFAULT_TRANSACTION_DESC = "Honey purchase"

T = TypeVar("T")

log = logging.getLogger(__name__)


class MpesaSettings(BaseModel):
    """
    Credentials and options for the M-Pesa (Daraja) gateway.

    Attributes:
        environment (str): 'sandbox' or 'production'.
        consumer_key (Optional[str]): OAuth consumer key.
        consumer_secret (Optional[str]): OAuth consumer secret.
        shortcode (Optional[str]): Business short code (paybill number).
        passkey (Optional[str]): STK push pass key.
        callback_url (Optional[str]): URL the gateway posts payment results to.
        timeout_seconds (float): Read timeout for gateway calls.
        base_url_override (Optional[str]): Gateway URL to use instead of the
            Safaricom hosts, e.g. the local mock gateway.
    """
    environment: str = "sandbox"
    consumer_key: Optional[str] = None
    consumer_secret: Optional[str] = None
    shortcode: Optional[str] = None
    passkey: Optional[str] = None
    callback_url: Optional[str] = None
    timeout_seconds: float = 20.0
    base_url_override: Optional[str] = None
    default_account_reference: str = DEFAULT_ACCOUNT_REFERENCE
    default_transaction_desc: str = DEFAULT_TRANSACTION_DESC

    @property
    def base_url(self) -> str:
        if self.base_url_override:
            return self.base_url_override.rstrip("/")
        if self.environment == "production":
            return PRODUCTION_BASE_URL
        return SANDBOX_BASE_URL


class MailSettings(BaseModel):
    """Mailbox used for merchant order notifications."""
    sender: Optional[str] = None
    password: Optional[str] = None
    recipient: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465


class Settings(BaseModel):
    mpesa: MpesaSettings = MpesaSettings()
    mail: MailSettings = MailSettings()
    log_file: Optional[str] = "order_processing.log"


def _get(environ: Mapping[str, str], key: str) -> Optional[str]:
    # Blank values count as not configured
    value = environ.get(key, "").strip()
    return value or None


def _get_number(environ: Mapping[str, str], key: str, cast: Callable[[str], T], default: T) -> T:
    value = _get(environ, key)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        log.warning(f"Ignoring invalid {key}={value!r}; using default {default}.")
        return default


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Builds the service settings from environment variables.

    Args:
        environ (Optional[Mapping[str, str]]): Source mapping, defaults to `os.environ`.

    Returns:
        Settings: Fully resolved settings. Missing credentials stay `None`;
        the components that need them decide whether they are usable.
    """
    if environ is None:
        environ = os.environ

    mpesa = MpesaSettings(
        environment=(_get(environ, "MPESA_ENV") or "sandbox").lower(),
        consumer_key=_get(environ, "MPESA_CONSUMER_KEY"),
        consumer_secret=_get(environ, "MPESA_CONSUMER_SECRET"),
        shortcode=_get(environ, "MPESA_SHORTCODE"),
        passkey=_get(environ, "MPESA_PASSKEY"),
        callback_url=_get(environ, "MPESA_CALLBACK_URL"),
        timeout_seconds=_get_number(environ, "MPESA_TIMEOUT_SECONDS", float, 20.0),
        base_url_override=_get(environ, "MPESA_BASE_URL"),
    )

    sender = _get(environ, "GMAIL_USER")
    mail = MailSettings(
        sender=sender,
        password=_get(environ, "GMAIL_PASS"),
        recipient=_get(environ, "ORDER_NOTIFICATION_EMAIL") or sender,
        smtp_host=_get(environ, "SMTP_HOST") or "smtp.gmail.com",
        smtp_port=_get_number(environ, "SMTP_PORT", int, 465),
    )

    # LOG_FILE set to an empty string disables the file handler
    log_file = environ.get("LOG_FILE", "order_processing.log").strip() or None

    return Settings(mpesa=mpesa, mail=mail, log_file=log_file)
