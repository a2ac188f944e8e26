"""
This module provides communication clients for the external systems used by the order service:
- M-Pesa Daraja API (REST, OAuth token + STK push)
- Merchant mailbox (SMTP over SSL)
Each class encapsulates its protocol logic, error handling, and connection management.
"""

import base64
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import Optional, Union

import httpx
from pydantic import BaseModel

from .config import MailSettings, MpesaSettings, Settings
from .models import OrderData

TRANSACTION_TYPE = "CustomerPayBillOnline"
TOKEN_PATH = "/oauth/v1/generate"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"

log = logging.getLogger(__name__)


class MpesaError(Exception):
    """Raised when the M-Pesa gateway cannot be used for a payment."""


class MpesaConfigurationError(MpesaError):
    """Raised when required M-Pesa credentials are not configured."""


def generate_timestamp(now: Optional[datetime] = None) -> str:
    """Returns the local time as YYYYMMDDHHMMSS, the format Daraja expects."""
    return (now or datetime.now()).strftime("%Y%m%d%H%M%S")


def generate_password(shortcode: str, passkey: str, timestamp: str) -> str:
    """STK push password: base64(shortcode + passkey + timestamp)."""
    return base64.b64encode(f"{shortcode}{passkey}{timestamp}".encode()).decode()


# --- M-Pesa Client (REST) ---
class MpesaClient:
    """
    Client for the M-Pesa Daraja API.
    Fetches a fresh access token for every push request; tokens are never reused.
    """
    def __init__(self, settings: MpesaSettings, http_client: Optional[httpx.Client] = None):
        """
        Initializes the HTTP client with proper timeout configuration.

        Args:
            settings (MpesaSettings): Gateway credentials and environment.
            http_client (Optional[httpx.Client]): Preconfigured client, e.g. for tests.
                A client passed in is not closed by `close()`.
        """
        self.settings = settings
        self.base_url = settings.base_url
        self._owns_client = http_client is None
        if http_client is None:
            timeout_config = httpx.Timeout(10.0, read=settings.timeout_seconds)
            http_client = httpx.Client(timeout=timeout_config)
        self.client = http_client

    def close(self):
        """Closes the HTTP client session."""
        if self._owns_client:
            self.client.close()

    def get_access_token(self) -> str:
        """
        Requests an OAuth access token using the consumer key and secret.
        Returns:
            str: The bearer token, valid for a single push.
        Raises:
            MpesaConfigurationError: If the consumer key or secret is missing.
            httpx.HTTPStatusError: If the gateway rejects the credentials.
            MpesaError: If the response carries no access token.
        """
        key = self.settings.consumer_key
        secret = self.settings.consumer_secret
        if not key or not secret:
            raise MpesaConfigurationError("M-Pesa consumer key/secret not configured")

        auth = base64.b64encode(f"{key}:{secret}".encode()).decode()
        response = self.client.get(
            f"{self.base_url}{TOKEN_PATH}",
            params={"grant_type": "client_credentials"},
            headers={"Authorization": f"Basic {auth}"},
        )
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as e:
            raise MpesaError(f"Token response is not JSON: {e}") from e
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise MpesaError("Token response did not contain an access_token")
        return token

    def initiate_stk_push(
            self,
            phone_number: str,
            amount: Union[int, float],
            account_reference: Optional[str] = None,
            transaction_desc: Optional[str] = None,
            now: Optional[datetime] = None,
    ) -> dict:
        """
        Sends an STK push so the customer gets a payment prompt on their phone.
        Args:
            phone_number (str): Payer phone in canonical format (e.g. '254712345678').
            amount: Amount in KES; sent to the gateway as an integer.
            account_reference (Optional[str]): Reference shown to the payer.
            transaction_desc (Optional[str]): Short description of the payment.
            now (Optional[datetime]): Clock override for the timestamp.
        Returns:
            dict: Raw JSON response of the gateway.
        Raises:
            MpesaConfigurationError: If shortcode, passkey or callback URL are missing.
            httpx.HTTPStatusError: If the gateway returns an error status (4xx or 5xx).
            httpx.TransportError: On connection problems or timeouts.
            MpesaError: If the response body is not a JSON object.
        """
        shortcode = self.settings.shortcode
        passkey = self.settings.passkey
        callback_url = self.settings.callback_url
        if not shortcode or not passkey or not callback_url:
            raise MpesaConfigurationError("M-Pesa shortcode/passkey/callback URL not fully configured")

        # Password and timestamp must match; both are generated right before the call
        timestamp = generate_timestamp(now)
        password = generate_password(shortcode, passkey, timestamp)

        token = self.get_access_token()

        payload = {
            "BusinessShortCode": shortcode,
            "Password": password,
            "Timestamp": timestamp,
            "TransactionType": TRANSACTION_TYPE,
            "Amount": int(amount),
            "PartyA": phone_number,
            "PartyB": shortcode,
            "PhoneNumber": phone_number,
            "CallBackURL": callback_url,
            "AccountReference": account_reference or self.settings.default_account_reference,
            "TransactionDesc": transaction_desc or self.settings.default_transaction_desc,
        }
        headers = {"Authorization": f"Bearer {token}"}

        try:
            response = self.client.post(f"{self.base_url}{STK_PUSH_PATH}", json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error(f"STK push rejected by gateway (HTTP {e.response.status_code}): {e.response.text}")
            raise
        except httpx.TransportError as e:
            log.error(f"M-Pesa gateway not reachable: {e}")
            raise

        try:
            data = response.json()
        except ValueError as e:
            raise MpesaError(f"STK push response is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise MpesaError(f"STK push response is not a JSON object: {data!r}")
        return data


# --- Order Notifier (SMTP) ---
class MailConfig(BaseModel):
    """Complete mailbox configuration; only exists when notifications are enabled."""
    sender: str
    password: str
    recipient: str
    smtp_host: str
    smtp_port: int


def resolve_mail_config(settings: Union[Settings, MailSettings]) -> Optional[MailConfig]:
    """
    Decides once whether order notifications can be sent.
    Returns:
        Optional[MailConfig]: The mailbox configuration, or None if the sender
        credentials are incomplete (notifications disabled).
    """
    mail = settings.mail if isinstance(settings, Settings) else settings
    if not mail.sender or not mail.password or not mail.recipient:
        return None
    return MailConfig(
        sender=mail.sender,
        password=mail.password,
        recipient=mail.recipient,
        smtp_host=mail.smtp_host,
        smtp_port=mail.smtp_port,
    )


def format_order_email(order: OrderData) -> str:
    """Plain-text notification body, one line per field."""
    return "\n".join([
        f"New honey order from {order.name}",
        "",
        f"Name: {order.name}",
        f"Email: {order.email or ''}",
        f"Phone: {order.phone}",
        "",
        f"Jar size: {order.jarSize}",
        f"Quantity: {order.quantity}",
        "",
        f"Preferred delivery date: {order.deliveryDate or ''}",
        f"Preferred delivery time: {order.deliveryTime or ''}",
        f"Delivery location: {order.location or ''}",
        "",
        f"Payment method: {order.paymentMethod or ''}",
        f"Amount to charge (if M-Pesa): {order.amount or 'N/A'}",
        "",
        f"Notes: {order.notes or 'None'}",
    ])


def _single_line(value: str) -> str:
    # Header values must not contain CR or LF
    return " ".join(value.splitlines())


class OrderNotifier:
    """
    Sends a summary of each accepted order to the merchant mailbox.
    Delivery is best effort: failures are logged and never raised.
    """
    def __init__(self, config: Optional[MailConfig], timeout: float = 10.0):
        self.config = config
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return self.config is not None

    def build_message(self, order: OrderData) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.sender
        message["To"] = self.config.recipient
        message["Subject"] = f"New Honey Order from {_single_line(order.name)}"
        message.set_content(format_order_email(order))
        return message

    def notify(self, order: OrderData) -> None:
        """
        Emails the order summary.
        Args:
            order (OrderData): The accepted order.
        """
        if not self.enabled:
            log.info(f"[Order: {order.name}] Email notifications disabled; no email sent.")
            return

        try:
            message = self.build_message(order)
            with smtplib.SMTP_SSL(self.config.smtp_host, self.config.smtp_port, timeout=self.timeout) as smtp:
                smtp.login(self.config.sender, self.config.password)
                smtp.send_message(message)
            log.info(f"[Order: {order.name}] Notification email sent to {self.config.recipient}.")
        except (smtplib.SMTPException, OSError) as e:
            log.error(f"[Order: {order.name}] Error sending order email: {e}")
        except Exception as e:
            log.error(f"[Order: {order.name}] Unexpected error building or sending order email: {e}", exc_info=True)
