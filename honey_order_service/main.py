"""
main.py — FastAPI Entry Point for the Honey Order Service

This module provides the REST API used by the storefront page and by the
M-Pesa gateway.

Responsibilities:
    • Accept honey orders and run the order workflow (pricing → M-Pesa → email)
    • Acknowledge asynchronous M-Pesa payment callbacks
    • Render every error as the JSON shape the storefront expects
    • Provide system health information
"""

import json
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .clients import MpesaClient, OrderNotifier, resolve_mail_config
from .config import Settings, load_settings
from .logging_config import get_logger, setup_logging
from .models import OrderResponse, OrderSubmission
from .workflow import REQUIRED_FIELDS_MESSAGE, OrderValidationError, process_order

ORDER_RECEIVED_MESSAGE = "Order received. You will receive honey delivery as agreed."
ORDER_FAILED_MESSAGE = "Something went wrong while processing your order. Please try again."


@lru_cache
def get_settings() -> Settings:
    return load_settings()


# Initialization
# Configure logging and initialize FastAPI app
setup_logging(get_settings().log_file)
log = get_logger(__name__)
app = FastAPI(title="ChemaBeez Honey Order Service")


# Dependencies
def get_mpesa_client(settings: Settings = Depends(get_settings)):
    """Yields a gateway client for a single request and closes it afterwards."""
    client = MpesaClient(settings.mpesa)
    try:
        yield client
    finally:
        client.close()


@lru_cache
def get_notifier() -> OrderNotifier:
    """
    Resolves the mail configuration once per process.

    If the mailbox credentials are incomplete, the notifier stays disabled
    for the lifetime of the process and only a warning is logged.
    """
    config = resolve_mail_config(get_settings())
    if config is None:
        log.warning("Email not fully configured; order notification emails are disabled.")
    else:
        log.info(f"Order notifications will be sent to {config.recipient}.")
    return OrderNotifier(config)


def _error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message}, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Renders routing errors (404, 405 with its Allow header) in the storefront's error shape."""
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """A body that is not a JSON object cannot hold the required fields."""
    log.warning(f"Rejected malformed order payload: {exc.errors()}")
    return _error_response(400, REQUIRED_FIELDS_MESSAGE)


# API Endpoint: Storefront → Order Service
@app.post("/api/order", response_model=OrderResponse)
def submit_order(
        submission: OrderSubmission,
        mpesa_client: MpesaClient = Depends(get_mpesa_client),
        notifier: OrderNotifier = Depends(get_notifier),
):
    """
    Receives an order from the storefront and processes it synchronously.

    Args:
        submission (OrderSubmission): Order payload from the storefront form.
        mpesa_client (MpesaClient): Gateway client for this request.
        notifier (OrderNotifier): Process-wide merchant notifier.

    Returns:
        OrderResponse: success flag, message, and the M-Pesa result
        (gateway response, `{error, message}` object, or null).

    Error responses:
        400: Missing required fields or unpriceable jar size/quantity.
        500: Unexpected internal error; details are only logged.
    """
    log.info(f"[Order: {submission.name}] New order received from storefront.")
    try:
        outcome = process_order(submission, mpesa_client, notifier)
    except OrderValidationError as e:
        log.warning(f"[Order: {submission.name}] Rejected: {e.message}")
        return _error_response(400, e.message)
    except Exception as e:
        log.critical(f"[Order: {submission.name}] Error handling order: {e}", exc_info=True)
        return _error_response(500, ORDER_FAILED_MESSAGE)

    return OrderResponse(success=True, message=ORDER_RECEIVED_MESSAGE, mpesa=outcome.to_response())


def summarize_callback(payload) -> str:
    """Extracts the interesting fields of an STK callback for the log."""
    if not isinstance(payload, dict):
        return "unrecognised payload"
    callback = payload.get("Body", {})
    callback = callback.get("stkCallback", {}) if isinstance(callback, dict) else {}
    if not isinstance(callback, dict) or not callback:
        return "unrecognised payload"
    return (f"CheckoutRequestID={callback.get('CheckoutRequestID')} "
            f"ResultCode={callback.get('ResultCode')} ResultDesc={callback.get('ResultDesc')}")


# API Endpoint: M-Pesa Gateway → Order Service
@app.post("/api/mpesa/callback")
async def mpesa_callback(request: Request):
    """
    Acknowledges the gateway's asynchronous payment result.

    The body is only logged; it is not matched against any order. Bodies
    that are not valid JSON are logged as text and acknowledged as well.

    Returns:
        dict: Always `{"status": "received"}`.
    """
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else None
    except ValueError:
        payload = raw.decode("utf-8", errors="replace")

    log.info(f"[M-Pesa-Callback] {summarize_callback(payload)}. Details: {payload}")
    return {"status": "received"}


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
