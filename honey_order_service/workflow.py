"""
workflow.py — Core Orchestration Logic for Honey Orders

This module contains the processing steps for a single order submission.
It coordinates validation, pricing, the optional M-Pesa payment and the
merchant notification in the correct sequence.

Workflow Overview:
1. Validate required fields
2. Price the order server-side
3. Initiate an M-Pesa STK push if the customer chose M-Pesa
4. Email the merchant (best effort)

Payment and notification failures never abort the order; they are turned
into data (a PaymentOutcome, a log line). Only validation problems and
unexpected exceptions leave this module.
"""

import logging
from typing import Union

import httpx

from .clients import MpesaClient, MpesaError, OrderNotifier
from .models import OrderData, OrderSubmission, PaymentOutcome
from .phone import sanitize_phone_number
from .pricing import calculate_amount

MPESA_METHOD = "mpesa"

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields."
INVALID_SIZE_MESSAGE = "Invalid jar size or quantity."
INVALID_PHONE_MESSAGE = "Invalid phone number for M-Pesa"
PAYMENT_FAILED_MESSAGE = "Failed to initiate M-Pesa STK push. Please try again or pay on delivery."
TRANSACTION_DESC = "ChemaBeez honey order"

log = logging.getLogger(__name__)


class OrderValidationError(Exception):
    """Raised when a submission cannot be accepted; the message is shown to the customer."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def validate_order(submission: OrderSubmission) -> OrderData:
    """
    Checks required fields and computes the authoritative amount.

    Args:
        submission (OrderSubmission): Payload as posted by the storefront.

    Returns:
        OrderData: The order with `amount` set from the price table. A
        client-supplied amount is discarded.

    Raises:
        OrderValidationError: If name, phone, jarSize or quantity is missing,
            or if the size/quantity cannot be priced.
    """
    if not submission.name or not submission.phone or not submission.jarSize or not submission.quantity:
        raise OrderValidationError(REQUIRED_FIELDS_MESSAGE)

    amount = calculate_amount(submission.jarSize, submission.quantity)
    if not amount:
        raise OrderValidationError(INVALID_SIZE_MESSAGE)

    fields = submission.model_dump(exclude={"amount"})
    return OrderData(**fields, amount=amount)


def run_payment_step(order: OrderData, mpesa_client: MpesaClient) -> PaymentOutcome:
    """
    Initiates the M-Pesa STK push for an order, if M-Pesa was chosen.

    This function never raises: every failure is returned as a failed outcome
    and logged with its details.

    Args:
        order (OrderData): The validated order.
        mpesa_client (MpesaClient): Gateway client for this request.

    Returns:
        PaymentOutcome: skipped, succeeded with the gateway response, or failed.
    """
    log_prefix = f"[Order: {order.name}]"

    if order.paymentMethod != MPESA_METHOD or not order.amount or not order.phone:
        return PaymentOutcome.skipped()

    phone_number = sanitize_phone_number(order.phone)
    if not phone_number:
        log.warning(f"{log_prefix} M-Pesa skipped: invalid phone number {order.phone!r}.")
        return PaymentOutcome.failed(INVALID_PHONE_MESSAGE)

    log.info(f"{log_prefix} Initiating M-Pesa STK push of {order.amount} to {phone_number}...")
    try:
        result = mpesa_client.initiate_stk_push(
            phone_number=phone_number,
            amount=order.amount,
            account_reference=f"Honey-{order.quantity}x{order.jarSize}",
            transaction_desc=TRANSACTION_DESC,
        )
        if not isinstance(result, dict):
            raise MpesaError(f"Unexpected STK push response: {result!r}")
        log.info(f"{log_prefix} STK push accepted. (CheckoutRequestID: {result.get('CheckoutRequestID')})")
        return PaymentOutcome.succeeded(result)
    except MpesaError as e:
        log.error(f"{log_prefix} M-Pesa STK push failed: {e}")
        return PaymentOutcome.failed(PAYMENT_FAILED_MESSAGE)
    except httpx.HTTPStatusError as e:
        log.error(f"{log_prefix} M-Pesa STK push failed (HTTP {e.response.status_code}): {e.response.text}")
        return PaymentOutcome.failed(PAYMENT_FAILED_MESSAGE)
    except httpx.HTTPError as e:
        log.error(f"{log_prefix} M-Pesa gateway not reachable: {e}")
        return PaymentOutcome.failed(PAYMENT_FAILED_MESSAGE)
    except Exception as e:
        log.error(f"{log_prefix} Unexpected error during M-Pesa STK push: {e}", exc_info=True)
        return PaymentOutcome.failed(PAYMENT_FAILED_MESSAGE)


def process_order(
        submission: Union[OrderSubmission, OrderData],
        mpesa_client: MpesaClient,
        notifier: OrderNotifier,
) -> PaymentOutcome:
    """
    Executes the complete processing workflow for a single order.

    Args:
        submission: The posted order, or an already validated `OrderData`.
        mpesa_client (MpesaClient): Gateway client, only used for M-Pesa orders.
        notifier (OrderNotifier): Merchant notifier, always invoked.

    Returns:
        PaymentOutcome: Result of the payment step.

    Raises:
        OrderValidationError: If the submission is incomplete or cannot be priced.
            No external call is made in that case.
    """
    order = submission if isinstance(submission, OrderData) else validate_order(submission)
    log_prefix = f"[Order: {order.name}]"
    log.info(f"{log_prefix} Order accepted: {order.quantity} x {order.jarSize}, amount {order.amount}, "
             f"payment method {order.paymentMethod!r}.")

    # --- 1. Payment (M-Pesa) ---
    outcome = run_payment_step(order, mpesa_client)

    # --- 2. Merchant notification (Email) ---
    notifier.notify(order)

    log.info(f"{log_prefix} Processing finished. Payment: {outcome.status}.")
    return outcome
