import httpx
import pytest

from honey_order_service.clients import MpesaConfigurationError
from honey_order_service.models import OrderSubmission, PaymentOutcome
from honey_order_service.workflow import (
    INVALID_PHONE_MESSAGE,
    INVALID_SIZE_MESSAGE,
    PAYMENT_FAILED_MESSAGE,
    REQUIRED_FIELDS_MESSAGE,
    OrderValidationError,
    process_order,
    run_payment_step,
    validate_order,
)


class FakeMpesaClient:
    def __init__(self, result=None, error=None):
        self.result = result if result is not None else {"ResponseCode": "0", "CheckoutRequestID": "ws_CO_1"}
        self.error = error
        self.calls = []

    def initiate_stk_push(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def submission(**overrides):
    fields = dict(name="A", phone="0700000000", jarSize="500g", quantity="2", paymentMethod="mpesa")
    fields.update(overrides)
    return OrderSubmission(**fields)


@pytest.mark.parametrize("missing", ["name", "phone", "jarSize", "quantity"])
def test_missing_required_field(missing):
    with pytest.raises(OrderValidationError) as exc_info:
        validate_order(submission(**{missing: None}))
    assert exc_info.value.message == REQUIRED_FIELDS_MESSAGE


@pytest.mark.parametrize("overrides", [{"jarSize": "2kg"}, {"quantity": "0"}, {"quantity": "-1"}, {"quantity": "lots"}])
def test_unpriceable_order(overrides):
    with pytest.raises(OrderValidationError) as exc_info:
        validate_order(submission(**overrides))
    assert exc_info.value.message == INVALID_SIZE_MESSAGE


def test_client_amount_is_discarded():
    order = validate_order(submission(amount=1))
    assert order.amount == 1100


def test_mpesa_order_pushes_computed_amount_and_normalized_phone():
    client = FakeMpesaClient()
    notifier_orders = []

    class Notifier:
        def notify(self, order):
            notifier_orders.append(order)

    outcome = process_order(submission(), client, Notifier())

    assert outcome == PaymentOutcome.succeeded({"ResponseCode": "0", "CheckoutRequestID": "ws_CO_1"})
    assert client.calls == [{
        "phone_number": "254700000000",
        "amount": 1100,
        "account_reference": "Honey-2x500g",
        "transaction_desc": "ChemaBeez honey order",
    }]
    assert len(notifier_orders) == 1
    assert notifier_orders[0].amount == 1100


def test_non_mpesa_order_skips_payment(notifier):
    client = FakeMpesaClient()

    outcome = process_order(submission(paymentMethod="cash"), client, notifier)

    assert outcome.status == "skipped"
    assert outcome.to_response() is None
    assert client.calls == []
    assert len(notifier.orders) == 1


def test_invalid_phone_fails_payment_only(notifier):
    client = FakeMpesaClient()

    outcome = process_order(submission(phone="   "), client, notifier)

    assert outcome == PaymentOutcome.failed(INVALID_PHONE_MESSAGE)
    assert client.calls == []
    assert len(notifier.orders) == 1


@pytest.mark.parametrize("error", [
    MpesaConfigurationError("not configured"),
    httpx.ConnectError("down"),
    httpx.HTTPStatusError(
        "bad", request=httpx.Request("POST", "https://x"), response=httpx.Response(400, text="rejected")
    ),
    RuntimeError("surprise"),
])
def test_payment_errors_become_failed_outcome(error):
    order = validate_order(submission())

    outcome = run_payment_step(order, FakeMpesaClient(error=error))

    assert outcome.status == "failed"
    assert outcome.to_response() == {"error": True, "message": PAYMENT_FAILED_MESSAGE}


def test_validation_failure_makes_no_external_calls(notifier):
    client = FakeMpesaClient()

    with pytest.raises(OrderValidationError):
        process_order(submission(phone=None), client, notifier)

    assert client.calls == []
    assert notifier.orders == []


def test_notifier_runs_even_when_payment_fails(notifier):
    process_order(submission(), FakeMpesaClient(error=httpx.ConnectError("down")), notifier)
    assert len(notifier.orders) == 1


@pytest.mark.parametrize("result", [[1], "accepted", 0])
def test_non_object_gateway_response_becomes_failed_outcome(result):
    order = validate_order(submission())

    outcome = run_payment_step(order, FakeMpesaClient(result=result))

    assert outcome == PaymentOutcome.failed(PAYMENT_FAILED_MESSAGE)
