"""
models.py — Data Models for Honey Order Intake

This module defines the payloads exchanged with the storefront page and the
internal result types of the order workflow. Pydantic models are used for
parsing incoming data and shaping outgoing responses.

Models:
    - OrderSubmission: Raw order payload as posted by the storefront form.
    - OrderData: A validated order with the server-computed amount.
    - PaymentOutcome: Result of the optional M-Pesa payment step.
    - OrderResponse: JSON body returned to the storefront.
"""

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict


class OrderSubmission(BaseModel):
    """
    Represents an order as submitted by the storefront form.

    Every field is optional here; required fields are checked by the workflow
    so that a missing field yields a user-facing message instead of a
    validation dump. Unknown keys are ignored.

    Attributes:
        name (Optional[str]): Customer name. Required.
        email (Optional[str]): Customer email address.
        phone (Optional[str]): Customer phone number. Required.
        jarSize (Optional[str]): Jar size selector ('250g', '500g', '1kg'). Required.
        quantity: Number of jars, as number or numeric string. Required.
        deliveryDate (Optional[str]): Preferred delivery date.
        deliveryTime (Optional[str]): Preferred delivery time.
        location (Optional[str]): Delivery location.
        paymentMethod (Optional[str]): 'mpesa' or another option such as cash on delivery.
        amount: Amount computed by the page. Accepted but never used.
        notes (Optional[str]): Free-text notes.
    """
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    jarSize: Optional[str] = None
    quantity: Optional[Union[int, float, str]] = None
    deliveryDate: Optional[str] = None
    deliveryTime: Optional[str] = None
    location: Optional[str] = None
    paymentMethod: Optional[str] = None
    amount: Optional[Union[int, float, str]] = None
    notes: Optional[str] = None


class OrderData(BaseModel):
    """An accepted order; `amount` is the server-computed charge."""
    name: str
    email: Optional[str] = None
    phone: str
    jarSize: str
    quantity: Union[int, float, str]
    deliveryDate: Optional[str] = None
    deliveryTime: Optional[str] = None
    location: Optional[str] = None
    paymentMethod: Optional[str] = None
    amount: Union[int, float]
    notes: Optional[str] = None


class PaymentOutcome(BaseModel):
    """
    Result of the payment step of the workflow.

    Attributes:
        status: 'skipped' (no M-Pesa requested), 'succeeded' or 'failed'.
        data (Optional[dict]): Raw gateway response when the push was accepted.
        message (Optional[str]): Customer-facing reason when the push failed.
    """
    status: Literal["skipped", "succeeded", "failed"]
    data: Optional[Dict[str, Any]] = None
    message: Optional[str] = None

    @classmethod
    def skipped(cls) -> "PaymentOutcome":
        return cls(status="skipped")

    @classmethod
    def succeeded(cls, data: Dict[str, Any]) -> "PaymentOutcome":
        return cls(status="succeeded", data=data)

    @classmethod
    def failed(cls, message: str) -> "PaymentOutcome":
        return cls(status="failed", message=message)

    def to_response(self) -> Optional[Dict[str, Any]]:
        """Renders the outcome as the `mpesa` field of the order response."""
        if self.status == "succeeded":
            return self.data
        if self.status == "failed":
            return {"error": True, "message": self.message}
        return None


class OrderResponse(BaseModel):
    success: bool
    message: str
    mpesa: Optional[Dict[str, Any]] = None
