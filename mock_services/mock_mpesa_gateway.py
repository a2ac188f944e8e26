"""
mock_mpesa_gateway.py — Mock Implementation of the M-Pesa Daraja API (REST API)

This module provides a simulated M-Pesa gateway for local development and tests.
It exposes a FastAPI application that mimics the two Daraja endpoints used by
the order service.

Simulation Scenarios:
    • Token issued for any Basic-auth credentials
    • Successful STK push acknowledgment
    • Rejected STK push (HTTP 400) for phone numbers ending in '999'
    • Missing or unknown bearer token (HTTP 401)

Endpoints:
    GET  /oauth/v1/generate — Issues access tokens.
    POST /mpesa/stkpush/v1/processrequest — Accepts STK push requests.

Port:
    Default: 8001 (HTTP)
"""

import base64
import logging
import uuid
from typing import List, Optional

from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Mock M-Pesa Gateway")
logging.basicConfig(level=logging.INFO)

issued_tokens = set()
received_pushes: List["StkPushRequest"] = []


class StkPushRequest(BaseModel):
    """
    Represents an STK push payload as defined by Daraja.

    Attributes:
        BusinessShortCode (str): Merchant short code.
        Password (str): base64(shortcode + passkey + timestamp).
        Timestamp (str): YYYYMMDDHHMMSS.
        TransactionType (str): e.g. 'CustomerPayBillOnline'.
        Amount (int): Amount in KES.
        PartyA (str): Paying phone number.
        PartyB (str): Receiving short code.
        PhoneNumber (str): Phone number that receives the prompt.
        CallBackURL (str): Where the result is posted.
        AccountReference (str): Reference shown to the payer.
        TransactionDesc (str): Payment description.
    """
    BusinessShortCode: str
    Password: str
    Timestamp: str
    TransactionType: str
    Amount: int
    PartyA: str
    PartyB: str
    PhoneNumber: str
    CallBackURL: str
    AccountReference: str
    TransactionDesc: str


def reset():
    """Forgets all issued tokens and received pushes."""
    issued_tokens.clear()
    received_pushes.clear()


@app.get("/oauth/v1/generate")
def generate_token(grant_type: str, authorization: Optional[str] = Header(None)):
    """
    Issues an access token for Basic-auth credentials.

    Raises:
        HTTPException(400): If the grant type is not 'client_credentials'.
        HTTPException(401): If no valid Basic authorization header is sent.
    """
    if grant_type != "client_credentials":
        raise HTTPException(status_code=400, detail={"errorMessage": "Invalid grant type"})
    if not authorization or not authorization.startswith("Basic "):
        raise HTTPException(status_code=401, detail={"errorMessage": "Invalid Authentication passed"})
    try:
        key, _, secret = base64.b64decode(authorization[len("Basic "):]).decode().partition(":")
    except ValueError:
        raise HTTPException(status_code=401, detail={"errorMessage": "Invalid Authentication passed"})
    if not key or not secret:
        raise HTTPException(status_code=401, detail={"errorMessage": "Invalid Authentication passed"})

    token = uuid.uuid4().hex
    issued_tokens.add(token)
    logging.info(f"[MPESA] Token issued for consumer key {key}.")
    return {"access_token": token, "expires_in": "3599"}


@app.post("/mpesa/stkpush/v1/processrequest")
def process_request(request: StkPushRequest, authorization: Optional[str] = Header(None)):
    """
    Accepts an STK push request.

    Returns:
        dict: Daraja-style acknowledgment with MerchantRequestID and CheckoutRequestID.

    Raises:
        HTTPException(401): If the bearer token was not issued by this mock.
        HTTPException(400): If the phone number ends in '999' (simulated rejection).
    """
    token = authorization[len("Bearer "):] if authorization and authorization.startswith("Bearer ") else None
    if token not in issued_tokens:
        raise HTTPException(status_code=401, detail={"errorMessage": "Invalid Access Token"})

    received_pushes.append(request)
    logging.info(f"[MPESA] STK push of {request.Amount} to {request.PhoneNumber} ({request.AccountReference}).")

    # Scenario simulation
    if request.PhoneNumber.endswith("999"):
        logging.warning(f"[MPESA] STK push to {request.PhoneNumber} rejected.")
        raise HTTPException(
            status_code=400,
            detail={"errorCode": "400.002.02", "errorMessage": "Bad Request - Invalid PhoneNumber"},
        )

    return {
        "MerchantRequestID": f"mr-{uuid.uuid4().hex[:12]}",
        "CheckoutRequestID": f"ws_CO_{uuid.uuid4().hex[:16]}",
        "ResponseCode": "0",
        "ResponseDescription": "Success. Request accepted for processing",
        "CustomerMessage": "Success. Request accepted for processing",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
