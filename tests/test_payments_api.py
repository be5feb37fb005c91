"""
Tests for Pesapal payments, the callback and bank details.
"""
import json

import httpx

from feeledger.dependencies import get_payment_client
from feeledger.main import app
from feeledger.services.payment_service import PesapalClient

PAYMENT = {
    "orderId": "INV-1001",
    "amount": 1500,
    "description": "Term 1 fees",
    "email": "parent@example.com",
    "phone": "0712345678",
    "firstName": "Jane",
    "lastName": "Smith",
}


def _pesapal(handler):
    client = PesapalClient(
        base_url="https://pesapal.test/v3",
        consumer_key="key",
        consumer_secret="secret",
        transport=httpx.MockTransport(handler),
    )
    app.dependency_overrides[get_payment_client] = lambda: client
    return client


async def test_pay_submits_order_with_token(client):
    requests = []

    def handler(request: httpx.Request):
        requests.append(request)
        if request.url.path == "/v3/api/Auth/RequestToken":
            return httpx.Response(200, json={"token": "tok-123"})
        return httpx.Response(200, json={
            "order_tracking_id": "trk-1",
            "redirect_url": "https://pay.pesapal.test/iframe/trk-1",
        })

    _pesapal(handler)

    response = await client.post("/api/pay", json=PAYMENT)

    assert response.status_code == 200
    assert response.json()["redirect_url"].endswith("trk-1")

    token_request, order_request = requests
    assert json.loads(token_request.content) == {"consumer_key": "key", "consumer_secret": "secret"}
    assert order_request.url.path == "/v3/api/Transactions/SubmitOrderRequest"
    assert order_request.headers["Authorization"] == "Bearer tok-123"
    order = json.loads(order_request.content)
    assert order["id"] == "INV-1001"
    assert order["currency"] == "KES"
    assert order["amount"] == 1500
    assert order["billing_address"]["first_name"] == "Jane"


async def test_pay_fails_when_token_is_refused(client):
    _pesapal(lambda request: httpx.Response(401, json={"error": "invalid_consumer_key"}))

    response = await client.post("/api/pay", json=PAYMENT)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to get Pesapal token"


async def test_pay_surfaces_order_rejection(client):
    def handler(request: httpx.Request):
        if request.url.path.endswith("RequestToken"):
            return httpx.Response(200, json={"token": "tok-123"})
        return httpx.Response(400, json={"error": {"message": "Invalid amount"}})

    _pesapal(handler)

    response = await client.post("/api/pay", json=PAYMENT)

    assert response.status_code == 500
    assert response.json()["detail"] == {"error": {"message": "Invalid amount"}}


async def test_pay_validates_amount(client):
    response = await client.post("/api/pay", json={**PAYMENT, "amount": 0})

    assert response.status_code == 422


async def test_callback_is_acknowledged(client):
    response = await client.post("/api/online/callback", json={"Body": {"stkCallback": {"ResultCode": 0}}})

    assert response.status_code == 200


async def test_bank_details_use_camel_case(client):
    response = await client.get("/api/payment/bank-details")

    assert response.status_code == 200
    assert set(response.json()) == {
        "bank",
        "accountNumber",
        "paybillNumber",
        "tillAccountNumber",
        "businessName",
        "message",
    }


async def test_pay_rejects_non_json_order_response(client):
    def handler(request: httpx.Request):
        if request.url.path.endswith("RequestToken"):
            return httpx.Response(200, json={"token": "tok-123"})
        return httpx.Response(200, text="<html>Service temporarily unavailable</html>")

    _pesapal(handler)

    response = await client.post("/api/pay", json=PAYMENT)

    assert response.status_code == 500
    assert response.json()["detail"] == "Unexpected Pesapal order response"


async def test_pay_rejects_non_json_token_response(client):
    _pesapal(lambda request: httpx.Response(200, text="maintenance"))

    response = await client.post("/api/pay", json=PAYMENT)

    assert response.status_code == 500
    assert response.json()["detail"] == "Unexpected Pesapal token response"
