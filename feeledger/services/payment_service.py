"""
Pesapal payment gateway client.
Requests a bearer token with the merchant's consumer credentials, then
submits order requests on behalf of the frontend.
"""
from typing import Any, Dict, Optional

import httpx

from feeledger.config import settings
from feeledger.exceptions import PaymentGatewayError
from feeledger.logging_config import get_logger
from feeledger.schemas.payment import PaymentRequest

logger = get_logger(__name__)

JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _json_body(response: httpx.Response, what: str) -> Dict[str, Any]:
    try:
        return response.json()
    except ValueError as e:
        logger.error(f"Pesapal {what} response was not JSON: {response.text[:200]}")
        raise PaymentGatewayError(f"Unexpected Pesapal {what} response") from e


class PesapalClient:
    """Thin async client over the Pesapal v3 REST API"""

    def __init__(
        self,
        base_url: str = None,
        consumer_key: str = None,
        consumer_secret: str = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = None,
    ):
        self.base_url = (base_url or settings.PESAPAL_BASE_URL).rstrip("/")
        self.consumer_key = consumer_key if consumer_key is not None else settings.PESAPAL_CONSUMER_KEY
        self.consumer_secret = consumer_secret if consumer_secret is not None else settings.PESAPAL_CONSUMER_SECRET
        self.transport = transport
        self.timeout = timeout or settings.PESAPAL_TIMEOUT

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=JSON_HEADERS,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def request_token(self, client: httpx.AsyncClient) -> str:
        try:
            response = await client.post(
                "/api/Auth/RequestToken",
                json={"consumer_key": self.consumer_key, "consumer_secret": self.consumer_secret},
            )
        except httpx.HTTPError as e:
            logger.error(f"Pesapal token request failed: {e}")
            raise PaymentGatewayError("Failed to get Pesapal token") from e

        if response.is_error:
            logger.error(f"Pesapal token error: {_error_body(response)}")
            raise PaymentGatewayError("Failed to get Pesapal token")

        body = _json_body(response, "token")
        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            logger.error(f"Pesapal token response had no token: {body}")
            raise PaymentGatewayError("Failed to get Pesapal token")
        return token

    def build_order(self, payment: PaymentRequest) -> Dict[str, Any]:
        return {
            "id": payment.order_id,
            "currency": "KES",
            "amount": float(payment.amount),
            "description": payment.description,
            "callback_url": settings.PESAPAL_CALLBACK_URL,
            "notification_id": settings.PESAPAL_NOTIFICATION_ID,
            "billing_address": {
                "email_address": payment.email,
                "phone_number": payment.phone,
                "first_name": payment.first_name,
                "last_name": payment.last_name,
            },
        }

    async def submit_order(self, payment: PaymentRequest) -> Dict[str, Any]:
        """
        Submit an order request and return Pesapal's response (includes the redirect URL).

        Raises:
            PaymentGatewayError: If the token or order request fails.
        """
        async with self._client() as client:
            token = await self.request_token(client)
            try:
                response = await client.post(
                    "/api/Transactions/SubmitOrderRequest",
                    json=self.build_order(payment),
                    headers={"Authorization": f"Bearer {token}"},
                )
            except httpx.HTTPError as e:
                logger.error(f"Pesapal order request failed: {e}")
                raise PaymentGatewayError(str(e)) from e

        if response.is_error:
            body = _error_body(response)
            logger.error(f"Pesapal rejected order {payment.order_id}: {body}")
            raise PaymentGatewayError(body)

        logger.info(f"Submitted Pesapal order {payment.order_id}")
        return _json_body(response, "order")
