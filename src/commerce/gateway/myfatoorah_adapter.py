"""MyFatoorah gateway adapter over its v2 REST API.

The order id travels in ``UserDefinedField`` and comes back with the payment
status. Every call runs with a bounded timeout. A timeout surfaces as
``GatewayTimeout`` and leaves local state alone.
"""

import httpx
import structlog

from commerce.errors import GatewayError, GatewayTimeout, PaymentNotFound
from commerce.gateway.port import SUCCESS, GatewayPayment, PaymentGateway, PaymentMethodOption, PaymentSession

logger = structlog.get_logger(__name__)

_PAID = "paid"


class MyFatoorahGateway(PaymentGateway):
    name = "myfatoorah"

    def __init__(
        self,
        base_url: str,
        api_token: str,
        timeout: float = 10.0,
        callback_url: str = "http://localhost:5173/payment-success",
        error_url: str = "http://localhost:5173/payment-error",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.callback_url = callback_url
        self.error_url = error_url
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_token}", "Content-Type": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _post(self, path: str, payload: dict) -> httpx.Response:
        try:
            return self._client.post(path, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("gateway_timeout", gateway=self.name, path=path)
            raise GatewayTimeout(f"{self.name} did not answer {path} in time") from exc
        except httpx.HTTPError as exc:
            logger.error("gateway_unreachable", gateway=self.name, path=path, error=str(exc))
            raise GatewayError(f"{self.name} request to {path} failed: {exc}") from exc

    @staticmethod
    def _data(response: httpx.Response, path: str) -> dict | None:
        try:
            body = response.json()
        except ValueError as exc:
            raise GatewayError(f"Gateway answered {path} with a non-JSON body") from exc
        return body.get("Data") if isinstance(body, dict) else None

    def create_payment(self, amount, currency, correlation_token, customer=None, payment_method_id=None):
        customer = customer or {}
        payload = {
            "InvoiceValue": amount,
            "DisplayCurrencyIso": currency,
            "CustomerName": customer.get("name") or "Customer",
            "CustomerEmail": customer.get("email"),
            "CustomerMobile": customer.get("phone"),
            "CallBackUrl": self.callback_url,
            "ErrorUrl": self.error_url,
            "Language": "en",
            "UserDefinedField": correlation_token,
        }
        if payment_method_id:
            path = "/v2/ExecutePayment"
            payload["PaymentMethodId"] = payment_method_id
        else:
            path = "/v2/SendPayment"
            payload["NotificationOption"] = "LNK"

        response = self._post(path, payload)
        if response.status_code >= 400:
            raise GatewayError(f"{self.name} rejected payment creation with HTTP {response.status_code}")

        data = self._data(response, path) or {}
        return PaymentSession(
            gateway_payment_id=str(data.get("InvoiceId")),
            payment_url=data.get("PaymentURL") or data.get("InvoiceURL"),
            correlation_token=correlation_token,
        )

    def get_payment_status(self, gateway_payment_id):
        path = "/v2/GetPaymentStatus"
        response = self._post(path, {"Key": gateway_payment_id, "KeyType": "PaymentId"})
        if response.status_code == 404:
            raise PaymentNotFound(gateway_payment_id)
        if response.status_code >= 500:
            raise GatewayError(f"{self.name} answered HTTP {response.status_code}")

        data = self._data(response, path)
        if not data:
            raise PaymentNotFound(gateway_payment_id)

        transactions = data.get("InvoiceTransactions") or [{}]
        latest = transactions[0]
        paid = (data.get("InvoiceStatus") or "").strip().lower() == _PAID

        return GatewayPayment(
            gateway_payment_id=str(gateway_payment_id),
            status=SUCCESS if paid else (data.get("InvoiceStatus") or "failed").lower(),
            amount=data.get("InvoiceValue"),
            currency=latest.get("Currency"),
            transaction_id=latest.get("TransactionId"),
            correlation_token=data.get("UserDefinedField") or None,
            payment_method=latest.get("PaymentGateway"),
            metadata={
                "invoice_id": data.get("InvoiceId"),
                "invoice_reference": data.get("InvoiceReference"),
                "invoice_status": data.get("InvoiceStatus"),
            },
        )

    def list_payment_methods(self, amount, currency):
        path = "/v2/InitiatePayment"
        response = self._post(path, {"InvoiceAmount": amount, "CurrencyIso": currency})
        if response.status_code >= 400:
            raise GatewayError(f"{self.name} refused to list payment methods with HTTP {response.status_code}")

        data = self._data(response, path) or {}
        return [
            PaymentMethodOption(
                method_id=str(method.get("PaymentMethodId")),
                name=method.get("PaymentMethodEn"),
                code=method.get("PaymentMethodCode"),
                service_charge=method.get("ServiceCharge") or 0.0,
            )
            for method in data.get("PaymentMethods") or []
        ]
