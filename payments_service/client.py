"""
Client for calling ``POST /process-payment`` from another service.

The caller's baggage is forwarded on the ``Baggage`` header so that the
payment's log lines correlate with the caller's. Calls use a bounded
timeout. Nothing is retried; a failed payment is returned to the caller.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from payments_service.baggage import RequestContext, outbound_headers
from payments_service.config import Settings


class PaymentsClientError(Exception):
    """The payments service could not be reached or answered unexpectedly."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    status_code: int
    payment_id: Optional[str] = None
    transaction_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_response(cls, status_code: int, data: Dict[str, Any]) -> "PaymentResult":
        return cls(
            success=bool(data.get('success')),
            status_code=status_code,
            payment_id=data.get('paymentId'),
            transaction_id=data.get('transactionId'),
            status=data.get('status'),
            error=data.get('error'),
            message=data.get('message'),
        )


# 400 and 422 carry a documented payload describing why the payment failed
_RESULT_STATUSES = (200, 400, 422)


class PaymentsClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "PaymentsClient":
        """Client for ``PAYMENT_SERVICE_URL`` with ``PAYMENT_CLIENT_TIMEOUT``."""
        return cls(
            base_url=settings.payment_service_url,
            timeout=settings.payment_client_timeout,
            session=session,
        )

    def process_payment(self, payment_id: str, card_number: str, context: RequestContext) -> PaymentResult:
        log = context.logger
        url = f"{self.base_url}/process-payment"

        log.info("Processing payment", payment_id=payment_id, downstream_service='payments-service')

        try:
            response = self.session.post(
                url,
                json={'paymentId': payment_id, 'cardNumber': card_number},
                headers=outbound_headers(context),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            log.error("Payments service timeout",
                      payment_id=payment_id,
                      timeout_seconds=self.timeout)
            raise PaymentsClientError(f"Payments service timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            log.error("Failed to make HTTP request to payments service",
                      payment_id=payment_id,
                      error=str(e))
            raise PaymentsClientError(f"Failed to reach payments service: {e}") from e

        if response.status_code not in _RESULT_STATUSES:
            log.error("Payments service returned error",
                      payment_id=payment_id,
                      http_status=response.status_code)
            raise PaymentsClientError(
                f"Payments service returned status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            log.error("Failed to parse payments service response",
                      payment_id=payment_id,
                      http_status=response.status_code)
            raise PaymentsClientError(
                "Invalid JSON from payments service",
                status_code=response.status_code,
                body=response.text,
            ) from e

        if not isinstance(data, dict):
            log.error("Payments service response is not a JSON object",
                      payment_id=payment_id,
                      http_status=response.status_code)
            raise PaymentsClientError(
                "Invalid JSON from payments service",
                status_code=response.status_code,
                body=response.text,
            )

        result = PaymentResult.from_response(response.status_code, data)
        if result.success:
            log.info("Payment processed successfully",
                     payment_id=payment_id,
                     transaction_id=result.transaction_id)
        else:
            log.warn("Payment was not completed",
                     payment_id=payment_id,
                     http_status=response.status_code,
                     error=result.error,
                     status=result.status)
        return result
