"""
Payment processing flow.

Received -> Validating -> Rejected (400)
                       -> Simulating -> Approved (200)
                                     -> Declined / ProcessingError (422)
                                     -> UnexpectedFailure (500)

Each request produces exactly one response. Failed payments are reported to
the caller and never retried here.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from payments_service.baggage import RequestContext
from payments_service.cards import (
    InvalidCardFormat,
    MissingField,
    mask_card_number,
    normalize_card_number,
    validate_payment_request,
)
from payments_service.gateway import (
    Approved,
    PaymentGateway,
    PaymentOutcome,
    UnexpectedFailure,
)

SUCCESS_MESSAGE = 'Payment processed successfully'
INTERNAL_ERROR_MESSAGE = 'Internal server error during payment processing'


@dataclass(frozen=True)
class PaymentResponse:
    status_code: int
    body: Dict[str, Any]


def outcome_to_response(payment_id: str, outcome: PaymentOutcome) -> PaymentResponse:
    if isinstance(outcome, Approved):
        return PaymentResponse(200, {
            'success': True,
            'paymentId': payment_id,
            'transactionId': outcome.transaction_id,
            'status': outcome.status,
            'message': SUCCESS_MESSAGE,
        })
    if isinstance(outcome, UnexpectedFailure):
        # outcome.reason stays server-side
        return PaymentResponse(500, {
            'success': False,
            'paymentId': payment_id,
            'error': INTERNAL_ERROR_MESSAGE,
        })
    return PaymentResponse(422, {
        'success': False,
        'paymentId': payment_id,
        'error': outcome.reason,
        'status': outcome.status,
    })


class PaymentProcessor:
    """Validates a payment request, runs it through the gateway and builds the response."""

    def __init__(self, gateway: PaymentGateway) -> None:
        self.gateway = gateway

    async def process(
        self,
        payment_id: Optional[str],
        card_number: Optional[str],
        context: RequestContext,
    ) -> PaymentResponse:
        log = context.logger
        card_mask = mask_card_number(card_number) if card_number else 'not provided'

        log.info("Payment processing started",
                 payment_id=payment_id,
                 card_number_mask=card_mask)

        # =====================================================================
        # VALIDATING
        # =====================================================================
        try:
            card = validate_payment_request(payment_id, card_number)
        except MissingField as e:
            log.error("Invalid payment request - missing required fields",
                      error_code=e.code,
                      payment_id_present=bool(payment_id),
                      card_number_present=bool(card_number),
                      card_number_mask=card_mask)
            return PaymentResponse(400, {'success': False, 'error': str(e)})
        except InvalidCardFormat as e:
            log.error("Invalid card number format",
                      error_code=e.code,
                      payment_id=payment_id,
                      card_number_length=len(normalize_card_number(card_number)),
                      card_number_mask=card_mask)
            return PaymentResponse(400, {'success': False, 'error': str(e)})

        # =====================================================================
        # SIMULATING
        # =====================================================================
        log.info("Calling external payment service",
                 payment_id=payment_id,
                 service=self.gateway.name)

        try:
            outcome = await self.gateway.charge(card, context)
        except Exception as e:
            log.exception("Unexpected error during payment processing",
                          exc=e,
                          payment_id=payment_id,
                          card_number_mask=card.masked)
            outcome = UnexpectedFailure(reason=str(e))

        # =====================================================================
        # RESPONDED
        # =====================================================================
        if isinstance(outcome, Approved):
            log.info("Payment processed successfully",
                     payment_id=payment_id,
                     transaction_id=outcome.transaction_id,
                     status=outcome.status)
        elif not isinstance(outcome, UnexpectedFailure):
            log.error("Payment processing failed",
                      payment_id=payment_id,
                      error=outcome.reason,
                      status=outcome.status)

        return outcome_to_response(payment_id, outcome)
