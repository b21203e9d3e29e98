"""
Simulated external payment gateway.

No real payment network is called. After an artificial latency the
gateway classifies the card number:

- 4000000000000002 -> Declined
- 4000000000000119 -> ProcessingError
- anything else    -> Approved, with a new transaction id

These reserved test cards are relied on by the test suites of calling
services and must not change.
"""

import asyncio
import itertools
import random
import time
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Union

from payments_service.baggage import RequestContext
from payments_service.cards import NormalizedCard

DECLINED_TEST_CARD = '4000000000000002'
PROCESSING_ERROR_TEST_CARD = '4000000000000119'

GATEWAY_NAME = 'stripe-simulation'


# =============================================================================
# OUTCOMES
# =============================================================================

@dataclass(frozen=True)
class Approved:
    transaction_id: str
    status: str = 'completed'
    success = True


@dataclass(frozen=True)
class Declined:
    reason: str = 'Card declined'
    status: str = 'declined'
    success = False


@dataclass(frozen=True)
class ProcessingError:
    """Gateway-side processing failure. An outcome, not an exception."""
    reason: str = 'Processing error'
    status: str = 'failed'
    success = False


@dataclass(frozen=True)
class UnexpectedFailure:
    """The gateway call itself raised. ``reason`` is for server logs only."""
    reason: str
    status: str = 'error'
    success = False


PaymentOutcome = Union[Approved, Declined, ProcessingError, UnexpectedFailure]


# =============================================================================
# TRANSACTION IDS
# =============================================================================

class TransactionIdGenerator:
    """Strategy for producing transaction ids."""
    def next_id(self) -> str:
        raise NotImplementedError


class TimeRandomTransactionIds(TransactionIdGenerator):
    """``txn_<epoch millis>_<random hex>``; unique per call."""
    def next_id(self) -> str:
        return f"txn_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


class SequentialTransactionIds(TransactionIdGenerator):
    """Deterministic ids (``txn_1``, ``txn_2``, ...)."""
    def __init__(self, prefix: str = 'txn_', start: int = 1) -> None:
        self.prefix = prefix
        self._counter = itertools.count(start)

    def next_id(self) -> str:
        return f"{self.prefix}{next(self._counter)}"


def classify_card(digits: str, ids: TransactionIdGenerator) -> PaymentOutcome:
    if digits == DECLINED_TEST_CARD:
        return Declined()
    if digits == PROCESSING_ERROR_TEST_CARD:
        return ProcessingError()
    return Approved(transaction_id=ids.next_id())


# =============================================================================
# GATEWAY
# =============================================================================

class PaymentGateway:
    """
    Local stand-in for a card processor.

    Args:
        ids: Transaction id strategy. Defaults to ``TimeRandomTransactionIds``.
        delay_range: (min, max) seconds of simulated latency.
        sleep: Awaitable sleep used for the latency; ``asyncio.sleep`` by
            default so concurrent requests keep running.
        rng: Random source for the latency draw.
    """

    name = GATEWAY_NAME

    def __init__(
        self,
        ids: Optional[TransactionIdGenerator] = None,
        delay_range: Tuple[float, float] = (0.1, 0.3),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        low, high = delay_range
        if low < 0 or high < low:
            raise ValueError(f"Invalid delay range: {delay_range}")
        self.ids = ids or TimeRandomTransactionIds()
        self.delay_range = (low, high)
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def charge(self, card: NormalizedCard, context: RequestContext) -> PaymentOutcome:
        delay = self._rng.uniform(*self.delay_range)
        context.logger.debug("Simulating gateway latency",
                             gateway=self.name,
                             card_number_mask=card.masked,
                             delay_ms=int(delay * 1000))

        await self._sleep(delay)

        outcome = classify_card(card.digits, self.ids)

        context.logger.info("Payment gateway responded",
                            gateway=self.name,
                            card_number_mask=card.masked,
                            outcome=type(outcome).__name__,
                            status=outcome.status)
        return outcome
