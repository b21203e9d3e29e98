"""
Payment request validation and card number handling.

Card numbers are normalized by dropping whitespace and must then be 13-19
ASCII digits. ``mask_card_number`` produces the only form of a card number
that may be written to logs.
"""

import re
from dataclasses import dataclass
from typing import Optional

MISSING_FIELDS_MESSAGE = 'Missing required fields: paymentId and cardNumber are required'
INVALID_CARD_MESSAGE = 'Invalid card number format'

CARD_NUMBER_RE = re.compile(r'[0-9]{13,19}')
WHITESPACE_RE = re.compile(r'\s+')

MASK_CHAR = '*'
VISIBLE_DIGITS = 4


class PaymentValidationError(Exception):
    """Base class for client-side payment request errors."""
    code = 'validation_error'
    message = 'Invalid payment request'

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)


class MissingField(PaymentValidationError):
    code = 'missing_field'
    message = MISSING_FIELDS_MESSAGE


class InvalidCardFormat(PaymentValidationError):
    code = 'invalid_card_format'
    message = INVALID_CARD_MESSAGE


def normalize_card_number(card_number: str) -> str:
    return WHITESPACE_RE.sub('', card_number)


def mask_card_number(card_number: str, mask: str = MASK_CHAR) -> str:
    """
    Replace every digit except the last four with ``mask``.

    Other characters are kept in place, so the result has the same length
    as the input: ``"4242 4242 4242 4242"`` becomes ``"**** **** **** 4242"``.
    """
    digit_count = sum(1 for ch in card_number if '0' <= ch <= '9')
    to_mask = digit_count - VISIBLE_DIGITS
    masked = []
    for ch in card_number:
        if to_mask > 0 and '0' <= ch <= '9':
            masked.append(mask)
            to_mask -= 1
        else:
            masked.append(ch)
    return ''.join(masked)


@dataclass(frozen=True)
class NormalizedCard:
    digits: str

    @property
    def masked(self) -> str:
        return mask_card_number(self.digits)


def validate_payment_request(payment_id: Optional[str], card_number: Optional[str]) -> NormalizedCard:
    """
    Check the two required fields and normalize the card number.

    Raises:
        MissingField: ``payment_id`` or ``card_number`` is empty or absent.
        InvalidCardFormat: the card number is not 13-19 digits once
            whitespace is removed.
    """
    if not payment_id or not card_number:
        raise MissingField()

    digits = normalize_card_number(card_number)
    if not CARD_NUMBER_RE.fullmatch(digits):
        raise InvalidCardFormat()

    return NormalizedCard(digits=digits)
