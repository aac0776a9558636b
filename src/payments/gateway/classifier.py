"""Outcome classification for gateway result codes.

Authentication succeeds only on the sentinel "0000". Approval success codes
depend on the payment method; a code that is the success code of a
different method is still a decline.
"""

from enum import Enum

AUTH_SUCCESS_CODE = "0000"
CANCEL_SUCCESS_CODE = "2001"


class PayMethod(Enum):
    CARD = "CARD"
    BANK = "BANK"
    CELLPHONE = "CELLPHONE"
    VBANK = "VBANK"


class Outcome(Enum):
    APPROVED = "approved"
    DECLINED = "declined"
    CANCELLED = "cancelled"  # Payer abandoned authentication


APPROVAL_SUCCESS_CODES = {
    PayMethod.CARD: "3001",
    PayMethod.BANK: "4000",
    PayMethod.CELLPHONE: "A000",
    PayMethod.VBANK: "4100",
}


def is_authenticated(auth_result_code: str | None) -> bool:
    return auth_result_code == AUTH_SUCCESS_CODE


def is_approved(result_code: str | None, pay_method: str | None) -> bool:
    try:
        method = PayMethod(pay_method)
    except ValueError:
        return False
    return result_code == APPROVAL_SUCCESS_CODES[method]


def classify(auth_result_code: str | None, result_code: str | None = None, pay_method: str | None = None) -> Outcome:
    """Fold the authentication and approval codes into one outcome."""
    if not is_authenticated(auth_result_code):
        return Outcome.CANCELLED
    if is_approved(result_code, pay_method):
        return Outcome.APPROVED
    return Outcome.DECLINED
