"""Request signatures for the payment gateway.

Every signed request carries a SHA-256 hex digest over a fixed
concatenation of its fields and the merchant secret. The gateway recomputes
the digest and rejects the request on mismatch, so the field order, the
amount's canonical form and the 14-digit timestamp must be exact.
"""

import hashlib
import re
from datetime import datetime

EDI_DATE_FORMAT = "%Y%m%d%H%M%S"

_EDI_DATE = re.compile(r"^\d{14}$")
_AMOUNT = re.compile(r"^(0|[1-9]\d*)$")


def mint_edi_date(now: datetime | None = None) -> str:
    """A 14-digit YYYYMMDDHHMMSS timestamp for a request about to be sent."""
    return (now or datetime.now()).strftime(EDI_DATE_FORMAT)


def canonical_amount(amount) -> str:
    """The amount as the gateway expects it: a non-negative integer in decimal.

    Rejects signs, decimals, separators and leading zeros rather than
    normalising them, since the gateway signs the literal string.
    """
    if isinstance(amount, bool):
        raise ValueError(f"Invalid amount: {amount!r}")
    if isinstance(amount, int):
        if amount < 0:
            raise ValueError(f"Invalid amount: {amount!r}")
        return str(amount)

    text = str(amount).strip()
    if not _AMOUNT.match(text):
        raise ValueError(f"Invalid amount: {amount!r}")
    return text


def _check_edi_date(edi_date: str) -> None:
    if not _EDI_DATE.match(edi_date or ""):
        raise ValueError(f"EdiDate must be 14 digits, got {edi_date!r}")


def _digest(*parts: str) -> str:
    return hashlib.sha256("".join(parts).encode("utf-8")).hexdigest()


def sign_approval(auth_token: str, merchant_id: str, amount, edi_date: str, merchant_key: str) -> str:
    """Signature for the approval call: authToken + MID + amount + ediDate + key."""
    _check_edi_date(edi_date)
    return _digest(auth_token, merchant_id, canonical_amount(amount), edi_date, merchant_key)


def sign_auth_request(edi_date: str, merchant_id: str, amount, merchant_key: str) -> str:
    """Signature for the payment window: ediDate + MID + amount + key."""
    _check_edi_date(edi_date)
    return _digest(edi_date, merchant_id, canonical_amount(amount), merchant_key)


def sign_cancel(merchant_id: str, cancel_amount, edi_date: str, merchant_key: str) -> str:
    """Signature for a cancellation: MID + cancel amount + ediDate + key."""
    _check_edi_date(edi_date)
    return _digest(merchant_id, canonical_amount(cancel_amount), edi_date, merchant_key)
