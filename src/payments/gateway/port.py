"""Payment gateway port (abstract interface) and the values crossing it.

The only thing the flow needs from the network is "POST these form fields
to this URL and give me the body back". Transports implement that and
nothing else, so the approval and cancellation logic can be exercised
against a fake without any sockets.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass

from payments.gateway.classifier import CANCEL_SUCCESS_CODE
from payments.gateway.responses import (
    ParsedResponse,
    Structured,
    Unparseable,
    read_field,
)


class GatewayTransport(ABC):
    """Abstract form-POST transport to the gateway."""

    @abstractmethod
    def post_form(self, url: str, fields: dict[str, str], timeout: float) -> str:
        """POST ``fields`` form-encoded to ``url`` and return the response body.

        Raises ``GatewayUnreachable`` on connection failure, timeout or a
        non-2xx status.
        """
        ...


@dataclass(frozen=True)
class PaymentCallback:
    """What the gateway posts back after the payer authenticates."""

    auth_result_code: str = ""
    auth_result_message: str = ""
    auth_token: str = ""
    pay_method: str = ""
    merchant_id: str = ""
    order_number: str = ""
    amount: str = ""
    transaction_id: str = ""
    approval_url: str = ""

    @classmethod
    def from_form(cls, form: Mapping) -> "PaymentCallback":
        def value(name):
            return str(form.get(name) or "").strip()

        return cls(
            auth_result_code=value("AuthResultCode"),
            auth_result_message=value("AuthResultMsg"),
            auth_token=value("AuthToken"),
            pay_method=value("PayMethod"),
            merchant_id=value("MID"),
            order_number=value("Moid"),
            amount=value("Amt"),
            transaction_id=value("TxTid"),
            approval_url=value("NextAppURL"),
        )


@dataclass(frozen=True)
class ApprovalResult:
    """The gateway's answer to an approval call, whatever shape it came in."""

    result_code: str | None = None
    result_message: str | None = None
    pay_method: str | None = None
    transaction_id: str | None = None
    amount: str | None = None
    response_format: str = "unparseable"

    @classmethod
    def from_response(cls, parsed: ParsedResponse) -> "ApprovalResult":
        if isinstance(parsed, Unparseable):
            return cls()

        fields = parsed.fields
        response_format = "structured" if isinstance(parsed, Structured) else "form"

        return cls(
            result_code=read_field(fields, "ResultCode"),
            result_message=read_field(fields, "ResultMsg"),
            pay_method=read_field(fields, "PayMethod"),
            transaction_id=read_field(fields, "TID"),
            amount=read_field(fields, "Amt"),
            response_format=response_format,
        )


@dataclass(frozen=True)
class CancelResult:
    """Result of a cancellation attempt."""

    success: bool
    result_code: str | None = None
    result_message: str | None = None

    @classmethod
    def from_response(cls, parsed: ParsedResponse) -> "CancelResult":
        if isinstance(parsed, Unparseable):
            return cls(success=False, result_message="Unreadable gateway response")
        code = read_field(parsed.fields, "ResultCode")
        return cls(
            success=code == CANCEL_SUCCESS_CODE,
            result_code=code,
            result_message=read_field(parsed.fields, "ResultMsg"),
        )
