"""Configurable fake gateway transport for development and testing.

Simulates the gateway's approval and cancel endpoints without any network
calls. It answers with a canned body, approves by echoing the posted
transaction id and amount back, or fails as if the gateway were down. Every
call is recorded so tests can assert on the signed fields.
"""

import json

from payments.errors import GatewayUnreachable
from payments.gateway.classifier import APPROVAL_SUCCESS_CODES, CANCEL_SUCCESS_CODE, PayMethod
from payments.gateway.port import GatewayTransport


class FakeTransport(GatewayTransport):
    """Configurable fake gateway transport."""

    def __init__(self) -> None:
        self.response_body: str | None = None
        self.approval_method: str | None = PayMethod.CARD.value
        self.unreachable_reason: str | None = None
        self.calls: list[dict] = []

    def respond_with(self, body: str) -> None:
        """Answer every call with ``body`` verbatim."""
        self.response_body = body
        self.approval_method = None
        self.unreachable_reason = None

    def approve(self, pay_method: str = PayMethod.CARD.value) -> None:
        """Approve every call for whatever transaction and amount it posts."""
        self.response_body = None
        self.approval_method = pay_method
        self.unreachable_reason = None

    def decline(self, result_code: str = "3011", message: str = "Card declined", pay_method: str = "CARD") -> None:
        self.respond_with(json.dumps({"ResultCode": result_code, "ResultMsg": message, "PayMethod": pay_method}))

    def accept_cancel(self) -> None:
        self.respond_with(json.dumps({"ResultCode": CANCEL_SUCCESS_CODE, "ResultMsg": "Cancelled"}))

    def go_unreachable(self, reason: str = "Connection timed out") -> None:
        self.unreachable_reason = reason

    def post_form(self, url: str, fields: dict[str, str], timeout: float) -> str:
        self.calls.append({"url": url, "fields": dict(fields), "timeout": timeout})

        if self.unreachable_reason is not None:
            raise GatewayUnreachable(self.unreachable_reason)
        if self.approval_method is not None:
            return json.dumps(
                {
                    "ResultCode": APPROVAL_SUCCESS_CODES[PayMethod(self.approval_method)],
                    "ResultMsg": "Approved",
                    "PayMethod": self.approval_method,
                    "TID": fields.get("TID", ""),
                    "Amt": fields.get("Amt", ""),
                }
            )
        return self.response_body
