"""Approval request — the one network call that captures the payer's funds.

After the payer authenticates, the gateway hands us a one-time auth token
and a URL to confirm the charge at. The requester signs a single form POST
to that URL and reads whatever comes back. It never retries and never
touches the ledger: a transport failure surfaces as ``ApprovalUnreachable``
and the caller decides what the payer sees.
"""

from collections.abc import Callable
from datetime import datetime
from urllib.parse import urlparse

import structlog

from payments.errors import ApprovalUnreachable, GatewayUnreachable, MalformedCallback
from payments.gateway.port import ApprovalResult, GatewayTransport, PaymentCallback
from payments.gateway.responses import parse_gateway_response
from payments.gateway.settings import GatewaySettings
from payments.gateway.signature import canonical_amount, mint_edi_date, sign_approval

logger = structlog.get_logger(__name__)

CHARSET = "utf-8"


class ApprovalRequester:
    def __init__(
        self,
        transport: GatewayTransport,
        settings: GatewaySettings,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.transport = transport
        self.settings = settings
        self.clock = clock

    def _check_approval_url(self, callback: PaymentCallback) -> None:
        parsed = urlparse(callback.approval_url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise MalformedCallback("Callback carries no usable approval URL", callback.order_number)

        if not self.settings.allows_approval_host(parsed.hostname):
            logger.error(
                "Refusing approval URL outside allowed gateway hosts",
                order_number=callback.order_number,
                host=parsed.hostname,
            )
            raise ApprovalUnreachable("Approval URL is not a known gateway host", callback.order_number)

    def approval_fields(self, callback: PaymentCallback) -> dict[str, str]:
        """The signed form fields for ``callback``'s approval call."""
        try:
            amount = canonical_amount(callback.amount)
        except ValueError as exc:
            raise MalformedCallback(str(exc), callback.order_number) from exc

        merchant_id = self.settings.merchant_id or callback.merchant_id
        edi_date = mint_edi_date(self.clock())
        return {
            "TID": callback.transaction_id,
            "AuthToken": callback.auth_token,
            "MID": merchant_id,
            "Amt": amount,
            "EdiDate": edi_date,
            "CharSet": CHARSET,
            "SignData": sign_approval(
                callback.auth_token,
                merchant_id,
                amount,
                edi_date,
                self.settings.merchant_key,
            ),
        }

    def request(self, callback: PaymentCallback) -> ApprovalResult:
        """Ask the gateway to approve an authenticated payment."""
        self._check_approval_url(callback)
        fields = self.approval_fields(callback)

        logger.info(
            "Requesting payment approval",
            order_number=callback.order_number,
            transaction_id=callback.transaction_id,
            amount=fields["Amt"],
        )
        try:
            body = self.transport.post_form(
                callback.approval_url,
                fields,
                timeout=self.settings.approval_timeout,
            )
        except GatewayUnreachable as exc:
            logger.warning(
                "Approval request did not reach the gateway",
                order_number=callback.order_number,
                error=str(exc),
            )
            raise ApprovalUnreachable(str(exc), callback.order_number) from exc

        result = ApprovalResult.from_response(parse_gateway_response(body))
        logger.info(
            "Approval response received",
            order_number=callback.order_number,
            result_code=result.result_code,
            result_message=result.result_message,
            pay_method=result.pay_method,
            response_format=result.response_format,
        )
        return result
