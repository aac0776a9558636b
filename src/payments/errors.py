"""Failures of the payment callback flow.

Each error names the redirect page the payer ends up on. None of them ever
reaches the payer as an HTTP error; the callback route turns every one into
a 200 response carrying the matching page.
"""


class PaymentCallbackError(Exception):
    """Base class for callback failures. Routes to the failure page."""

    page = "failed"

    def __init__(self, message: str, order_number: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.order_number = order_number


class AuthenticationDeclined(PaymentCallbackError):
    """The payer abandoned or failed authentication at the gateway."""

    page = "cancelled"


class ApprovalUnreachable(PaymentCallbackError):
    """The approval call failed at the network level or timed out. Nothing was changed."""


class ApprovalDeclined(PaymentCallbackError):
    """The gateway answered the approval call with a non-success code."""

    def __init__(self, message: str, order_number: str | None = None, result_code: str | None = None) -> None:
        super().__init__(message, order_number)
        self.result_code = result_code


class OrderNotFound(PaymentCallbackError):
    """The callback names an order number the ledger does not know."""


class DuplicateCallback(PaymentCallbackError):
    """The order was already paid. Replays land on the success page."""

    page = "success"


class LedgerConflict(PaymentCallbackError):
    """The order is in a state the approval cannot be applied to."""


class MalformedCallback(PaymentCallbackError):
    """The callback is missing fields or carries values that cannot be signed."""


class GatewayUnreachable(Exception):
    """Raised by transports when the gateway cannot be reached."""
