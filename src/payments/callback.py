"""Payment callback processing — from the gateway's POST to the payer's page.

The gateway posts the authentication result to us in the payer's browser.
From there:

    authenticated?  -- no -->  cancelled page
        | yes
    known, unpaid order with a matching amount?  -- already paid -->  success page (replay)
        | yes
    approval call  -- unreachable -->  failure page, nothing changed
        |
    approved?  -- no -->  record decline, failure page
        | yes
    confirm in the ledger, prune the cart, success page

Every path ends on one of the three pages and is logged. Nothing here
raises to the caller.
"""

from dataclasses import asdict, dataclass

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.cart.reconciliation import ReconcileCart
from ordering.order.order import Order, OrderStatus, PaymentStatus
from ordering.order.payment import ConfirmOrderPayment, LedgerOutcome, RecordPaymentDecline
from payments.errors import (
    ApprovalDeclined,
    AuthenticationDeclined,
    DuplicateCallback,
    LedgerConflict,
    MalformedCallback,
    OrderNotFound,
    PaymentCallbackError,
)
from payments.gateway.approval import ApprovalRequester
from payments.gateway.classifier import Outcome, classify, is_authenticated
from payments.gateway.port import PaymentCallback
from payments.gateway.signature import canonical_amount

logger = structlog.get_logger(__name__)

GENERIC_FAILURE = "Payment could not be completed. Please try again."
DEFAULT_CANCELLED = "Payment was cancelled."


@dataclass(frozen=True)
class CallbackOutcome:
    """Which page the payer sees, and what it shows."""

    page: str
    order_number: str = ""
    amount: str = ""
    transaction_id: str = ""
    error: str | None = None

    def context(self) -> dict:
        return asdict(self)


class PaymentCallbackProcessor:
    def __init__(self, requester: ApprovalRequester) -> None:
        self.requester = requester

    @property
    def settings(self):
        return self.requester.settings

    def process(self, callback: PaymentCallback) -> CallbackOutcome:
        log = logger.bind(order_number=callback.order_number, transaction_id=callback.transaction_id)
        log.info("Payment callback received", auth_result_code=callback.auth_result_code, amount=callback.amount)

        try:
            outcome = self._settle(callback)
        except AuthenticationDeclined as exc:
            log.info("Payment authentication not completed", auth_result_code=callback.auth_result_code)
            return CallbackOutcome(page=exc.page, order_number=callback.order_number, error=exc.message)
        except DuplicateCallback as exc:
            log.info("Duplicate payment callback", reason=exc.message)
            return self._success(callback)
        except ApprovalDeclined as exc:
            log.info("Payment declined by gateway", result_code=exc.result_code, reason=exc.message)
            return CallbackOutcome(page=exc.page, order_number=callback.order_number, error=exc.message)
        except OrderNotFound as exc:
            log.error("Payment callback for unknown order", reason=exc.message)
            return self._failure(callback)
        except PaymentCallbackError as exc:
            log.warning("Payment callback failed", error_type=type(exc).__name__, reason=exc.message)
            return self._failure(callback)
        except Exception:
            log.exception("Unexpected error while processing payment callback")
            return self._failure(callback)

        log.info("Payment callback completed", page=outcome.page)
        return outcome

    def _success(self, callback: PaymentCallback) -> CallbackOutcome:
        return CallbackOutcome(
            page="success",
            order_number=callback.order_number,
            amount=callback.amount,
            transaction_id=callback.transaction_id,
        )

    def _failure(self, callback: PaymentCallback) -> CallbackOutcome:
        return CallbackOutcome(page="failed", order_number=callback.order_number, error=GENERIC_FAILURE)

    # -------------------------------------------------------------------
    # Flow
    # -------------------------------------------------------------------
    def _settle(self, callback: PaymentCallback) -> CallbackOutcome:
        if not is_authenticated(callback.auth_result_code):
            raise AuthenticationDeclined(
                callback.auth_result_message or DEFAULT_CANCELLED,
                callback.order_number,
            )

        amount = self._preflight(callback)
        result = self.requester.request(callback)

        pay_method = result.pay_method or callback.pay_method
        if classify(callback.auth_result_code, result.result_code, pay_method) is Outcome.APPROVED:
            ledger = self._dispatch(
                ConfirmOrderPayment(
                    order_number=callback.order_number,
                    transaction_id=callback.transaction_id,
                    payment_method=pay_method,
                    amount=self._approved_amount(callback, result, amount),
                )
            )
            self._reconcile(callback.order_number)
            if ledger == LedgerOutcome.REPLAYED.value:
                raise DuplicateCallback("Payment was already confirmed", callback.order_number)
            return self._success(callback)

        if result.result_message:
            reason = result.result_message
        elif result.result_code:
            reason = f"Payment declined ({result.result_code})"
        else:
            reason = "Unreadable response from payment gateway"

        ledger = self._dispatch(RecordPaymentDecline(order_number=callback.order_number, reason=reason[:500]))
        if ledger == LedgerOutcome.REPLAYED.value:
            self._reconcile(callback.order_number)
            raise DuplicateCallback("Decline arrived for an order already paid", callback.order_number)
        raise ApprovalDeclined(reason, callback.order_number, result.result_code)

    def _preflight(self, callback: PaymentCallback) -> int:
        """Check the callback against the ledger before any funds move."""
        if not callback.order_number:
            raise MalformedCallback("Callback carries no order number")
        if not (callback.auth_token and callback.transaction_id):
            raise MalformedCallback("Callback carries no auth token or transaction id", callback.order_number)
        if self.settings.merchant_id and callback.merchant_id and callback.merchant_id != self.settings.merchant_id:
            logger.error(
                "Payment callback for a different merchant",
                order_number=callback.order_number,
                merchant_id=callback.merchant_id,
            )
            raise MalformedCallback("Callback merchant does not match", callback.order_number)
        try:
            amount = int(canonical_amount(callback.amount))
        except ValueError as exc:
            raise MalformedCallback(str(exc), callback.order_number) from exc

        try:
            order = current_domain.repository_for(Order).find_by_order_number(callback.order_number)
        except ObjectNotFoundError as exc:
            raise OrderNotFound(str(exc), callback.order_number) from exc

        if order.is_paid:
            if not order.is_cart_reconciled:
                self._reconcile(order.order_number)
            raise DuplicateCallback("Order is already paid", order.order_number)
        if order.payment_status != PaymentStatus.PENDING.value:
            raise LedgerConflict(f"Order payment is already {order.payment_status}", order.order_number)
        if order.status != OrderStatus.PENDING.value:
            raise LedgerConflict(f"Order is already {order.status}", order.order_number)
        if amount != order.total_amount:
            logger.error(
                "Callback amount does not match order total",
                order_number=order.order_number,
                amount=amount,
                total_amount=order.total_amount,
            )
            raise LedgerConflict("Callback amount does not match the order total", order.order_number)
        return amount

    def _approved_amount(self, callback: PaymentCallback, result, expected: int) -> int:
        """The amount the gateway says it captured, checked against what we asked for."""
        if result.transaction_id and result.transaction_id != callback.transaction_id:
            logger.error(
                "Approval answered for a different transaction",
                order_number=callback.order_number,
                transaction_id=callback.transaction_id,
                approved_transaction_id=result.transaction_id,
            )
            raise LedgerConflict("Approval answered for a different transaction", callback.order_number)
        if not result.amount:
            return expected

        try:
            approved = int(canonical_amount(result.amount))
        except ValueError:
            approved = None
        if approved != expected:
            logger.error(
                "Approved amount does not match the requested amount",
                order_number=callback.order_number,
                approved_amount=result.amount,
                amount=expected,
            )
            raise LedgerConflict("Approved amount does not match the order total", callback.order_number)
        return approved

    def _dispatch(self, command):
        try:
            return current_domain.process(command, asynchronous=False)
        except ObjectNotFoundError as exc:
            raise OrderNotFound(str(exc), command.order_number) from exc
        except ValidationError as exc:
            raise LedgerConflict(str(exc.messages), command.order_number) from exc
        except ExpectedVersionError as exc:
            return self._after_version_conflict(command, exc)

    def _after_version_conflict(self, command, exc: ExpectedVersionError):
        """Settle a command that lost a concurrent write to the same order."""
        stored = current_domain.repository_for(Order).stored_payment_status(command.order_number)
        if stored == PaymentStatus.COMPLETED:
            logger.info("Concurrent payment update already applied", order_number=command.order_number)
            return LedgerOutcome.REPLAYED.value
        if stored == PaymentStatus.FAILED and isinstance(command, RecordPaymentDecline):
            return LedgerOutcome.DECLINED.value

        logger.error(
            "Payment update lost to a conflicting write",
            order_number=command.order_number,
            payment_status=stored.value if stored else None,
        )
        raise LedgerConflict(str(exc), command.order_number) from exc

    def _reconcile(self, order_number: str) -> None:
        try:
            current_domain.process(ReconcileCart(order_number=order_number), asynchronous=False)
        except Exception:
            # The payment is recorded either way; a later replay retries the cart
            logger.exception("Cart reconciliation failed", order_number=order_number)
