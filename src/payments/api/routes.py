"""FastAPI routes for payments — the gateway callback, payment window and cancellation."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, PaymentStatus
from ordering.utils.logging import add_context, clear_context
from payments.api.dependencies import (
    get_callback_processor,
    get_gateway_settings,
    get_payment_canceller,
)
from payments.api.schemas import (
    CancelPaymentRequest,
    CancelPaymentResponse,
    PaymentWindowRequest,
    PaymentWindowResponse,
)
from payments.callback import PaymentCallbackProcessor
from payments.cancellation import PaymentCanceller
from payments.gateway.auth_request import build_auth_request
from payments.gateway.port import PaymentCallback
from payments.gateway.settings import GatewaySettings
from payments.pages import render_page

logger = structlog.get_logger(__name__)

payment_router = APIRouter(prefix="/payments", tags=["payments"])


def _process_callback(processor: PaymentCallbackProcessor, callback: PaymentCallback):
    """Run the callback flow on a worker thread; the approval call blocks on the network."""
    with ordering.domain_context():
        add_context(order_number=callback.order_number, transaction_id=callback.transaction_id)
        try:
            return processor.process(callback)
        finally:
            clear_context()


@payment_router.post("/result", response_class=HTMLResponse)
async def payment_result(
    request: Request,
    processor: PaymentCallbackProcessor = Depends(get_callback_processor),
    settings: GatewaySettings = Depends(get_gateway_settings),
) -> HTMLResponse:
    """Gateway callback after the payer authenticates. Always answers 200 with a redirect page."""
    form = await request.form()
    callback = PaymentCallback.from_form(form)
    outcome = await run_in_threadpool(_process_callback, processor, callback)
    return HTMLResponse(
        content=render_page(outcome.page, outcome.context(), settings.site_url),
        status_code=200,
    )


@payment_router.post("/request", response_model=PaymentWindowResponse)
async def request_payment(
    body: PaymentWindowRequest,
    settings: GatewaySettings = Depends(get_gateway_settings),
) -> PaymentWindowResponse:
    """Signed parameters for opening the gateway's payment window for an order."""
    order = current_domain.repository_for(Order).find_by_order_number(body.order_number)
    if order.payment_status != PaymentStatus.PENDING.value:
        raise HTTPException(status_code=409, detail=f"Order payment is already {order.payment_status}")

    try:
        form_data = build_auth_request(
            settings,
            order_number=order.order_number,
            amount=order.total_amount,
            goods_name=body.goods_name,
            buyer_name=body.buyer_name,
            buyer_email=body.buyer_email,
            buyer_tel=body.buyer_tel,
            pay_method=body.pay_method,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info("Payment window requested", order_number=order.order_number, amount=order.total_amount)
    return PaymentWindowResponse(auth_url=settings.auth_url, form_data=form_data)


@payment_router.post("/cancel", response_model=CancelPaymentResponse)
def cancel_payment(
    body: CancelPaymentRequest,
    canceller: PaymentCanceller = Depends(get_payment_canceller),
) -> CancelPaymentResponse:
    """Cancel a captured payment in full and cancel the order with it.

    A plain function, so FastAPI runs it on its threadpool while the gateway call blocks.
    """
    with ordering.domain_context():
        result = canceller.cancel(body.order_number, body.reason)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.result_message or "Payment cancellation failed")
    return CancelPaymentResponse(
        success=True,
        result_code=result.result_code,
        result_message=result.result_message,
    )
