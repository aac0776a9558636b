"""FastAPI routes for the Ordering domain — orders, carts and partner settlement."""

import json
from dataclasses import asdict

from fastapi import APIRouter, Query
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddToCartRequest,
    AdvanceOrderRequest,
    AdvancePartnerOrderRequest,
    CancelOrderRequest,
    CartItemSchema,
    CartResponse,
    GrowthSchema,
    OrderItemSchema,
    OrderNumberResponse,
    OrderResponse,
    PartnerOrderSchema,
    PartnerSettlementResponse,
    PayoutResponse,
    PlaceOrderRequest,
    SettlementSummarySchema,
    SettlePartnerRequest,
    StatusResponse,
    UpdateCartItemRequest,
)
from ordering.cart.cart import Cart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartItem
from ordering.order.cancellation import CancelOrder
from ordering.order.fulfillment import AdvanceOrderStatus, AdvancePartnerOrder
from ordering.order.order import Order
from ordering.order.placement import PlaceOrder
from ordering.settlement.aggregator import Period, partner_dashboard
from ordering.settlement.payout import SettlePartner


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_number=order.order_number,
        buyer_id=str(order.buyer_id),
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        transaction_id=order.transaction_id,
        total_amount=order.total_amount,
        items=[
            OrderItemSchema(
                product_id=str(item.product_id),
                partner_id=str(item.partner_id),
                name=item.name,
                price=item.price,
                quantity=item.quantity,
            )
            for item in order.items
        ],
        partner_orders=[
            PartnerOrderSchema(
                partner_id=str(po.partner_id),
                partner_name=po.partner_name,
                subtotal=po.subtotal,
                commission_rate=po.commission_rate,
                commission=po.commission,
                status=po.status,
                tracking_number=po.tracking_number,
                settled=po.is_settled,
            )
            for po in order.partner_orders
        ],
        created_at=order.created_at,
        paid_at=order.paid_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderNumberResponse)
async def place_order(body: PlaceOrderRequest) -> OrderNumberResponse:
    command = PlaceOrder(
        buyer_id=body.buyer_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        payment_method=body.payment_method,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderNumberResponse(order_number=result)


@order_router.get("/{order_number}", response_model=OrderResponse)
async def get_order(order_number: str) -> OrderResponse:
    order = current_domain.repository_for(Order).find_by_order_number(order_number)
    return _order_response(order)


@order_router.put("/{order_number}/status", response_model=StatusResponse)
async def advance_order(order_number: str, body: AdvanceOrderRequest) -> StatusResponse:
    command = AdvanceOrderStatus(order_number=order_number, status=body.status)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_number}/partners/{partner_id}/status", response_model=StatusResponse)
async def advance_partner_order(
    order_number: str, partner_id: str, body: AdvancePartnerOrderRequest
) -> StatusResponse:
    command = AdvancePartnerOrder(
        order_number=order_number,
        partner_id=partner_id,
        status=body.status,
        tracking_number=body.tracking_number,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_number}/cancel", response_model=StatusResponse)
async def cancel_order(order_number: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(
        order_number=order_number,
        reason=body.reason,
        cancelled_by=body.cancelled_by,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{buyer_id}", response_model=CartResponse)
async def get_cart(buyer_id: str) -> CartResponse:
    cart = current_domain.repository_for(Cart).find_by_buyer(buyer_id)
    if cart is None:
        return CartResponse(buyer_id=buyer_id, items=[], total_items=0, total_amount=0)
    return CartResponse(
        buyer_id=str(cart.buyer_id),
        items=[
            CartItemSchema(product_id=str(item.product_id), quantity=item.quantity, price=item.price)
            for item in cart.items
        ],
        total_items=cart.total_items,
        total_amount=cart.total_amount,
    )


@cart_router.post("/{buyer_id}/items", response_model=StatusResponse)
async def add_cart_item(buyer_id: str, body: AddToCartRequest) -> StatusResponse:
    command = AddToCart(
        buyer_id=buyer_id,
        product_id=body.product_id,
        quantity=body.quantity,
        price=body.price,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.put("/{buyer_id}/items/{product_id}", response_model=StatusResponse)
async def update_cart_item(buyer_id: str, product_id: str, body: UpdateCartItemRequest) -> StatusResponse:
    command = UpdateCartItem(buyer_id=buyer_id, product_id=product_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{buyer_id}/items/{product_id}", response_model=StatusResponse)
async def remove_cart_item(buyer_id: str, product_id: str) -> StatusResponse:
    command = RemoveFromCart(buyer_id=buyer_id, product_id=product_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Partner Settlement Router
# ---------------------------------------------------------------------------
partner_router = APIRouter(prefix="/partners", tags=["partners"])


def _summary_schema(summary) -> SettlementSummarySchema:
    return SettlementSummarySchema(
        start=summary.start,
        end=summary.end,
        revenue=summary.revenue,
        net_revenue=summary.net_revenue,
        order_count=summary.order_count,
        average_order_value=summary.average_order_value,
        commission_total=summary.commission_total,
        pending_commission=summary.pending_commission,
        realized_commission=summary.realized_commission,
    )


@partner_router.get("/{partner_id}/settlement", response_model=PartnerSettlementResponse)
async def partner_settlement(partner_id: str, period: Period = Query(Period.MONTH)) -> PartnerSettlementResponse:
    dashboard = partner_dashboard(partner_id, period)
    comparison = dashboard.comparison
    return PartnerSettlementResponse(
        partner_id=dashboard.partner_id,
        period=dashboard.period.value,
        current=_summary_schema(comparison.current),
        previous=_summary_schema(comparison.previous),
        revenue_growth=GrowthSchema(**asdict(comparison.revenue_growth)),
        order_growth=GrowthSchema(**asdict(comparison.order_growth)),
        commission_growth=GrowthSchema(**asdict(comparison.commission_growth)),
        daily_revenue=[asdict(day) for day in dashboard.daily_revenue],
        top_products=[asdict(product) for product in dashboard.top_products],
    )


@partner_router.post("/{partner_id}/payouts", response_model=PayoutResponse)
async def settle_partner(partner_id: str, body: SettlePartnerRequest) -> PayoutResponse:
    command = SettlePartner(partner_id=partner_id, placed_before=body.placed_before)
    result = current_domain.process(command, asynchronous=False)
    return PayoutResponse(**result)
