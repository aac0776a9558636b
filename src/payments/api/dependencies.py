"""FastAPI dependencies wiring the gateway collaborators per request."""

from fastapi import Depends

from payments.callback import PaymentCallbackProcessor
from payments.cancellation import PaymentCanceller
from payments.gateway import get_transport
from payments.gateway.approval import ApprovalRequester
from payments.gateway.settings import GatewaySettings


def get_gateway_settings() -> GatewaySettings:
    return GatewaySettings.from_env()


def get_approval_requester(settings: GatewaySettings = Depends(get_gateway_settings)) -> ApprovalRequester:
    return ApprovalRequester(get_transport(), settings)


def get_callback_processor(
    requester: ApprovalRequester = Depends(get_approval_requester),
) -> PaymentCallbackProcessor:
    return PaymentCallbackProcessor(requester)


def get_payment_canceller(settings: GatewaySettings = Depends(get_gateway_settings)) -> PaymentCanceller:
    return PaymentCanceller(get_transport(), settings)
