"""Gateway transport factory.

Provides get_transport() / set_transport() to swap implementations:
- RequestsTransport for talking to the real gateway
- FakeTransport for development and testing

GATEWAY_TRANSPORT=fake selects the fake by default.
"""

import os

from payments.gateway.fake_adapter import FakeTransport
from payments.gateway.http_adapter import RequestsTransport
from payments.gateway.port import GatewayTransport

_current_transport: GatewayTransport | None = None


def get_transport() -> GatewayTransport:
    """Return the current gateway transport. Defaults to RequestsTransport."""
    global _current_transport
    if _current_transport is None:
        if os.environ.get("GATEWAY_TRANSPORT", "http") == "fake":
            _current_transport = FakeTransport()
        else:
            _current_transport = RequestsTransport()
    return _current_transport


def set_transport(transport: GatewayTransport) -> None:
    """Override the active gateway transport (useful for tests)."""
    global _current_transport
    _current_transport = transport


def reset_transport() -> None:
    """Reset to the default transport."""
    global _current_transport
    _current_transport = None
