"""Ordering bounded context — Order Ledger, Shopping Cart and Partner Settlement.

Owns the multi-vendor order and its per-partner sub-orders (with commission
captured at checkout), the buyer's shopping cart, and the read-only
settlement rollups partners use for reporting.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
