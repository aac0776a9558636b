"""Application tests for PlaceOrder and the commission snapshot."""

import json

import pytest
from ordering.order.order import Order, PaymentStatus
from ordering.order.partners import InMemoryPartnerDirectory, set_partner_directory
from ordering.order.placement import PlaceOrder
from protean import current_domain
from protean.exceptions import ValidationError

ITEMS = [
    {"product_id": "prod-a", "partner_id": "partner-1", "name": "Linen shirt", "price": 30000, "quantity": 1},
    {"product_id": "prod-b", "partner_id": "partner-2", "name": "Canvas tote", "price": 20000, "quantity": 2},
]


@pytest.fixture()
def directory():
    directory = InMemoryPartnerDirectory()
    directory.register("partner-1", "Atelier One", 15.0)
    set_partner_directory(directory)
    return directory


def _place(order_number=None):
    return current_domain.process(
        PlaceOrder(buyer_id="buyer-001", items=json.dumps(ITEMS), order_number=order_number),
        asynchronous=False,
    )


class TestPlaceOrder:
    def test_returns_order_number(self, directory):
        order_number = _place("ORD-PLACE-0001")
        assert order_number == "ORD-PLACE-0001"

    def test_order_is_persisted(self, directory):
        order_number = _place()
        order = current_domain.repository_for(Order).find_by_order_number(order_number)
        assert order.total_amount == 70000
        assert order.payment_status == PaymentStatus.PENDING.value
        assert len(order.partner_orders) == 2

    def test_registered_partner_rate_is_used(self, directory):
        order = current_domain.repository_for(Order).find_by_order_number(_place())
        share = order.partner_order_for("partner-1")
        assert share.commission_rate == 15.0
        assert share.commission == 4500
        assert share.partner_name == "Atelier One"

    def test_unregistered_partner_gets_default_rate(self, directory):
        order = current_domain.repository_for(Order).find_by_order_number(_place())
        share = order.partner_order_for("partner-2")
        assert share.commission_rate == 10.0
        assert share.commission == 4000

    def test_later_rate_change_does_not_reach_existing_orders(self, directory):
        order_number = _place()
        directory.register("partner-1", "Atelier One", 30.0)

        order = current_domain.repository_for(Order).find_by_order_number(order_number)
        assert order.partner_order_for("partner-1").commission == 4500

        newer = current_domain.repository_for(Order).find_by_order_number(_place())
        assert newer.partner_order_for("partner-1").commission == 9000

    def test_duplicate_order_number_is_rejected(self, directory):
        _place("ORD-PLACE-0002")
        with pytest.raises(ValidationError):
            _place("ORD-PLACE-0002")


class TestPartnerDirectory:
    def test_rate_above_maximum_is_rejected(self):
        directory = InMemoryPartnerDirectory()
        with pytest.raises(ValidationError):
            directory.register("partner-1", "Atelier One", 60.0)

    def test_unknown_partner_uses_id_as_name(self):
        terms = InMemoryPartnerDirectory().terms_for("partner-7")
        assert terms.name == "partner-7"
        assert terms.commission_rate == 10.0
