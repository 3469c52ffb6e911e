from types import SimpleNamespace

import pytest

from shoppers.domain import checkout, shipping, support
from shoppers.domain.support import SenderType, SupportStatus


def rate(**overrides):
    fields = dict(
        rate_type="flat", base_rate=40.0, weight_ranges=[], zones=[],
        value_percentage=None, free_shipping_threshold=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestShippingRates:
    def test_flat_rate(self):
        assert shipping.rate_cost(rate(), weight=2, value=900) == 40.0

    def test_weight_band_picks_matching_rate(self):
        r = rate(rate_type="weight_based", weight_ranges=[
            {"min_weight": 0, "max_weight": 1, "rate": 30},
            {"min_weight": 1.01, "max_weight": 5, "rate": 70},
        ])
        assert shipping.rate_cost(r, weight=0.5, value=100) == 30.0
        assert shipping.rate_cost(r, weight=3, value=100) == 70.0
        assert shipping.rate_cost(r, weight=8, value=100) is None

    def test_value_based(self):
        r = rate(rate_type="value_based", value_percentage=2.5)
        assert shipping.rate_cost(r, weight=1, value=1000) == 25.0

    def test_zone_multiplier(self):
        zones = [{"name": "Metro", "pincodes": ["560001"], "multiplier": 1.5}]
        assert shipping.rate_cost(rate(zones=zones), 1, 100, "560001") == 60.0
        assert shipping.rate_cost(rate(zones=zones), 1, 100, "110001") == 40.0
        distance = rate(rate_type="distance_based", zones=zones)
        assert shipping.rate_cost(distance, 1, 100, "560001") == 60.0

    def test_free_shipping_and_ordering(self):
        assert shipping.is_free(rate(free_shipping_threshold=500), 500)
        assert not shipping.is_free(rate(free_shipping_threshold=500), 499)
        assert not shipping.is_free(rate(), 10_000)

        options = shipping.sort_options([
            {"cost": 20, "isFreeShipping": False},
            {"cost": 90, "isFreeShipping": True},
            {"cost": 10, "isFreeShipping": False},
        ])
        assert [o["cost"] for o in options] == [90, 10, 20]

    def test_weight_range_validation(self):
        assert shipping.validate_weight_ranges([{"min_weight": 0, "max_weight": 1, "rate": 5}])
        assert not shipping.validate_weight_ranges([{"min_weight": 2, "max_weight": 1, "rate": 5}])
        assert not shipping.validate_weight_ranges([{"min_weight": 0}])

    def test_serves_only_active_areas(self):
        provider = SimpleNamespace(service_areas=[
            {"pincodes": ["560001"], "is_active": True},
            {"pincodes": ["110001"], "is_active": False},
        ])
        assert shipping.serves(provider, "560001")
        assert not shipping.serves(provider, "110001")

    def test_generated_identifiers(self):
        tracking = shipping.generate_tracking_number("bd")
        assert tracking.startswith("BD") and len(tracking) == 14
        assert shipping.generate_shipment_id().startswith("SHP")


class TestSupportTransitions:
    def test_agent_reply_resumes_work(self):
        assert support.after_message("waiting_for_customer", SenderType.AGENT) == SupportStatus.IN_PROGRESS

    def test_user_reply_waits_for_customer(self):
        assert support.after_message("in_progress", SenderType.USER) == SupportStatus.WAITING_FOR_CUSTOMER

    @pytest.mark.parametrize("status", ["open", "resolved"])
    def test_other_messages_keep_status(self, status):
        assert support.after_message(status, SenderType.USER) == SupportStatus(status)
        assert support.after_message(status, SenderType.AGENT) == SupportStatus(status)

    def test_assignment_starts_open_tickets(self):
        assert support.after_assignment("open") == SupportStatus.IN_PROGRESS
        assert support.after_assignment("resolved") == SupportStatus.RESOLVED

    def test_closed_ticket_guards(self):
        assert support.can_add_message("closed").error == "Cannot add message to closed ticket"
        assert support.can_close("closed").error == "Ticket is already closed"
        assert support.can_reopen("closed")
        assert support.can_reopen("open").error == "Only closed tickets can be reopened"
        assert support.can_add_message("resolved")

    def test_ticket_id_and_labels(self):
        assert support.generate_ticket_id().startswith("TKT")
        assert support.category_label(support.SupportCategory.RETURN_REFUND) == "Return Refund"


class TestCheckoutAmounts:
    def test_small_order_pays_delivery(self):
        amounts = checkout.order_amounts(subtotal=600, discounted=400)
        assert amounts.discount == 200.0
        assert amounts.delivery_fee == 50.0
        assert amounts.platform_fee == 20.0
        assert amounts.total_amount == 470.0

    def test_free_delivery_and_coupon(self):
        amounts = checkout.order_amounts(subtotal=1600, discounted=1000, coupon_discount=100)
        assert amounts.delivery_fee == 0.0
        assert amounts.coupon_discount == 100.0
        assert amounts.total_amount == 920.0

    def test_coupon_never_exceeds_goods(self):
        amounts = checkout.order_amounts(subtotal=300, discounted=300, coupon_discount=1000)
        assert amounts.coupon_discount == 300.0
        assert amounts.total_amount == 70.0

    def test_order_number_format(self):
        number = checkout.generate_order_number(7)
        assert number.startswith("ORD") and number.endswith("0007")
