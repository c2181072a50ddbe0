"""
Tests for the reference rows the materializer reads: business credit cards
(billing day drives card payment due dates) and managed products (stock
and unit cost for daily entries).
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_modules.ledger.models import BusinessCreditCard


class TestBusinessCreditCard:
    def test_dto_carries_billing_day(self, credit_card, business_id):
        card = credit_card.to_dto()
        assert card.billing_day == 10
        assert card.business_id == business_id
        assert card.last_four_digits == "4242"
        assert card.is_active is True

    @pytest.mark.parametrize("billing_day", [0, 32, -1])
    def test_billing_day_out_of_range_rejected(self, billing_day):
        with pytest.raises(ValueError, match="billing_day"):
            BusinessCreditCard(
                id=uuid4(), business_id=uuid4(), card_name="Amex", billing_day=billing_day,
            )

    @pytest.mark.parametrize("billing_day", [1, 28, 31])
    def test_billing_day_bounds_accepted(self, billing_day):
        card = BusinessCreditCard(
            id=uuid4(), business_id=uuid4(), card_name="Amex", billing_day=billing_day,
        )
        assert card.billing_day == billing_day


class TestManagedProduct:
    def test_dto_carries_cost_and_stock(self, managed_product):
        product = managed_product.to_dto()
        assert product.name == "Coffee beans"
        assert product.unit == "kg"
        assert product.unit_cost == Decimal("42.50")
        assert product.current_stock == Decimal("12")
