"""Tests for the invoice arithmetic in app.services.billing."""
from decimal import Decimal

import pytest

from app.services.billing import (
    TRANSPORT_LABEL,
    BillingError,
    charge_lines,
    clamp_payment,
    compute_totals,
    derive_tax_defaults,
    extras_from_store,
    extras_to_store,
    invoice_status,
    resolve_tax_defaults,
    split_transport_row,
    standard_extra_costs,
    validate_charges,
    validate_payment,
)


class TestComputeTotals:

    def test_worked_example(self):
        totals = compute_totals(100, [20, 5], discount=10, tax_percent=10)
        assert totals.subtotal == Decimal("125")
        assert totals.taxable == Decimal("115")
        assert totals.tax_amount == Decimal("11.5")
        assert totals.total == Decimal("126.5")
        assert totals.balance == Decimal("126.5")

    def test_discount_never_makes_taxable_negative(self):
        totals = compute_totals(50, [10], discount=500, tax_percent=10)
        assert totals.taxable == 0
        assert totals.tax_amount == 0
        assert totals.total == 0

    def test_tax_rounds_to_thousandths_half_up(self):
        # 0.333 * 15% = 0.04995 -> 0.050
        totals = compute_totals("0.333", [], tax_percent=15)
        assert totals.tax_amount == Decimal("0.050")
        assert totals.total == Decimal("0.383")

    @pytest.mark.parametrize(
        "base, extras, discount, tax",
        [
            (0, [], 0, 0),
            (1000, [0, 0, 0, 0], 0, 18),
            ("12.345", ["0.5", "7.125"], "3.3", 10),
            (250, [40], 300, 10),
        ],
    )
    def test_total_matches_closed_form(self, base, extras, discount, tax):
        subtotal = Decimal(str(base)) + sum(Decimal(str(e)) for e in extras)
        taxable = max(Decimal("0"), subtotal - Decimal(str(discount)))
        expected = (taxable * (1 + Decimal(tax) / 100)).quantize(Decimal("0.001"))

        assert compute_totals(base, extras, discount, tax).total == expected

    def test_paid_is_capped_and_balance_never_negative(self):
        totals = compute_totals(100, [], tax_percent=10, paid_amount=500)
        assert totals.paid_amount == Decimal("110")
        assert totals.balance == 0

    def test_partial_payment_balance(self):
        totals = compute_totals(100, [20, 5], 10, 10, paid_amount=100)
        assert totals.balance == Decimal("26.5")

    def test_float_amounts_keep_their_short_value(self):
        totals = compute_totals(0.1, [0.2], tax_percent=0)
        assert totals.total == Decimal("0.3")

    def test_non_numeric_amount_is_rejected(self):
        with pytest.raises(BillingError):
            compute_totals("ten", [])


class TestTaxDefaults:

    @pytest.mark.parametrize("country", ["India", "INDIA", "South india branch"])
    def test_india_gets_gst_and_rupees(self, country):
        assert derive_tax_defaults(country) == (Decimal("18"), "INR")

    @pytest.mark.parametrize("country", ["Bahrain", "", None, "Saudi Arabia"])
    def test_everything_else_is_bahrain(self, country):
        assert derive_tax_defaults(country) == (Decimal("10"), "BHD")

    def test_explicit_values_win(self):
        assert resolve_tax_defaults("India", tax_percent=5, currency="USD") == (Decimal("5"), "USD")

    def test_only_missing_values_are_derived(self):
        assert resolve_tax_defaults("India", tax_percent=None, currency="BHD") == (Decimal("18"), "BHD")
        assert resolve_tax_defaults("India", tax_percent=0, currency=None) == (Decimal("0"), "INR")


class TestValidation:

    def test_charges_are_normalized(self):
        rows = validate_charges([{"label": "  Port fee ", "amount": "12.5"}], discount=0, tax_percent=10)
        assert rows == [{"label": "Port fee", "amount": Decimal("12.500")}]

    @pytest.mark.parametrize(
        "rows, discount, tax, message",
        [
            ([{"label": "", "amount": 1}], 0, 0, "label"),
            ([{"label": "   ", "amount": 1}], 0, 0, "label"),
            ([{"label": "Port", "amount": -1}], 0, 0, "negative"),
            ([{"label": "Port", "amount": "abc"}], 0, 0, "numeric"),
            ([{"label": "Port", "amount": 1}], -5, 0, "Discount"),
            ([{"label": "Port", "amount": 1}], 0, -1, "Tax"),
        ],
    )
    def test_bad_charges_are_rejected(self, rows, discount, tax, message):
        with pytest.raises(BillingError, match=message):
            validate_charges(rows, discount, tax)

    @pytest.mark.parametrize("amount", [0, -10, None, "", "abc", True])
    def test_non_positive_payments_are_rejected(self, amount):
        with pytest.raises(BillingError, match="positive"):
            validate_payment(amount)

    def test_payment_amount_is_rounded(self):
        assert validate_payment("10.0005") == Decimal("10.001")


class TestPayments:

    def test_payment_is_capped_at_total(self):
        assert clamp_payment(100, 50, Decimal("126.5")) == Decimal("126.5")

    def test_payment_never_decreases_paid(self):
        # total was lowered below what had already been paid
        assert clamp_payment(80, 10, 50) == Decimal("80")

    def test_status_flips_to_paid_exactly_at_total(self):
        assert invoice_status(Decimal("126.499"), Decimal("126.5")) == "billed"
        assert invoice_status(Decimal("126.5"), Decimal("126.5")) == "paid"

    def test_zero_total_is_not_paid(self):
        assert invoice_status(0, 0) == "billed"
        assert invoice_status(0, 0, "draft") == "draft"

    def test_paid_invoice_whose_total_grew_is_billed_again(self):
        assert invoice_status(100, 150, "paid") == "billed"


class TestChargeRows:

    def test_standard_extras_start_at_zero(self):
        rows = standard_extra_costs()
        assert [r["label"] for r in rows] == [
            "Service Charge - Clearance Only",
            "Health Charges - MOH Paid",
            "BAS Charges - Port Paid",
            "Service - Transport & Delivery Charges",
        ]
        assert all(r["amount"] == 0 for r in rows)

    def test_transport_row_becomes_base_cost(self):
        base, extras = split_transport_row([
            {"label": TRANSPORT_LABEL, "amount": Decimal("250")},
            {"label": "Port", "amount": Decimal("5")},
        ])
        assert base == Decimal("250")
        assert extras == [{"label": "Port", "amount": Decimal("5")}]

    def test_charge_lines_lead_with_transport(self):
        lines = charge_lines(Decimal("100"), [{"label": "Port", "amount": "5"}])
        assert lines[0] == {"label": TRANSPORT_LABEL, "amount": Decimal("100.000")}
        assert lines[1]["amount"] == Decimal("5.000")

    def test_stored_extras_keep_exact_thousandths(self):
        stored = extras_to_store([{"label": "Port", "amount": Decimal("0.125")}])
        assert stored == [{"label": "Port", "amount": "0.125"}]
        assert extras_from_store(stored) == [{"label": "Port", "amount": Decimal("0.125")}]
        assert extras_from_store(None) == []
