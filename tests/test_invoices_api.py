"""Tests for the invoices API endpoints (/api/invoices)."""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest

INVOICES = "/api/invoices"
STANDARD_EXTRAS = [
    "Service Charge - Clearance Only",
    "Health Charges - MOH Paid",
    "BAS Charges - Port Paid",
    "Service - Transport & Delivery Charges",
]


def set_charges(client, invoice_id, **body):
    return client.put(f"{INVOICES}/{invoice_id}/extra-costs", json=body)


def pay(client, invoice_id, amount):
    return client.put(f"{INVOICES}/{invoice_id}/pay", json={"amount": amount})


class TestCreateFromJob:

    def test_seeds_invoice_from_bahrain_job(self, make_job, make_invoice):
        job = make_job(cost=100, client_name="Gulf Traders", route_to="Sitra")
        invoice = make_invoice(job)

        assert invoice["invoice_number"] == f"WR-{datetime.now().year}-0001"
        assert invoice["status"] == "billed"
        assert invoice["client_name"] == "Gulf Traders"
        assert invoice["client_address"] == "Sitra"
        assert invoice["base_cost"] == 100
        assert invoice["tax_percent"] == 10
        assert invoice["currency"] == "BHD"
        assert [row["label"] for row in invoice["extra_costs"]] == STANDARD_EXTRAS
        assert invoice["charge_lines"][0] == {"label": "Transport service charges", "amount": 100}
        assert invoice["final_cost"] == 100
        assert invoice["final_sale"] == 110
        assert invoice["totals"]["balance"] == 110
        assert invoice["job"]["id"] == job["id"]

    def test_india_job_defaults_to_gst_in_rupees(self, make_job, make_invoice):
        invoice = make_invoice(make_job(country="India", cost=1000))
        assert invoice["tax_percent"] == 18
        assert invoice["currency"] == "INR"
        assert invoice["final_sale"] == 1180

    def test_explicit_tax_and_currency_are_kept(self, make_job, make_invoice):
        invoice = make_invoice(make_job(country="India"), tax_percent=5, currency="USD", draft=True)
        assert invoice["tax_percent"] == 5
        assert invoice["currency"] == "USD"
        assert invoice["status"] == "draft"

    def test_walk_in_customer_when_job_has_no_client(self, make_job, make_invoice):
        invoice = make_invoice(make_job(client_name=None))
        assert invoice["client_name"] == "Walk-in Customer"

    def test_missing_job_is_404(self, auth_client):
        response = auth_client.post(f"{INVOICES}/from-job/999")
        assert response.status_code == 404
        assert response.json()["message"] == "Job not found"

    def test_numbers_follow_highest_existing(self, auth_client, make_invoice):
        first = make_invoice()
        make_invoice()
        make_invoice()
        auth_client.delete(f"{INVOICES}/{first['id']}")

        assert make_invoice()["invoice_number"].endswith("-0004")


class TestListAndRead:

    def test_list_summaries(self, auth_client, make_job, make_invoice):
        job = make_job(job_number="TRK-9")
        invoice = make_invoice(job)

        response = auth_client.get(INVOICES)
        assert response.status_code == 200
        (summary,) = response.json()
        assert summary["id"] == invoice["id"]
        assert summary["job_number"] == "TRK-9"
        assert summary["total"] == 110
        assert summary["paid_amount"] == 0
        assert summary["balance"] == 110
        assert summary["country"] == "Bahrain"

    def test_full_invoice_missing_is_404(self, auth_client):
        assert auth_client.get(f"{INVOICES}/999/full").status_code == 404


class TestCharges:

    def test_worked_example(self, auth_client, make_job, make_invoice):
        invoice = make_invoice(make_job(cost=100))
        response = set_charges(
            auth_client, invoice["id"],
            extra_costs=[{"label": "Customs", "amount": 20}, {"label": "Port", "amount": 5}],
            discount=10,
            tax_percent=10,
        )
        assert response.status_code == 200
        assert response.json()["total"] == 126.5
        assert response.json()["balance"] == 126.5

        full = auth_client.get(f"{INVOICES}/{invoice['id']}/full").json()
        assert full["final_cost"] == 125
        assert full["final_sale"] == 126.5
        assert full["totals"]["taxable"] == 115
        assert full["totals"]["tax_amount"] == 11.5

    def test_transport_row_edits_base_cost(self, auth_client, make_invoice):
        invoice = make_invoice()
        set_charges(
            auth_client, invoice["id"],
            extra_costs=[
                {"label": "Transport service charges", "amount": 250},
                {"label": "Health Charges - MOH Paid", "amount": 15},
            ],
            tax_percent=0,
        )

        full = auth_client.get(f"{INVOICES}/{invoice['id']}/full").json()
        assert full["base_cost"] == 250
        assert full["extra_costs"] == [{"label": "Health Charges - MOH Paid", "amount": 15}]
        assert full["final_sale"] == 265

    def test_tax_percent_is_kept_when_omitted(self, auth_client, make_job, make_invoice):
        invoice = make_invoice(make_job(country="India", cost=100))
        response = set_charges(auth_client, invoice["id"], extra_costs=[])
        assert response.json()["tax_percent"] == 18
        assert response.json()["total"] == 118

    @pytest.mark.parametrize(
        "body, message",
        [
            ({"extra_costs": [{"label": "", "amount": 5}]}, "label"),
            ({"extra_costs": [{"label": "Port", "amount": -5}]}, "negative"),
            ({"extra_costs": [{"label": "Port", "amount": "five"}]}, "numeric"),
            ({"extra_costs": [], "discount": -1}, "Discount"),
            ({"extra_costs": [], "tax_percent": -1}, "Tax"),
            ({"extra_costs": [], "base_cost": -1}, "Base cost"),
        ],
    )
    def test_bad_input_is_400(self, auth_client, make_invoice, body, message):
        invoice = make_invoice()
        response = set_charges(auth_client, invoice["id"], **body)
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert message in response.json()["message"]

    def test_extra_costs_must_be_a_list(self, auth_client, make_invoice):
        invoice = make_invoice()
        response = auth_client.put(f"{INVOICES}/{invoice['id']}/extra-costs", json={"extra_costs": "lots"})
        assert response.status_code == 422

    def test_missing_invoice_is_404(self, auth_client):
        assert set_charges(auth_client, 999, extra_costs=[]).status_code == 404

    def test_lowering_total_caps_paid_and_raising_reopens(self, auth_client, make_job, make_invoice):
        invoice = make_invoice(make_job(cost=100))
        pay(auth_client, invoice["id"], 110)

        response = set_charges(auth_client, invoice["id"], extra_costs=[], discount=50)
        data = response.json()
        assert data["total"] == 55
        assert data["paid_amount"] == 55
        assert data["status"] == "paid"

        response = set_charges(
            auth_client, invoice["id"],
            extra_costs=[{"label": "Port", "amount": 100}],
            discount=50,
        )
        data = response.json()
        assert data["total"] == 165
        assert data["paid_amount"] == 55
        assert data["balance"] == 110
        assert data["status"] == "billed"

    def test_fractional_payments_reaching_new_total_mark_paid(self, auth_client, make_job, make_invoice):
        invoice = make_invoice(make_job(cost=1), tax_percent=0)
        pay(auth_client, invoice["id"], "0.7")
        pay(auth_client, invoice["id"], "0.1")

        data = set_charges(auth_client, invoice["id"], extra_costs=[], base_cost="0.8").json()
        assert data["total"] == 0.8
        assert data["paid_amount"] == 0.8
        assert data["balance"] == 0
        assert data["status"] == "paid"


class TestPayments:

    def test_partial_then_overpayment_is_capped(self, auth_client, make_job, make_invoice):
        invoice = make_invoice(make_job(cost=100))

        response = pay(auth_client, invoice["id"], 60)
        assert response.status_code == 200
        data = response.json()
        assert data["paid_amount"] == 60
        assert data["balance"] == 50
        assert data["status"] == "billed"

        data = pay(auth_client, invoice["id"], 500).json()
        assert data["paid_amount"] == 110
        assert data["balance"] == 0
        assert data["status"] == "paid"

    def test_exact_payment_marks_paid(self, auth_client, make_invoice):
        invoice = make_invoice()
        assert pay(auth_client, invoice["id"], "110").json()["status"] == "paid"

    def test_payment_on_paid_invoice_changes_nothing(self, auth_client, make_invoice):
        invoice = make_invoice()
        pay(auth_client, invoice["id"], 110)
        data = pay(auth_client, invoice["id"], 10).json()
        assert data["paid_amount"] == 110
        assert data["balance"] == 0

    @pytest.mark.parametrize("amount", [0, -5, "abc", None])
    def test_non_positive_amount_is_400(self, auth_client, make_invoice, amount):
        invoice = make_invoice()
        response = pay(auth_client, invoice["id"], amount)
        assert response.status_code == 400
        assert response.json()["message"] == "Payment amount must be a positive number"

    def test_missing_invoice_is_404(self, auth_client):
        assert pay(auth_client, 999, 10).status_code == 404

    def test_fractional_split_payment_reaching_total_marks_paid(self, auth_client, make_job, make_invoice):
        invoice = make_invoice(make_job(cost=0.8), tax_percent=0)

        data = pay(auth_client, invoice["id"], "0.7").json()
        assert data["status"] == "billed"

        data = pay(auth_client, invoice["id"], "0.1").json()
        assert data["paid_amount"] == 0.8
        assert data["balance"] == 0
        assert data["status"] == "paid"

        full = auth_client.get(f"{INVOICES}/{invoice['id']}/full").json()
        assert full["paid_amount"] == full["final_sale"] == 0.8

    def test_concurrent_payments_are_all_applied(self, auth_client, make_job, make_invoice):
        invoice = make_invoice(make_job(cost=100))

        with ThreadPoolExecutor(max_workers=8) as pool:
            responses = list(pool.map(lambda _: pay(auth_client, invoice["id"], 10), range(10)))

        assert all(r.status_code == 200 for r in responses)
        full = auth_client.get(f"{INVOICES}/{invoice['id']}/full").json()
        assert full["paid_amount"] == 100
        assert full["totals"]["balance"] == 10
        assert full["status"] == "billed"

    def test_concurrent_overpayments_stop_at_total(self, auth_client, make_job, make_invoice):
        invoice = make_invoice(make_job(cost=100))

        with ThreadPoolExecutor(max_workers=8) as pool:
            responses = list(pool.map(lambda _: pay(auth_client, invoice["id"], "15.5"), range(8)))

        assert all(r.status_code == 200 for r in responses)
        full = auth_client.get(f"{INVOICES}/{invoice['id']}/full").json()
        assert full["paid_amount"] == 110
        assert full["totals"]["balance"] == 0
        assert full["status"] == "paid"


class TestDeleteAndPdf:

    def test_delete_invoice(self, auth_client, make_invoice):
        invoice = make_invoice()
        response = auth_client.delete(f"{INVOICES}/{invoice['id']}")
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert auth_client.get(f"{INVOICES}/{invoice['id']}/full").status_code == 404

    def test_delete_missing_invoice_is_404(self, auth_client):
        assert auth_client.delete(f"{INVOICES}/999").status_code == 404

    def test_pdf_is_streamed(self, auth_client, make_invoice):
        invoice = make_invoice()
        response = auth_client.get(f"{INVOICES}/{invoice['id']}/pdf")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert f"invoice-{invoice['invoice_number']}.pdf" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    def test_pdf_for_missing_invoice_is_404(self, auth_client):
        assert auth_client.get(f"{INVOICES}/999/pdf").status_code == 404

    def test_pdf_requires_token(self, client):
        assert client.get(f"{INVOICES}/1/pdf").status_code == 401
