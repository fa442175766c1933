"""API tests for bills, payments and the patient ledger."""

import pytest

from clinic.core.config import settings

ITEMS = [
    {
        "item_type": "CONSULTATION",
        "item_name": "Consultation",
        "unit_price": "500",
    },
    {
        "item_type": "MEDICINE",
        "item_name": "Triphala Churna",
        "quantity": 2,
        "unit_price": "150",
        "tax_percentage": "5",
        "discount_amount": "10",
    },
]


def _create_bill(client, patient_id, **extra):
    body = {"patient_id": patient_id, "items": ITEMS, "discount_amount": "20"}
    body.update(extra)
    resp = client.post("/api/billing/bills", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _pay(client, bill_id, amount):
    return client.post("/api/billing/payments",
                       json={"bill_id": bill_id, "amount": amount,
                             "payment_method": "UPI"})


def _ledger(client, patient_id):
    resp = client.get(f"/api/billing/ledger/{patient_id}")
    assert resp.status_code == 200
    return resp.json()


class TestCreateBill:

    def test_totals_and_initial_state(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        assert bill["bill_number"].startswith("INV")
        assert bill["status"] == "DRAFT"
        assert bill["subtotal"] == "800.00"
        assert bill["tax_amount"] == "15.00"
        assert bill["discount_amount"] == "30.00"
        assert bill["total_amount"] == "785.00"
        assert bill["paid_amount"] == "0.00"
        assert bill["balance_amount"] == "785.00"
        assert len(bill["items"]) == 2

    def test_creation_is_not_ledgered_by_default(self, owner_client, patient):
        _create_bill(owner_client, patient.id)
        ledger = _ledger(owner_client, patient.id)
        assert ledger["entries"] == []
        assert ledger["balance"] == "0.00"

    def test_creation_ledgered_when_flag_set(self, owner_client, patient,
                                             monkeypatch):
        monkeypatch.setattr(settings, "BILLING_LEDGER_ON_CREATE", True)
        bill = _create_bill(owner_client, patient.id)
        ledger = _ledger(owner_client, patient.id)
        assert [e["transaction_type"] for e in ledger["entries"]] == ["BILL"]
        assert ledger["entries"][0]["debit"] == bill["total_amount"]
        assert ledger["balance"] == "785.00"

    def test_items_required(self, owner_client, patient):
        resp = owner_client.post("/api/billing/bills",
                                 json={"patient_id": patient.id, "items": []})
        assert resp.status_code == 400
        assert resp.json()["error"] == "items: Bill items are required"

    def test_unknown_patient(self, owner_client, patient):
        resp = owner_client.post("/api/billing/bills",
                                 json={"patient_id": 999, "items": ITEMS})
        assert resp.status_code == 404
        assert resp.json()["error"] == "Patient not found"

    def test_discount_larger_than_bill_rejected(self, owner_client, patient):
        resp = owner_client.post("/api/billing/bills",
                                 json={"patient_id": patient.id,
                                       "items": ITEMS,
                                       "discount_amount": "5000"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Discount exceeds bill amount"

    def test_staff_may_bill(self, staff_client, patient):
        _create_bill(staff_client, patient.id)

    def test_patient_login_cannot_bill(self, portal_client, patient):
        resp = portal_client.post("/api/billing/bills",
                                  json={"patient_id": patient.id, "items": ITEMS})
        assert resp.status_code == 403


class TestPayments:

    def test_partial_then_paid(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id, status="PENDING")

        first = _pay(owner_client, bill["id"], "300")
        assert first.status_code == 201, first.text
        body = first.json()
        assert body["payment"]["payment_number"].startswith("PAY")
        assert body["bill"]["status"] == "PARTIAL"
        assert body["bill"]["paid_amount"] == "300.00"
        assert body["bill"]["balance_amount"] == "485.00"

        second = _pay(owner_client, bill["id"], "485")
        assert second.status_code == 201
        assert second.json()["bill"]["status"] == "PAID"
        assert second.json()["bill"]["balance_amount"] == "0.00"

    def test_ledger_running_balance(self, owner_client, patient, monkeypatch):
        monkeypatch.setattr(settings, "BILLING_LEDGER_ON_CREATE", True)
        bill = _create_bill(owner_client, patient.id)
        _pay(owner_client, bill["id"], "300")
        _pay(owner_client, bill["id"], "85")

        entries = _ledger(owner_client, patient.id)["entries"]
        assert [e["transaction_type"] for e in entries] == [
            "BILL", "PAYMENT", "PAYMENT"
        ]
        assert [e["balance"] for e in entries] == ["785.00", "485.00", "400.00"]

    def test_overpayment_rejected(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        entries_before = _ledger(owner_client, patient.id)["entries"]
        resp = _pay(owner_client, bill["id"], "785.01")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Payment amount exceeds outstanding balance"

        after = owner_client.get(f"/api/billing/bills/{bill['id']}").json()
        assert after["paid_amount"] == "0.00"
        assert after["balance_amount"] == "785.00"
        assert after["status"] == "DRAFT"
        assert after["payments"] == []

        payments = owner_client.get("/api/billing/payments",
                                    params={"bill_id": bill["id"]}).json()
        assert payments["payments"] == []
        assert _ledger(owner_client, patient.id)["entries"] == entries_before

    def test_non_positive_amount_rejected(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        resp = _pay(owner_client, bill["id"], "0")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid payment amount"

    def test_payment_on_cancelled_bill_rejected(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        owner_client.delete(f"/api/billing/bills/{bill['id']}")
        resp = _pay(owner_client, bill["id"], "10")
        assert resp.status_code == 400

    def test_list_payments_totals(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        _pay(owner_client, bill["id"], "100")
        _pay(owner_client, bill["id"], "50.50")
        resp = owner_client.get("/api/billing/payments",
                                params={"bill_id": bill["id"]})
        assert resp.status_code == 200
        assert len(resp.json()["payments"]) == 2
        assert resp.json()["total_amount"] == "150.50"


class TestEditAndCancel:

    def test_item_edit_appends_adjustment(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        resp = owner_client.patch(
            f"/api/billing/bills/{bill['id']}",
            json={"items": [{"item_name": "Consultation", "unit_price": "1000"}],
                  "discount_amount": "0"})
        assert resp.status_code == 200, resp.text
        updated = resp.json()
        assert updated["total_amount"] == "1000.00"
        assert len(updated["items"]) == 1

        entries = _ledger(owner_client, patient.id)["entries"]
        assert len(entries) == 1
        assert entries[0]["transaction_type"] == "ADJUSTMENT"
        assert entries[0]["debit"] == "215.00"
        assert entries[0]["reference_type"] == "BILL_ADJUSTED"

    def test_discount_only_edit_keeps_total(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id,
                            items=[{"item_name": "Abhyanga",
                                    "quantity": "1.50",
                                    "unit_price": "199.99"}],
                            discount_amount="0")
        assert bill["total_amount"] == "299.99"

        resp = owner_client.patch(f"/api/billing/bills/{bill['id']}",
                                  json={"discount_percentage": "0"})
        assert resp.status_code == 200, resp.text
        assert resp.json()["total_amount"] == "299.99"
        assert resp.json()["items"][0]["total_amount"] == "299.99"
        assert _ledger(owner_client, patient.id)["entries"] == []

    @pytest.mark.parametrize("field,value", [
        ("quantity", "0.333"),
        ("unit_price", "300.005"),
        ("discount_amount", "1.125"),
    ])
    def test_item_amounts_limited_to_two_places(self, owner_client, patient,
                                                field, value):
        item = {"item_name": "Consultation", "unit_price": "300", field: value}
        resp = owner_client.post("/api/billing/bills",
                                 json={"patient_id": patient.id, "items": [item]})
        assert resp.status_code == 400
        assert resp.json()["error"].startswith(f"items.0.{field}:")
        assert "decimal places" in resp.json()["error"]

    def test_header_discount_limited_to_two_places(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        resp = owner_client.patch(f"/api/billing/bills/{bill['id']}",
                                  json={"discount_percentage": "2.505"})
        assert resp.status_code == 400
        assert "decimal places" in resp.json()["error"]

    def test_shrinking_below_paid_rejected(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        _pay(owner_client, bill["id"], "600")
        resp = owner_client.patch(
            f"/api/billing/bills/{bill['id']}",
            json={"items": [{"item_name": "Consultation", "unit_price": "100"}]})
        assert resp.status_code == 400
        assert resp.json()["error"] == (
            "Bill total cannot be less than the amount already paid")

    def test_paid_bill_is_locked(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        _pay(owner_client, bill["id"], "785")
        resp = owner_client.patch(f"/api/billing/bills/{bill['id']}",
                                  json={"notes": "late edit"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Cannot edit paid or cancelled bills"

    def test_finalize_draft(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        resp = owner_client.patch(f"/api/billing/bills/{bill['id']}",
                                  json={"finalize": True})
        assert resp.status_code == 200
        assert resp.json()["status"] == "PENDING"
        assert resp.json()["finalized_at"] is not None

    def test_cancel_credits_ledger(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        resp = owner_client.delete(f"/api/billing/bills/{bill['id']}")
        assert resp.status_code == 200
        assert resp.json()["status"] == "CANCELLED"

        entries = _ledger(owner_client, patient.id)["entries"]
        assert entries[-1]["reference_type"] == "BILL_CANCELLED"
        assert entries[-1]["credit"] == "785.00"

        again = owner_client.patch(f"/api/billing/bills/{bill['id']}",
                                   json={"notes": "x"})
        assert again.status_code == 400

    def test_cancel_with_payments_rejected(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        _pay(owner_client, bill["id"], "1")
        resp = owner_client.delete(f"/api/billing/bills/{bill['id']}")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Cannot cancel bills with payments"


class TestBillListAndDocuments:

    def test_stats_ignore_cancelled(self, owner_client, patient):
        kept = _create_bill(owner_client, patient.id)
        dropped = _create_bill(owner_client, patient.id)
        owner_client.delete(f"/api/billing/bills/{dropped['id']}")
        _pay(owner_client, kept["id"], "85")

        resp = owner_client.get("/api/billing/bills")
        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"]["total"] == 2
        assert body["stats"]["total_revenue"] == "785.00"
        assert body["stats"]["total_paid"] == "85.00"
        assert body["stats"]["total_pending"] == "700.00"

    def test_status_filter(self, owner_client, patient):
        _create_bill(owner_client, patient.id)
        _create_bill(owner_client, patient.id, status="PENDING")
        resp = owner_client.get("/api/billing/bills", params={"status": "pending"})
        assert [b["status"] for b in resp.json()["bills"]] == ["PENDING"]

    def test_detail_includes_payments(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        _pay(owner_client, bill["id"], "100")
        resp = owner_client.get(f"/api/billing/bills/{bill['id']}")
        assert resp.status_code == 200
        assert len(resp.json()["payments"]) == 1
        assert resp.json()["patient"]["registration_id"] == "P000001"

    def test_pdf(self, owner_client, patient):
        bill = _create_bill(owner_client, patient.id)
        resp = owner_client.get(f"/api/billing/bills/{bill['id']}/pdf")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")

    @pytest.mark.parametrize("bill_id", [0, 12345])
    def test_missing_bill(self, owner_client, patient, bill_id):
        resp = owner_client.get(f"/api/billing/bills/{bill_id}")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Bill not found"
