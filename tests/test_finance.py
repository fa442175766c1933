"""Expenses, quick income and the profit & loss reports."""

from datetime import date

TODAY = date.today().isoformat()


def _bill_with_payment(client, patient_id, total="800", paid="300"):
    bill = client.post("/api/billing/bills",
                       json={"patient_id": patient_id,
                             "items": [{"item_name": "Panchakarma",
                                        "item_type": "THERAPY",
                                        "unit_price": total}]}).json()
    resp = client.post("/api/billing/payments",
                       json={"bill_id": bill["id"], "amount": paid})
    assert resp.status_code == 201, resp.text
    return bill


def _expense(client, amount, status="PAID", category="rent"):
    resp = client.post("/api/billing/expenses",
                       json={"category": category, "amount": amount,
                             "expense_date": TODAY, "payment_status": status})
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestExpenses:

    def test_create_normalises_category(self, owner_client):
        exp = _expense(owner_client, "1200")
        assert exp["expense_number"].startswith("EXP")
        assert exp["category"] == "RENT"

    def test_list_stats_split_by_status(self, owner_client):
        _expense(owner_client, "100")
        _expense(owner_client, "40", status="PENDING")
        resp = owner_client.get("/api/billing/expenses")
        stats = resp.json()["stats"]
        assert stats["total_expenses"] == 2
        assert stats["total_amount"] == "140.00"
        assert stats["paid_amount"] == "100.00"
        assert stats["pending_amount"] == "40.00"

    def test_amount_must_be_positive(self, owner_client):
        resp = owner_client.post("/api/billing/expenses",
                                 json={"category": "RENT", "amount": "0",
                                       "expense_date": TODAY})
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("amount:")


class TestQuickIncome:

    def test_create_and_list(self, owner_client, patient):
        resp = owner_client.post("/api/billing/quick-income",
                                 json={"amount": "250", "received_date": TODAY,
                                       "patient_id": patient.id})
        assert resp.status_code == 201
        assert resp.json()["income_number"].startswith("INC")

        listing = owner_client.get("/api/billing/quick-income").json()
        assert listing["stats"] == {"total_entries": 1, "total_amount": "250.00"}

    def test_unknown_patient(self, owner_client, patient):
        resp = owner_client.post("/api/billing/quick-income",
                                 json={"amount": "10", "received_date": TODAY,
                                       "patient_id": 404})
        assert resp.status_code == 404


class TestProfitLoss:

    def test_month_summary(self, owner_client, patient):
        _bill_with_payment(owner_client, patient.id)
        _expense(owner_client, "100")
        _expense(owner_client, "50", status="PENDING")

        resp = owner_client.get("/api/billing/profit-loss")
        assert resp.status_code == 200
        body = resp.json()
        assert body["revenue"]["total"] == "300.00"
        assert body["revenue"]["by_category"] == {"THERAPY": "800.00"}
        assert body["expenses"]["total"] == "100.00"
        assert body["gross_profit"] == "200.00"
        assert body["profit_margin"] == "66.67"
        assert body["pending"] == {"revenue": "500.00", "expenses": "50.00"}
        assert len(body["trend"]) == 6

    def test_custom_period_requires_dates(self, owner_client):
        resp = owner_client.get("/api/billing/profit-loss",
                                params={"period": "custom"})
        assert resp.status_code == 400

    def test_doctor_cannot_see_reports(self, doctor_client):
        resp = doctor_client.get("/api/billing/profit-loss")
        assert resp.status_code == 403
        assert resp.json()["error"] == "Access denied: reports"


class TestDateRangeReport:

    def test_counts_every_expense(self, owner_client, patient):
        _bill_with_payment(owner_client, patient.id)
        _expense(owner_client, "100")
        _expense(owner_client, "50", status="PENDING")

        resp = owner_client.get("/api/billing/reports",
                                params={"start_date": TODAY, "end_date": TODAY})
        assert resp.status_code == 200
        summary = resp.json()["summary"]
        assert summary["total_revenue"] == "300.00"
        assert summary["total_expenses"] == "150.00"
        assert summary["net_profit"] == "150.00"

    def test_dates_required(self, owner_client):
        resp = owner_client.get("/api/billing/reports")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Start date and end date are required"

    def test_excel_export(self, owner_client, patient):
        _bill_with_payment(owner_client, patient.id)
        resp = owner_client.get("/api/billing/reports/export",
                                params={"start_date": TODAY, "end_date": TODAY})
        assert resp.status_code == 200
        assert "attachment" in resp.headers["content-disposition"]
        assert resp.content[:2] == b"PK"

    def test_staff_blocked(self, staff_client):
        resp = staff_client.get("/api/billing/reports",
                                params={"start_date": TODAY, "end_date": TODAY})
        assert resp.status_code == 403
