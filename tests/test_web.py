"""
Test suite for the JSON API
"""

from decimal import Decimal

import pytest

from loan_schedule.config import Settings
from loan_schedule_web.app import create_app, inputs_from_payload
from loan_schedule_web.schedule_store import ScheduleStore

LOAN = {
    "loan_name": "Shop",
    "principal": "1000",
    "annual_rate": "5%",
    "closing_date": "2024-01-01",
    "term_months": 12,
}


@pytest.fixture
def client():
    app = create_app(Settings(database_url="sqlite://", log_level="WARNING"))
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def loan(client):
    response = client.post("/loans/shop", json=LOAN)
    assert response.status_code == 201
    return response.get_json()


class TestPayload:
    def test_inputs_from_payload(self):
        inputs = inputs_from_payload(dict(LOAN, origination_fee_pct="2%", prorate_first="No"))

        assert inputs.principal == Decimal("1000")
        assert inputs.annual_rate == Decimal("0.05")
        assert inputs.term_months == 12
        assert inputs.origination_fee_display == "2%"

    def test_missing_field(self):
        with pytest.raises(ValueError):
            inputs_from_payload({"principal": "1000"})


class TestLoans:
    def test_create(self, loan):
        assert loan["loan_id"] == "shop"
        assert loan["inputs"]["loan_name"] == "Shop"
        assert loan["inputs"]["annual_rate"] == "0.05"
        assert len(loan["rows"]) == 12
        assert loan["rows"][0]["due_date"] == "2024-02-01"
        assert loan["rows"][0]["principal_balance"] == "1000"

    def test_get(self, client, loan):
        response = client.get("/loans/shop")
        assert response.status_code == 200
        assert response.get_json()["rows"] == loan["rows"]

    def test_unknown_loan(self, client):
        assert client.get("/loans/missing").status_code == 404
        assert client.post("/loans/missing/recalculate").status_code == 404

    def test_bad_create(self, client):
        response = client.post("/loans/shop", json={"principal": "1000"})
        assert response.status_code == 400
        assert "annual_rate" in response.get_json()["error"]

    def test_recalculate(self, client, loan):
        response = client.post("/loans/shop/recalculate")
        assert response.status_code == 200
        data = response.get_json()
        assert data["paid_off_period"] is None
        assert data["rows"] == loan["rows"]


class TestPayments:
    def test_insert_row(self, client, loan):
        response = client.post("/loans/shop/rows", json={"after_row": 8})
        assert response.status_code == 201
        data = response.get_json()
        assert data["inserted_row"] == 9
        assert data["rows"][1]["period"] == "1.5"

    def test_insert_outside_schedule(self, client, loan):
        response = client.post("/loans/shop/rows", json={"after_row": 2})
        assert response.status_code == 400

    def test_unscheduled_payment(self, client, loan):
        client.post("/loans/shop/rows", json={"after_row": 8})
        response = client.post(
            "/loans/shop/payments",
            json={"row": 9, "paid_on": "2024-01-16", "principal": "100"},
        )
        assert response.status_code == 200
        assert response.get_json()["rows"][1]["principal_balance"] == "900"

    def test_payment_needs_row(self, client, loan):
        assert client.post("/loans/shop/payments", json={"paid_on": "2024-02-01"}).status_code == 400

    def test_recast(self, client, loan):
        first = loan["rows"][0]
        principal = str(Decimal(first["principal_due"]) + 300)
        client.post(
            "/loans/shop/payments",
            json={"row": 8, "paid_on": "2024-02-01", "principal": principal, "interest": first["interest_due"]},
        )
        response = client.post("/loans/shop/recast")
        data = response.get_json()

        assert response.status_code == 200
        assert data["recast"]["period"] == 2
        assert data["inputs"]["recast"] == data["recast"]


class TestInputs:
    def test_edit_regenerates(self, client, loan):
        response = client.patch("/loans/shop/inputs", json={"term_months": 24})
        assert response.status_code == 200
        assert len(response.get_json()["rows"]) == 24

    def test_bad_value(self, client, loan):
        response = client.patch("/loans/shop/inputs", json={"annual_rate": "lots"})
        assert response.status_code == 400

    def test_locked(self, client, loan):
        client.patch("/loans/shop/inputs", json={"locked": "Yes"})
        response = client.patch("/loans/shop/inputs", json={"term_months": 24})

        assert response.status_code == 423
        assert response.get_json()["field"] == "term_months"
        assert len(client.get("/loans/shop").get_json()["rows"]) == 12

    def test_lock_in_same_request_rejects_whole_body(self, client, loan):
        response = client.patch("/loans/shop/inputs", json={"locked": "Yes", "term_months": 24})
        assert response.status_code == 423

        data = client.get("/loans/shop").get_json()
        assert data["inputs"]["locked"] is False
        assert len(data["rows"]) == 12


class TestSummary:
    def test_summary(self, client, loan):
        response = client.get("/loans/shop/summary?as_of=2024-03-05")
        assert response.status_code == 200
        data = response.get_json()
        assert data["summary"]["last_due_date"] == "2024-03-01"
        assert data["summary"]["outstanding_principal"] == "1000"

    def test_summary_before_first_due_date(self, client, loan):
        response = client.get("/loans/shop/summary?as_of=2024-01-15")
        assert response.get_json()["summary"] is None


class TestScheduleStore:
    def test_cells_round_trip(self):
        table = ScheduleStore("sqlite://").table("a")
        table.set_values(8, 2, [[1, Decimal("2.5"), "x"]])
        assert table.get_values(8, 2, 1, 3) == [[1, Decimal("2.5"), "x"]]

    def test_insert_row_after(self):
        table = ScheduleStore("sqlite://").table("a")
        table.set_values(8, 2, [[1], [2]])
        table.insert_row_after(8)
        assert table.get_values(8, 2, 3, 1) == [[1], [""], [2]]

    def test_loans_are_separate(self):
        store = ScheduleStore("sqlite://")
        store.table("a").set_value("D4", Decimal("1000"))

        assert store.exists("a")
        assert not store.exists("b")
        assert store.table("b").get_value("D4") == ""
