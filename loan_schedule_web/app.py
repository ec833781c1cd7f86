"""JSON API for loan schedules.

Every request runs one :class:`~loan_schedule.service.LoanWorkbook` operation
against the loan's table in the database, holding that loan's lock for the
whole read-compute-write cycle.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from loan_schedule.config import Settings
from loan_schedule.data_models import DayCountMethod, LoanInputs, PaymentFrequency, PeriodRow, RecastPoint
from loan_schedule.errors import InputsLockedError, LoanScheduleError
from loan_schedule.layout import FIELDS
from loan_schedule.logging_config import setup_logging
from loan_schedule.service import LoanWorkbook
from loan_schedule.utils import decimal_from_str, parse_date, parse_optional_date, parse_percent, parse_yes_no
from loan_schedule_web.schedule_store import ScheduleStore, create_store_from_env

logger = logging.getLogger(__name__)


class LoanNotFound(LoanScheduleError):
    pass


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def serialize_row(row: PeriodRow) -> Dict[str, Any]:
    return {name: _json_value(getattr(row, name)) for name in FIELDS}


def serialize_recast(point: Optional[RecastPoint]) -> Optional[Dict[str, Any]]:
    if point is None:
        return None
    return {"period": point.period, "principal": str(point.principal)}


def serialize_inputs(inputs: LoanInputs) -> Dict[str, Any]:
    return {
        "loan_name": inputs.loan_name,
        "borrower_name": inputs.borrower_name,
        "principal": str(inputs.principal),
        "annual_rate": str(inputs.annual_rate),
        "closing_date": _json_value(inputs.closing_date),
        "term_months": inputs.term_months,
        "prorate_first": inputs.prorate_first,
        "payment_frequency": inputs.payment_frequency.value,
        "day_count_method": inputs.day_count_method.value,
        "days_per_year": inputs.days_per_year,
        "prepaid_interest_date": _json_value(inputs.prepaid_interest_date),
        "amortize": inputs.amortize,
        "origination_fee_pct": str(inputs.origination_fee_pct),
        "origination_fee_display": inputs.origination_fee_display,
        "exit_fee_pct": str(inputs.exit_fee_pct),
        "locked": inputs.locked,
        "recast": serialize_recast(inputs.recast),
    }


def _amount(payload: Dict[str, Any], key: str, default: str = "0") -> Decimal:
    return decimal_from_str(str(payload.get(key, default)))


def inputs_from_payload(payload: Dict[str, Any]) -> LoanInputs:
    """Build loan inputs from a JSON body; raises ``ValueError`` on bad fields."""
    for key in ("principal", "annual_rate", "closing_date", "term_months"):
        if key not in payload:
            raise ValueError(f"Missing required field: {key}")
    origination_fee = payload.get("origination_fee_pct", "0")
    days_per_year = payload.get("days_per_year", 365)
    return LoanInputs(
        loan_name=str(payload.get("loan_name", "")),
        borrower_name=str(payload.get("borrower_name", "")),
        principal=_amount(payload, "principal"),
        annual_rate=parse_percent(str(payload["annual_rate"])),
        closing_date=parse_date(payload["closing_date"]),
        term_months=int(payload["term_months"]),
        prorate_first=parse_yes_no(payload.get("prorate_first", False)),
        payment_frequency=PaymentFrequency.parse(payload.get("payment_frequency", "Monthly")),
        day_count_method=DayCountMethod.parse(payload.get("day_count_method", "Actual")),
        days_per_year=int(days_per_year) if days_per_year not in (None, "") else None,
        prepaid_interest_date=parse_optional_date(payload.get("prepaid_interest_date")),
        amortize=parse_yes_no(payload.get("amortize", True)),
        origination_fee_pct=parse_percent(str(origination_fee)),
        origination_fee_display=str(origination_fee) if str(origination_fee).strip().endswith("%") else "",
        exit_fee_pct=parse_percent(str(payload.get("exit_fee_pct", "0"))),
        locked=parse_yes_no(payload.get("locked", False)),
    )


def _loan_payload(loan_id: str, workbook: LoanWorkbook) -> Dict[str, Any]:
    return {
        "loan_id": loan_id,
        "inputs": serialize_inputs(workbook.inputs()),
        "rows": [serialize_row(row) for row in workbook.rows() if not row.is_blank],
    }


def create_app(settings: Optional[Settings] = None, store: Optional[ScheduleStore] = None) -> Flask:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_format)

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    schedule_store = store or create_store_from_env(settings.database_url)
    layout = settings.layout

    def workbook_for(loan_id: str, must_exist: bool = True) -> LoanWorkbook:
        if must_exist and not schedule_store.exists(loan_id):
            raise LoanNotFound(f"Loan {loan_id} not found")
        return LoanWorkbook(schedule_store.table(loan_id), layout, loan_id=loan_id)

    def body() -> Dict[str, Any]:
        payload = request.get_json(silent=True)
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object")
        return payload

    @app.errorhandler(ValueError)
    def handle_bad_request(exc):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(LoanNotFound)
    def handle_not_found(exc):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(InputsLockedError)
    def handle_locked(exc):
        return jsonify({"error": str(exc), "field": exc.field}), 423

    @app.errorhandler(LoanScheduleError)
    def handle_schedule_error(exc):
        return jsonify({"error": str(exc)}), 400

    @app.post("/loans/<loan_id>")
    def create_loan(loan_id: str):
        inputs = inputs_from_payload(body())
        with schedule_store.lock_for(loan_id):
            workbook = workbook_for(loan_id, must_exist=False)
            workbook.set_inputs(inputs)
            return jsonify(_loan_payload(loan_id, workbook)), 201

    @app.get("/loans/<loan_id>")
    def get_loan(loan_id: str):
        with schedule_store.lock_for(loan_id):
            return jsonify(_loan_payload(loan_id, workbook_for(loan_id)))

    @app.post("/loans/<loan_id>/recalculate")
    def recalculate(loan_id: str):
        with schedule_store.lock_for(loan_id):
            workbook = workbook_for(loan_id)
            result = workbook.recalculate()
            payload = _loan_payload(loan_id, workbook)
        payload["paid_off_period"] = result.paid_off_period
        return jsonify(payload)

    @app.post("/loans/<loan_id>/rows")
    def insert_row(loan_id: str):
        payload = body()
        if "after_row" not in payload:
            raise ValueError("Missing required field: after_row")
        after_row = int(payload["after_row"])
        with schedule_store.lock_for(loan_id):
            workbook = workbook_for(loan_id)
            new_row = workbook.insert_unscheduled_row(after_row)
            result = _loan_payload(loan_id, workbook)
        result["inserted_row"] = new_row
        return jsonify(result), 201

    @app.post("/loans/<loan_id>/payments")
    def record_payment(loan_id: str):
        payload = body()
        if "row" not in payload:
            raise ValueError("Missing required field: row")
        row = int(payload["row"])
        paid_on = parse_optional_date(payload.get("paid_on"))
        with schedule_store.lock_for(loan_id):
            workbook = workbook_for(loan_id)
            workbook.record_payment(
                row,
                paid_on,
                _amount(payload, "principal"),
                _amount(payload, "interest"),
                _amount(payload, "fees"),
            )
            return jsonify(_loan_payload(loan_id, workbook))

    @app.post("/loans/<loan_id>/recast")
    def recast(loan_id: str):
        with schedule_store.lock_for(loan_id):
            workbook = workbook_for(loan_id)
            point = workbook.recast()
            payload = _loan_payload(loan_id, workbook)
        payload["recast"] = serialize_recast(point)
        return jsonify(payload)

    @app.patch("/loans/<loan_id>/inputs")
    def edit_inputs(loan_id: str):
        changes = body()
        with schedule_store.lock_for(loan_id):
            workbook = workbook_for(loan_id)
            workbook.edit_inputs(changes)
            return jsonify(_loan_payload(loan_id, workbook))

    @app.get("/loans/<loan_id>/summary")
    def loan_summary(loan_id: str):
        as_of = parse_optional_date(request.args.get("as_of"))
        with schedule_store.lock_for(loan_id):
            result = workbook_for(loan_id).summary(as_of)
        return jsonify({"loan_id": loan_id, "summary": result.to_dict() if result else None})

    return app


if __name__ == "__main__":
    print("Starting Loan Schedule API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
