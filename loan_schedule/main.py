"""Command-line interface for the loan schedule.

This module uses the ``click`` library to implement a multi-command
interface. Each command works on a loan file, a JSON snapshot of the loan's
table, so a schedule can be generated once and then updated with payments,
inserted rows and recasts. Schedules can be printed to the terminal or
exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from .config import Settings
from .data_models import DayCountMethod, LoanInputs, PaymentFrequency, PeriodRow
from .errors import LoanScheduleError
from .formatter import print_inputs, print_schedule, print_summary
from .layout import COLUMNS, FIELDS
from .logging_config import setup_logging
from .service import LoanWorkbook
from .table import InMemoryTable
from .utils import decimal_from_str, parse_date, parse_percent


def parse_amount(value: str) -> Decimal:
    """Parse a money amount with optional suffixes.

    Accepts plain numbers ("250000", "1,500.50") and shorthand with ``k``/``m``
    suffixes (e.g., "250k" meaning 250_000).
    """
    text = value.strip().lower().replace(",", "").replace("$", "")
    factor = Decimal(1)
    if text.endswith("k"):
        factor = Decimal(1_000)
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal(1_000_000)
        text = text[:-1]
    try:
        return decimal_from_str(text) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent_option(value: Optional[str]) -> Decimal:
    """Parse a percentage given as "5", "5%" or "0.05"."""
    if value is None or not value.strip():
        return Decimal(0)
    try:
        return parse_percent(value)
    except ValueError:
        raise click.BadParameter(f"Invalid percentage: {value}")


def parse_date_option(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def load_table(path: Path, create: bool = False) -> InMemoryTable:
    if not path.exists():
        if create:
            return InMemoryTable()
        raise click.BadParameter(f"Loan file not found: {path}")
    return InMemoryTable.from_json(path.read_text(encoding="utf-8"))


def save_table(path: Path, table: InMemoryTable) -> None:
    path.write_text(table.to_json(), encoding="utf-8")


def _export_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def row_to_dict(row: PeriodRow) -> Dict[str, Any]:
    return {column: _export_value(getattr(row, name)) for column, name in zip(COLUMNS, FIELDS)}


def export_to_json(path: Path, rows: List[PeriodRow]) -> None:
    """Export schedule rows to a JSON file."""
    data = {"columns": list(COLUMNS), "rows": [row_to_dict(row) for row in rows if not row.is_blank]}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, rows: List[PeriodRow]) -> None:
    """Export schedule rows to a CSV file in wire column order."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(COLUMNS)
        for row in rows:
            if row.is_blank:
                continue
            values = row_to_dict(row)
            writer.writerow([values[column] for column in COLUMNS])


def _run(table: InMemoryTable, path: Path, action) -> Any:
    """Run ``action`` against the loan and save the file when it succeeds."""
    try:
        result = action(LoanWorkbook(table, loan_id=path.stem))
    except LoanScheduleError as exc:
        raise click.ClickException(str(exc))
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    save_table(path, table)
    return result


@click.group()
@click.option(
    "--log-level",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Configure logging at this level",
)
def cli(log_level: Optional[str]) -> None:
    """Loan schedules with recorded payments, re-amortization and recasts."""
    if log_level:
        settings = Settings.from_env()
        setup_logging(log_level, settings.log_format)


@cli.command()
@click.argument("loan_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (5, 5% or 0.05)")
@click.option("--closing-date", "-c", "closing_date", required=True, help="Closing date (YYYY-MM-DD)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months")
@click.option("--prorate/--no-prorate", "prorate", default=False, help="Prorate the first period to the month end")
@click.option(
    "--frequency",
    "frequency",
    type=click.Choice([f.value for f in PaymentFrequency], case_sensitive=False),
    default=PaymentFrequency.MONTHLY.value,
    help="Payment frequency",
)
@click.option(
    "--day-count",
    "day_count",
    type=click.Choice([m.value for m in DayCountMethod], case_sensitive=False),
    default=DayCountMethod.ACTUAL.value,
    help="Day count method",
)
@click.option("--days-per-year", "days_per_year", type=int, default=365, help="Days per year (360 or 365)")
@click.option("--prepaid-date", "prepaid_date", help="Interest is prepaid through this date (YYYY-MM-DD)")
@click.option("--amortize/--interest-only", "amortize", default=True, help="Amortizing or interest-only")
@click.option("--orig-fee", "orig_fee", help="Origination fee percentage financed into principal")
@click.option("--exit-fee", "exit_fee", help="Exit fee percentage due with the final period")
@click.option("--name", "loan_name", default="", help="Loan name")
@click.option("--borrower", "borrower", default="", help="Borrower name")
@click.option("--lock/--no-lock", "lock", default=False, help="Lock the inputs after generating")
def generate(
    loan_file: Path,
    principal: str,
    rate: str,
    closing_date: str,
    term: int,
    prorate: bool,
    frequency: str,
    day_count: str,
    days_per_year: int,
    prepaid_date: Optional[str],
    amortize: bool,
    orig_fee: Optional[str],
    exit_fee: Optional[str],
    loan_name: str,
    borrower: str,
    lock: bool,
) -> None:
    """Generate a new schedule into LOAN_FILE."""
    orig_fee_pct = parse_percent_option(orig_fee)
    inputs = LoanInputs(
        principal=parse_amount(principal),
        annual_rate=parse_percent_option(rate),
        closing_date=parse_date_option(closing_date),
        term_months=term,
        prorate_first=prorate,
        payment_frequency=PaymentFrequency.parse(frequency),
        day_count_method=DayCountMethod.parse(day_count),
        days_per_year=days_per_year,
        prepaid_interest_date=parse_date_option(prepaid_date),
        amortize=amortize,
        origination_fee_pct=orig_fee_pct,
        origination_fee_display=(orig_fee.strip() if orig_fee and orig_fee.strip().endswith("%") else ""),
        exit_fee_pct=parse_percent_option(exit_fee),
        locked=lock,
        loan_name=loan_name,
        borrower_name=borrower,
    )
    table = load_table(loan_file, create=True)
    rows = _run(table, loan_file, lambda wb: wb.set_inputs(inputs))
    click.echo(f"Generated {len(rows)} periods into {loan_file}")


@cli.command()
@click.argument("loan_file", type=click.Path(dir_okay=False, path_type=Path))
def recalc(loan_file: Path) -> None:
    """Recalculate dues and balances from the recorded payments."""
    table = load_table(loan_file)
    result = _run(table, loan_file, lambda wb: wb.recalculate())
    if result.paid_off:
        click.echo(f"Loan paid off in period {result.paid_off_period}")
    click.echo(f"Recalculated {loan_file}")


@cli.command()
@click.argument("loan_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--after-row", "after_row", required=True, type=int, help="Storage row to insert below")
def insert(loan_file: Path, after_row: int) -> None:
    """Insert an unscheduled-payment row."""
    table = load_table(loan_file)
    new_row = _run(table, loan_file, lambda wb: wb.insert_unscheduled_row(after_row))
    click.echo(f"Inserted unscheduled row {new_row}")


@cli.command()
@click.argument("loan_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--row", "row", required=True, type=int, help="Storage row of the payment")
@click.option("--paid-on", "paid_on", required=True, help="Payment date (YYYY-MM-DD)")
@click.option("--principal", "principal", default="0", help="Principal paid")
@click.option("--interest", "interest", default="0", help="Interest paid")
@click.option("--fees", "fees", default="0", help="Fees paid")
def pay(loan_file: Path, row: int, paid_on: str, principal: str, interest: str, fees: str) -> None:
    """Record a payment on a row and recalculate."""
    paid_on_date = parse_date_option(paid_on)
    amounts = parse_amount(principal), parse_amount(interest), parse_amount(fees)
    table = load_table(loan_file)
    _run(table, loan_file, lambda wb: wb.record_payment(row, paid_on_date, *amounts))
    click.echo(f"Recorded payment of {sum(amounts):.2f} on row {row}")


@cli.command()
@click.argument("loan_file", type=click.Path(dir_okay=False, path_type=Path))
def recast(loan_file: Path) -> None:
    """Re-amortize the remaining principal from the first unpaid period."""
    table = load_table(loan_file)
    point = _run(table, loan_file, lambda wb: wb.recast())
    if point is None:
        click.echo("Nothing to recast")
    else:
        click.echo(f"Recast {point.principal:.2f} from period {point.period}")


@cli.command()
@click.argument("loan_file", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("name")
@click.argument("value")
def edit(loan_file: Path, name: str, value: str) -> None:
    """Change one loan input (regenerates the schedule unless it is a label)."""
    table = load_table(loan_file)
    rows = _run(table, loan_file, lambda wb: wb.edit_input(name, value))
    if rows is None:
        click.echo(f"Updated {name}")
    else:
        click.echo(f"Updated {name}; regenerated {len(rows)} periods")


@cli.command()
@click.argument("loan_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--max-rows", "max_rows", type=int, default=120, help="Rows to print")
def show(loan_file: Path, max_rows: int) -> None:
    """Print the loan inputs and schedule."""
    workbook = LoanWorkbook(load_table(loan_file))
    rows = workbook.rows()
    print_inputs(workbook.inputs())
    # Limit schedule length printed to avoid flooding the terminal
    if len(rows) > max_rows:
        click.echo(f"Schedule has {len(rows)} rows; showing first {max_rows} rows.")
        rows = rows[:max_rows]
    print_schedule(rows, first_row=workbook.sheet.layout.start_row)


@cli.command()
@click.argument("loan_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--as-of", "as_of", help="Summary date (YYYY-MM-DD); defaults to today")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
def summary(loan_file: Path, as_of: Optional[str], as_json: bool) -> None:
    """Print the loan's position after its most recent due date."""
    workbook = LoanWorkbook(load_table(loan_file))
    result = workbook.summary(parse_date_option(as_of))
    if as_json:
        click.echo(json.dumps({"summary": result.to_dict() if result else None}, indent=2))
    else:
        print_summary(result)


@cli.command()
@click.argument("loan_file", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
def export(loan_file: Path, output: Path) -> None:
    """Export the schedule to OUTPUT (.json or .csv)."""
    rows = LoanWorkbook(load_table(loan_file)).rows()
    if output.suffix.lower() == ".json":
        export_to_json(output, rows)
    elif output.suffix.lower() == ".csv":
        export_to_csv(output, rows)
    else:
        raise click.BadParameter("Unsupported output format; use .json or .csv")
    click.echo(f"Schedule exported to {output}")


if __name__ == "__main__":
    cli()
