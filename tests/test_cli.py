"""
Test suite for the command-line interface
"""

import json
from decimal import Decimal

import click
import pytest
from click.testing import CliRunner

from loan_schedule.main import cli, parse_amount, parse_percent_option
from loan_schedule.service import LoanWorkbook
from loan_schedule.table import InMemoryTable


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def loan_file(runner, tmp_path):
    path = tmp_path / "loan.json"
    result = runner.invoke(
        cli,
        ["generate", str(path), "-p", "1k", "-r", "5", "-c", "2024-01-01", "-t", "12", "--name", "Shop"],
    )
    assert result.exit_code == 0, result.output
    return path


def stored_rows(path):
    return LoanWorkbook(InMemoryTable.from_json(path.read_text(encoding="utf-8"))).rows()


class TestParsing:
    def test_amount_suffixes(self):
        assert parse_amount("250k") == Decimal("250000")
        assert parse_amount("$1,500.50") == Decimal("1500.50")
        assert parse_amount("1.5m") == Decimal("1500000")

    def test_bad_amount(self):
        with pytest.raises(click.BadParameter):
            parse_amount("lots")

    def test_percent(self):
        assert parse_percent_option("5%") == Decimal("0.05")
        assert parse_percent_option(None) == 0


class TestCommands:
    def test_generate(self, runner, loan_file):
        rows = stored_rows(loan_file)
        assert len(rows) == 12
        assert rows[0].principal_balance == Decimal("1000")

    def test_generate_bad_rate(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        result = runner.invoke(cli, ["generate", str(path), "-p", "1000", "-r", "abc", "-c", "2024-01-01", "-t", "12"])
        assert result.exit_code == 2
        assert not path.exists()

    def test_show(self, runner, loan_file):
        result = runner.invoke(cli, ["show", str(loan_file)])
        assert result.exit_code == 0, result.output
        assert "Shop" in result.output

    def test_pay_and_recalc(self, runner, loan_file):
        first = stored_rows(loan_file)[0]
        result = runner.invoke(
            cli,
            [
                "pay",
                str(loan_file),
                "--row",
                "8",
                "--paid-on",
                "2024-02-01",
                "--principal",
                str(first.principal_due),
                "--interest",
                str(first.interest_due),
            ],
        )
        assert result.exit_code == 0, result.output
        assert stored_rows(loan_file)[0].principal_balance == Decimal("1000") - first.principal_due

        result = runner.invoke(cli, ["recalc", str(loan_file)])
        assert result.exit_code == 0, result.output

    def test_insert(self, runner, loan_file):
        result = runner.invoke(cli, ["insert", str(loan_file), "--after-row", "8"])
        assert result.exit_code == 0, result.output
        assert "row 9" in result.output
        assert stored_rows(loan_file)[1].period == Decimal("1.5")

    def test_insert_outside_schedule(self, runner, loan_file):
        result = runner.invoke(cli, ["insert", str(loan_file), "--after-row", "3"])
        assert result.exit_code == 1
        assert "outside the schedule area" in result.output

    def test_recast_with_nothing_paid(self, runner, loan_file):
        result = runner.invoke(cli, ["recast", str(loan_file)])
        assert result.exit_code == 0, result.output
        assert "from period 1" in result.output

    def test_locked_edit_fails(self, runner, loan_file):
        assert runner.invoke(cli, ["edit", str(loan_file), "locked", "Yes"]).exit_code == 0

        result = runner.invoke(cli, ["edit", str(loan_file), "term_months", "24"])
        assert result.exit_code == 1
        assert "locked" in result.output
        assert len(stored_rows(loan_file)) == 12

    def test_edit_regenerates(self, runner, loan_file):
        result = runner.invoke(cli, ["edit", str(loan_file), "term_months", "24"])
        assert result.exit_code == 0, result.output
        assert len(stored_rows(loan_file)) == 24

    def test_summary_json(self, runner, loan_file):
        result = runner.invoke(cli, ["summary", str(loan_file), "--as-of", "2024-03-05", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["summary"]["last_due_date"] == "2024-03-01"
        assert data["summary"]["periods"] == 12

    def test_export_csv(self, runner, loan_file, tmp_path):
        output = tmp_path / "schedule.csv"
        result = runner.invoke(cli, ["export", str(loan_file), str(output)])
        assert result.exit_code == 0, result.output

        lines = output.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("Period,PeriodEnd,DueDate")
        assert len(lines) == 13

    def test_export_json(self, runner, loan_file, tmp_path):
        output = tmp_path / "schedule.json"
        assert runner.invoke(cli, ["export", str(loan_file), str(output)]).exit_code == 0

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["columns"][0] == "Period"
        assert data["rows"][0]["DueDate"] == "2024-02-01"

    def test_missing_loan_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["show", str(tmp_path / "nope.json")])
        assert result.exit_code == 2
