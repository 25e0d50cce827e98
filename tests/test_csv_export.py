"""Tests for CSV rendering of search results."""

from __future__ import annotations

from datetime import date

from backend.reporting import CSV_HEADERS, export_filename, export_transactions_csv
from shared.models import Transaction
from tests.fakes import transaction_row


def _rows() -> list[Transaction]:
    return [
        Transaction.model_validate(transaction_row(id=2, date="2024-01-20", amount=4.5)),
        Transaction.model_validate(
            transaction_row(
                id=1,
                date="2024-01-03",
                category="Home",
                item="Lamp",
                vendor="Shop, Inc.",
                amount="19.999",
                from_account="Savings",
                paid_by="Bob",
            )
        ),
    ]


def test_export_renders_header_and_quoted_rows_in_given_order() -> None:
    content = export_transactions_csv(_rows())

    assert content == (
        "Date,Category,Item,Vendor,Amount,Account,Paid By\n"
        '"2024-01-20","Food","Coffee","Cafe X","4.50","Checking","Alice"\n'
        '"2024-01-03","Home","Lamp","Shop, Inc.","20.00","Savings","Bob"'
    )


def test_export_is_idempotent() -> None:
    rows = _rows()

    assert export_transactions_csv(rows) == export_transactions_csv(rows)


def test_export_of_empty_or_absent_collection_produces_nothing() -> None:
    assert export_transactions_csv([]) is None
    assert export_transactions_csv(None) is None


def test_embedded_quotes_are_doubled() -> None:
    row = Transaction.model_validate(transaction_row(id=1, date="2024-01-01", item='12" pizza'))

    content = export_transactions_csv([row])

    assert content is not None
    assert '"12"" pizza"' in content.splitlines()[1]


def test_amount_uses_two_decimals_half_up() -> None:
    row = Transaction.model_validate(transaction_row(id=1, date="2024-01-01", amount="2.345"))

    content = export_transactions_csv([row])

    assert content is not None
    assert '"2.35"' in content


def test_header_columns() -> None:
    assert ",".join(CSV_HEADERS) == "Date,Category,Item,Vendor,Amount,Account,Paid By"


def test_export_filename_uses_iso_date() -> None:
    assert export_filename(date(2024, 3, 7)) == "consumption_records_2024-03-07.csv"
