"""Render search results as a downloadable CSV file."""

from __future__ import annotations

import csv
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from io import StringIO
from typing import Sequence

from shared.models import Transaction


CSV_HEADERS = ("Date", "Category", "Item", "Vendor", "Amount", "Account", "Paid By")
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _format_amount(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):.2f}"


def export_filename(today: date | None = None) -> str:
    return f"consumption_records_{(today or date.today()).isoformat()}.csv"


def export_transactions_csv(transactions: Sequence[Transaction] | None) -> str | None:
    """Return CSV text in the given row order, or `None` when there is nothing to export.

    The header row is plain; every data field is double-quoted, with embedded
    quotes doubled as RFC 4180 requires.
    """

    if not transactions:
        return None

    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for transaction in transactions:
        writer.writerow(
            [
                transaction.date,
                transaction.category,
                transaction.item,
                transaction.vendor,
                _format_amount(transaction.amount),
                transaction.from_account,
                transaction.paid_by,
            ]
        )

    rows = buffer.getvalue().removesuffix("\n")
    return "\n".join([",".join(CSV_HEADERS), rows])
