"""
Tests for CSV transaction ingestion.
"""

from datetime import date, datetime

import pytest

from data_ingestion import TransactionCSVReader
from exceptions import IngestionError


def _write(tmp_path, content: str, name: str = "transactions.csv"):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


class TestTransactionCSVReader:

    def test_reads_rows_with_optional_columns(self, tmp_path):
        path = _write(tmp_path, (
            "ID,Date,Category,Amount,Note\n"
            "t1,2025-01-15,Food,-120.00,groceries\n"
            "t2,2025-01-16 08:30:00,Salary,\"2,500.00\",\n"
        ))

        transactions = TransactionCSVReader().read(path)

        assert [t.id for t in transactions] == ["t1", "t2"]
        assert transactions[0].date == date(2025, 1, 15)
        assert transactions[0].amount == -120.0
        assert transactions[0].note == "groceries"
        assert transactions[1].date == datetime(2025, 1, 16, 8, 30)
        assert transactions[1].amount == 2500.0

    def test_generates_ids_when_missing(self, tmp_path):
        path = _write(tmp_path, "date,category,amount\n2025-01-15,Food,-1\n2025-01-15,Food,-2\n")

        transactions = TransactionCSVReader().read(path)

        assert len(transactions) == 2
        assert transactions[0].id and transactions[1].id
        assert transactions[0].id != transactions[1].id
        assert transactions[0].note == ""

    def test_explicit_date_format(self, tmp_path):
        path = _write(tmp_path, "date,category,amount\n15/01/2025,Food,-3.5\n")

        transactions = TransactionCSVReader(date_format="%d/%m/%Y").read(path)

        assert transactions[0].date == date(2025, 1, 15)

    def test_invalid_rows_are_skipped(self, tmp_path, caplog):
        path = _write(tmp_path, (
            "date,category,amount\n"
            "2025-01-15,Food,-1\n"
            "not-a-date,Food,-2\n"
            "2025-01-17,Food,abc\n"
        ))

        with caplog.at_level("WARNING", logger="data_ingestion"):
            transactions = TransactionCSVReader().read(path)

        assert len(transactions) == 1
        assert "Skipping 2 invalid rows" in caplog.text

    def test_invalid_rows_raise_when_not_skipping(self, tmp_path):
        path = _write(tmp_path, "date,category,amount\n2025-01-15,Food,oops\n")

        with pytest.raises(IngestionError) as exc_info:
            TransactionCSVReader(skip_invalid_rows=False).read(path)

        assert exc_info.value.details["lines"] == [2]

    def test_missing_required_columns(self, tmp_path):
        path = _write(tmp_path, "date,amount\n2025-01-15,-1\n")

        with pytest.raises(IngestionError) as exc_info:
            TransactionCSVReader().read(path)

        assert "category" in str(exc_info.value)

    def test_missing_file(self, tmp_path):
        with pytest.raises(IngestionError):
            TransactionCSVReader().read(tmp_path / "nope.csv")

    def test_empty_and_header_only_files(self, tmp_path):
        assert TransactionCSVReader().read(_write(tmp_path, "", "empty.csv")) == []
        assert TransactionCSVReader().read(_write(tmp_path, "date,category,amount\n", "header.csv")) == []
