"""
Data ingestion module for bulk transaction imports.

Reads CSV files with pandas and turns each valid row into a Transaction.
Bulk imports bypass the incremental reconciliation path: once the rows are
stored, callers run a full recompute of every budget.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd
from pandas import errors as pd_errors

from exceptions import IngestionError
from models import Transaction

# Configure logging
logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("date", "category", "amount")


class TransactionCSVReader:
    """
    Reads transactions from CSV files.

    Expected headers (case-insensitive): date, category, amount, and
    optionally id and note. Rows without an id get a generated one.
    """

    def __init__(self, date_format: Optional[str] = None, skip_invalid_rows: bool = True):
        """
        Initialize the CSV reader.

        Args:
            date_format: strftime-style format for the date column; inferred when None.
            skip_invalid_rows: When True, rows with unparseable dates or amounts are
                dropped with a warning instead of failing the whole file.
        """
        self.date_format = date_format
        self.skip_invalid_rows = skip_invalid_rows

    def _load_frame(self, file_path: Path) -> pd.DataFrame:
        try:
            df = pd.read_csv(file_path, dtype=str, keep_default_na=False, skipinitialspace=True)
        except pd_errors.EmptyDataError:
            logger.warning("CSV file '%s' is empty", file_path)
            return pd.DataFrame(columns=list(REQUIRED_COLUMNS))
        except (OSError, pd_errors.ParserError, UnicodeDecodeError) as exc:
            raise IngestionError(
                f"Failed to read CSV file '{file_path}'", original_error=exc
            ) from exc

        df.columns = [str(column).strip().lower() for column in df.columns]
        missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
        if missing:
            raise IngestionError(
                "CSV file is missing required columns",
                details={"file": str(file_path), "missing": ", ".join(missing)}
            )
        return df

    @staticmethod
    def _parse_amounts(values: pd.Series) -> pd.Series:
        cleaned = values.str.strip().str.replace(",", "", regex=False).str.replace("$", "", regex=False)
        return pd.to_numeric(cleaned, errors="coerce")

    def _parse_dates(self, values: pd.Series) -> pd.Series:
        return pd.to_datetime(values.str.strip(), format=self.date_format or "mixed", errors="coerce")

    def read(self, file_path: Union[str, Path]) -> List[Transaction]:
        """
        Read every valid transaction from a CSV file.

        Args:
            file_path: Path to the CSV file

        Returns:
            Transactions in file order

        Raises:
            IngestionError: If the file is missing, unreadable, lacks required
                columns, or contains invalid rows while skip_invalid_rows is False
        """
        path = Path(file_path)
        if not path.exists():
            raise IngestionError(f"CSV file not found: {path}")

        df = self._load_frame(path)
        if df.empty:
            return []

        dates = self._parse_dates(df["date"])
        amounts = self._parse_amounts(df["amount"])
        invalid = dates.isna() | amounts.isna()

        if invalid.any():
            # header is line 1
            bad_lines = [int(index) + 2 for index in df.index[invalid.to_numpy()]]
            if not self.skip_invalid_rows:
                raise IngestionError(
                    "CSV file contains rows with invalid dates or amounts",
                    details={"file": str(path), "lines": bad_lines[:10]}
                )
            logger.warning("Skipping %s invalid rows in '%s': lines %s", len(bad_lines), path, bad_lines[:10])

        transactions: List[Transaction] = []
        for index in df.index[~invalid.to_numpy()]:
            row = df.loc[index]
            timestamp = dates[index].to_pydatetime()
            if timestamp.hour == timestamp.minute == timestamp.second == timestamp.microsecond == 0:
                timestamp = timestamp.date()
            raw_id = row["id"].strip() if "id" in df.columns else ""
            transactions.append(Transaction(
                id=raw_id or str(uuid.uuid4()),
                date=timestamp,
                category=row["category"].strip(),
                amount=float(amounts[index]),
                note=row["note"] if "note" in df.columns else "",
            ))

        logger.info("Read %s transactions from '%s'", len(transactions), path)
        return transactions
