"""
Database operations module for transaction and budget storage.

Provides SQLAlchemy models and a DatabaseManager for persisting the ledger
and the budgets, plus adapters that expose them to the reconciliation
engine as a TransactionLedger and a BudgetStore. Supports SQLite by default;
any SQLAlchemy URL works.
"""

import logging
from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy import Column, Date, DateTime, Enum, Float, Integer, String, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from exceptions import DatabaseError
from models import Budget, Transaction
from periods import PeriodType

# Configure logging
logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone awareness.

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(UTC)


def _as_datetime(value) -> datetime:
    """Store plain dates as midnight datetimes."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, datetime.min.time())


# Base class for declarative models
Base = declarative_base()


class TransactionRecord(Base):
    """
    SQLAlchemy model representing a ledger transaction.

    Attributes:
        pk: Auto-incrementing primary key (insertion order)
        id: Public transaction identifier
        date: Transaction date and time
        category: Category label
        amount: Signed amount (negative for expenses)
        note: Optional note
    """

    __tablename__ = "transactions"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), nullable=False, unique=True, index=True)
    date = Column(DateTime, nullable=False, index=True)
    category = Column(String(100), nullable=False, default="", index=True)
    amount = Column(Float, nullable=False)
    note = Column(String(500), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            date=self.date,
            category=self.category,
            amount=float(self.amount),
            note=self.note or "",
        )

    def __repr__(self) -> str:
        """String representation of the transaction."""
        return (
            f"<TransactionRecord(id={self.id}, date={self.date}, "
            f"category='{self.category}', amount={self.amount})>"
        )


class BudgetRecord(Base):
    """
    SQLAlchemy model representing a budget.

    Attributes:
        pk: Auto-incrementing primary key (insertion order)
        id: Public budget identifier
        category: Category name
        allocated_amount: Amount allocated to this category
        spent_amount: Reconciled spend inside the window
        remaining_amount: Reconciled remaining allocation
        start_date: First day of the window
        end_date: Last day of the window
        period_type: Window length
    """

    __tablename__ = "budgets"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), nullable=False, unique=True, index=True)
    category = Column(String(100), nullable=False, index=True)
    allocated_amount = Column(Float, nullable=False, default=0.0)
    spent_amount = Column(Float, nullable=False, default=0.0)
    remaining_amount = Column(Float, nullable=False, default=0.0)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    period_type = Column(Enum(PeriodType), nullable=False, default=PeriodType.MONTHLY)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    def to_domain(self) -> Budget:
        return Budget(
            id=self.id,
            category=self.category,
            allocated_amount=float(self.allocated_amount),
            start_date=self.start_date,
            end_date=self.end_date,
            period_type=self.period_type,
            spent_amount=float(self.spent_amount),
            remaining_amount=float(self.remaining_amount),
        )

    def __repr__(self) -> str:
        """String representation of the budget."""
        return (
            f"<BudgetRecord(id={self.id}, category='{self.category}', "
            f"allocated={self.allocated_amount}, spent={self.spent_amount}, "
            f"period={self.start_date} to {self.end_date})>"
        )


class DatabaseManager:
    """
    Manages database connections and ledger/budget persistence.

    Every method opens its own session and closes it before returning.
    SQLAlchemy failures are logged and re-raised as DatabaseError.
    """

    def __init__(self, connection_string: str):
        """
        Initialize the database manager.

        Args:
            connection_string: SQLAlchemy connection string (e.g., 'sqlite:///data/budgets.db')

        Raises:
            DatabaseError: If the engine cannot be created
        """
        try:
            self.engine = create_engine(connection_string, echo=False)
            self.SessionLocal = sessionmaker(bind=self.engine)
            logger.info(f"Database manager initialized with connection: {connection_string}")
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise DatabaseError("Failed to initialize database", original_error=e) from e

    def create_tables(self) -> None:
        """
        Create all database tables if they don't exist.

        Raises:
            DatabaseError: If table creation fails
        """
        try:
            Base.metadata.create_all(self.engine)
            logger.info("Database tables created/verified successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create database tables: {e}")
            raise DatabaseError("Failed to create database tables", original_error=e) from e

    def get_session(self) -> Session:
        """
        Get a new database session.

        Note:
            Caller is responsible for closing the session.
        """
        return self.SessionLocal()

    # Transactions

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Insert a transaction and return it."""
        session = self.get_session()
        try:
            session.add(TransactionRecord(
                id=transaction.id,
                date=_as_datetime(transaction.date),
                category=transaction.category or "",
                amount=transaction.amount,
                note=transaction.note or "",
            ))
            session.commit()
            logger.debug("Inserted transaction %s", transaction.id)
            return transaction
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to add transaction: {e}")
            raise DatabaseError(
                "Failed to add transaction", details={"id": transaction.id}, original_error=e
            ) from e
        finally:
            session.close()

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        session = self.get_session()
        try:
            record = session.query(TransactionRecord).filter(TransactionRecord.id == transaction_id).first()
            return record.to_domain() if record else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to get transaction: {e}")
            raise DatabaseError("Failed to get transaction", original_error=e) from e
        finally:
            session.close()

    def get_transactions(self) -> List[Transaction]:
        """Return every transaction ordered by date, then insertion order."""
        session = self.get_session()
        try:
            records = session.query(TransactionRecord).order_by(
                TransactionRecord.date, TransactionRecord.pk
            ).all()
            return [record.to_domain() for record in records]
        except SQLAlchemyError as e:
            logger.error(f"Failed to get transactions: {e}")
            raise DatabaseError("Failed to get transactions", original_error=e) from e
        finally:
            session.close()

    def update_transaction(self, transaction: Transaction) -> Transaction:
        """
        Replace the stored fields of a transaction.

        Returns:
            The transaction as it was before the update

        Raises:
            DatabaseError: If the transaction does not exist or the update fails
        """
        session = self.get_session()
        try:
            record = session.query(TransactionRecord).filter(TransactionRecord.id == transaction.id).first()
            if record is None:
                raise DatabaseError("Transaction not found", details={"id": transaction.id})
            previous = record.to_domain()
            record.date = _as_datetime(transaction.date)
            record.category = transaction.category or ""
            record.amount = transaction.amount
            record.note = transaction.note or ""
            session.commit()
            logger.debug("Updated transaction %s", transaction.id)
            return previous
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to update transaction: {e}")
            raise DatabaseError(
                "Failed to update transaction", details={"id": transaction.id}, original_error=e
            ) from e
        finally:
            session.close()

    def delete_transaction(self, transaction_id: str) -> Transaction:
        """
        Delete a transaction.

        Returns:
            The deleted transaction

        Raises:
            DatabaseError: If the transaction does not exist or deletion fails
        """
        session = self.get_session()
        try:
            record = session.query(TransactionRecord).filter(TransactionRecord.id == transaction_id).first()
            if record is None:
                raise DatabaseError("Transaction not found", details={"id": transaction_id})
            deleted = record.to_domain()
            session.delete(record)
            session.commit()
            logger.debug("Deleted transaction %s", transaction_id)
            return deleted
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to delete transaction: {e}")
            raise DatabaseError(
                "Failed to delete transaction", details={"id": transaction_id}, original_error=e
            ) from e
        finally:
            session.close()

    # Budgets

    def add_budget(self, budget: Budget) -> Budget:
        """Insert a budget and return it."""
        session = self.get_session()
        try:
            session.add(BudgetRecord(
                id=budget.id,
                category=budget.category,
                allocated_amount=budget.allocated_amount,
                spent_amount=budget.spent_amount,
                remaining_amount=budget.remaining_amount,
                start_date=budget.start_date,
                end_date=budget.end_date,
                period_type=budget.period_type,
            ))
            session.commit()
            logger.info(
                f"Created budget for '{budget.category}': ${budget.allocated_amount} "
                f"({budget.start_date} to {budget.end_date})"
            )
            return budget
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to create budget: {e}")
            raise DatabaseError("Failed to create budget", details={"id": budget.id}, original_error=e) from e
        finally:
            session.close()

    def get_budgets(self) -> List[Budget]:
        """Return every budget in insertion order."""
        session = self.get_session()
        try:
            records = session.query(BudgetRecord).order_by(BudgetRecord.pk).all()
            return [record.to_domain() for record in records]
        except SQLAlchemyError as e:
            logger.error(f"Failed to get budgets: {e}")
            raise DatabaseError("Failed to get budgets", original_error=e) from e
        finally:
            session.close()

    def save_budget(self, budget: Budget) -> bool:
        """
        Persist a budget's current figures.

        Returns:
            True if the budget was found and saved, False if it does not exist
        """
        session = self.get_session()
        try:
            record = session.query(BudgetRecord).filter(BudgetRecord.id == budget.id).first()
            if record is None:
                logger.warning(f"Budget {budget.id} not found")
                return False
            record.category = budget.category
            record.allocated_amount = budget.allocated_amount
            record.spent_amount = budget.spent_amount
            record.remaining_amount = budget.remaining_amount
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save budget: {e}")
            raise DatabaseError("Failed to save budget", details={"id": budget.id}, original_error=e) from e
        finally:
            session.close()

    def delete_budget(self, budget_id: str) -> bool:
        """
        Delete a budget.

        Returns:
            True if deletion succeeded, False if the budget does not exist
        """
        session = self.get_session()
        try:
            record = session.query(BudgetRecord).filter(BudgetRecord.id == budget_id).first()
            if record is None:
                logger.warning(f"Budget {budget_id} not found")
                return False
            session.delete(record)
            session.commit()
            logger.info(f"Deleted budget {budget_id}")
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to delete budget: {e}")
            raise DatabaseError("Failed to delete budget", details={"id": budget_id}, original_error=e) from e
        finally:
            session.close()

    def close(self) -> None:
        """Dispose the engine and its connection pool."""
        self.engine.dispose()
        logger.info("Database connection closed")


class SqlTransactionLedger:
    """TransactionLedger view over a DatabaseManager."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def transactions(self) -> List[Transaction]:
        return self.db_manager.get_transactions()


class SqlBudgetStore:
    """BudgetStore backed by a DatabaseManager."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def budgets(self) -> List[Budget]:
        return self.db_manager.get_budgets()

    def save(self, budget: Budget) -> None:
        self.db_manager.save_budget(budget)

    def add(self, budget: Budget) -> Budget:
        return self.db_manager.add_budget(budget)

    def remove(self, budget_id: str) -> bool:
        return self.db_manager.delete_budget(budget_id)
