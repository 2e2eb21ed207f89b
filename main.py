"""
Command-line entry point for the budget reconciliation tool.

Every command that changes the ledger commits to the database first and
then notifies the reconciliation engine, so budgets stay in sync:

1. import      - bulk CSV import followed by a full recompute
2. transaction - add / update / delete a single transaction
3. budget      - create (with historical backfill) / list / status / delete
4. recompute   - rebuild every budget from the ledger
"""

import argparse
import dataclasses
import logging
import sys
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import List, NamedTuple, Optional

from tabulate import tabulate

from budgeting import BudgetFactory, budget_status, summarize_budgets
from config_manager import (
    build_engine_options,
    get_connection_string,
    get_log_file,
    get_week_start,
    load_config
)
from data_ingestion import TransactionCSVReader
from database_ops import DatabaseManager, SqlBudgetStore, SqlTransactionLedger
from exceptions import DatabaseError, FinanceAppError, ReconciliationError
from models import Transaction
from periods import PeriodType
from reconciliation import ReconciliationEngine

# Configure module-level logger
logger = logging.getLogger(__name__)


class AppContext(NamedTuple):
    """Collaborators wired together for one CLI invocation."""
    db_manager: DatabaseManager
    ledger: SqlTransactionLedger
    store: SqlBudgetStore
    engine: ReconciliationEngine
    factory: BudgetFactory


def setup_logging(config: dict) -> None:
    """
    Configure logging based on config settings.

    Args:
        config: Configuration dictionary with logging settings
    """
    log_config = config.get("logging", {})
    level_name = str(log_config.get("level") or "INFO").upper()
    log_level = getattr(logging, level_name, None)
    invalid_level = not isinstance(log_level, int)
    if invalid_level:
        log_level = logging.INFO
    log_format = log_config.get("format") or "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_path = get_log_file(config)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_path:
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers,
        force=True
    )
    if invalid_level:
        logger.warning("Invalid log level '%s'; defaulting to INFO", level_name)


def build_context(config: dict, connection_string: str) -> AppContext:
    """Create the database, collaborators, engine and factory from configuration."""
    db_manager = DatabaseManager(connection_string)
    db_manager.create_tables()
    ledger = SqlTransactionLedger(db_manager)
    store = SqlBudgetStore(db_manager)
    engine = ReconciliationEngine(store, ledger, **build_engine_options(config))
    factory = BudgetFactory(week_start=get_week_start(config))
    return AppContext(db_manager, ledger, store, engine, factory)


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD") from exc


def _print_table(title: str, rows: list, headers: list) -> None:
    print("\n" + "=" * 100)
    print(title)
    print("=" * 100)
    print(tabulate(rows, headers=headers, tablefmt="grid", floatfmt=",.2f"))


def handle_import_command(args: argparse.Namespace, config: dict, ctx: AppContext) -> None:
    """
    Import transactions from CSV files, then recompute every budget.

    Rows that cannot be stored (for example duplicate ids) are skipped.
    """
    ingestion_cfg = config.get("ingestion", {})
    reader = TransactionCSVReader(
        date_format=ingestion_cfg.get("date_format"),
        skip_invalid_rows=ingestion_cfg.get("skip_invalid_rows", True),
    )

    stats = {"files_processed": 0, "inserted": 0, "skipped": 0}
    for file_name in args.files:
        file_path = Path(file_name)
        logger.info(f"Processing file: {file_path}")
        for transaction in reader.read(file_path):
            try:
                ctx.db_manager.add_transaction(transaction)
                stats["inserted"] += 1
            except DatabaseError as e:
                logger.warning(f"Skipping transaction {transaction.id}: {e}")
                stats["skipped"] += 1
        stats["files_processed"] += 1

    budgets = ctx.engine.recompute_all()
    print(
        f"Imported {stats['inserted']} transactions from {stats['files_processed']} file(s), "
        f"skipped {stats['skipped']}. Recomputed {len(budgets)} budget(s)."
    )


def _sync_budgets(handler, *transactions) -> list:
    """Run an engine handler for a ledger change that is already committed."""
    try:
        return handler(*transactions)
    except ReconciliationError as e:
        raise ReconciliationError(
            f"{e.message}; the ledger change was saved but budgets were left unchanged, "
            "run 'recompute' to resync",
            details=e.details,
            original_error=e
        ) from e


def handle_transaction_command(args: argparse.Namespace, ctx: AppContext) -> None:
    """Apply a single ledger change and notify the engine."""
    if args.transaction_action == "add":
        transaction = Transaction(
            id=args.id or str(uuid.uuid4()),
            date=args.date,
            category=args.category,
            amount=args.amount,
            note=args.note or "",
        )
        ctx.db_manager.add_transaction(transaction)
        affected = _sync_budgets(ctx.engine.transaction_added, transaction)
        print(f"Added transaction {transaction.id}; updated {len(affected)} budget(s)")

    elif args.transaction_action == "update":
        current = ctx.db_manager.get_transaction(args.id)
        if current is None:
            raise DatabaseError("Transaction not found", details={"id": args.id})
        changes = {
            field: value
            for field, value in (
                ("date", args.date),
                ("category", args.category),
                ("amount", args.amount),
                ("note", args.note),
            )
            if value is not None
        }
        updated = dataclasses.replace(current, **changes)
        previous = ctx.db_manager.update_transaction(updated)
        affected = _sync_budgets(ctx.engine.transaction_updated, previous, updated)
        print(f"Updated transaction {args.id}; updated {len(affected)} budget(s)")

    elif args.transaction_action == "delete":
        deleted = ctx.db_manager.delete_transaction(args.id)
        affected = _sync_budgets(ctx.engine.transaction_deleted, deleted)
        print(f"Deleted transaction {args.id}; updated {len(affected)} budget(s)")


def handle_budget_command(args: argparse.Namespace, ctx: AppContext) -> None:
    """Handle budget management commands."""
    if args.budget_action == "create":
        if args.empty:
            budget = ctx.factory.create_empty(args.category, args.amount, args.period, args.anchor)
        else:
            budget = ctx.factory.create_with_history(
                args.category, args.amount, args.period, args.anchor, ledger=ctx.ledger
            )
        ctx.store.add(budget)
        print(
            f"Created budget {budget.id} for '{budget.category}': ${budget.allocated_amount:,.2f} "
            f"({budget.start_date} to {budget.end_date}), spent ${budget.spent_amount:,.2f}"
        )

    elif args.budget_action == "list":
        budgets = ctx.store.budgets()
        if not budgets:
            print("No budgets found.")
            return
        rows = [
            [b.id, b.category, b.period_type.value, f"{b.start_date} to {b.end_date}", b.allocated_amount]
            for b in budgets
        ]
        _print_table("BUDGETS", rows, ["ID", "Category", "Period", "Window", "Allocated"])

    elif args.budget_action == "status":
        if args.category:
            budgets = ctx.engine.budgets_for_category(args.category)
        else:
            budgets = ctx.store.budgets()
        if not budgets:
            print("No budgets found.")
            return
        rows = []
        for budget in budgets:
            status = budget_status(budget)
            rows.append([
                status.category,
                f"{status.start_date} to {status.end_date}",
                status.allocated,
                status.spent,
                status.remaining,
                status.over_by,
                f"{status.percentage_used:.1f}%",
            ])
        _print_table(
            "BUDGET STATUS",
            rows,
            ["Category", "Window", "Allocated", "Spent", "Remaining", "Over By", "Used %"]
        )
        summary = summarize_budgets(budgets)
        print(f"\nTotal Allocated: ${summary['total_allocated']:,.2f}")
        print(f"Total Spent: ${summary['total_spent']:,.2f}")
        print(f"Total Remaining: ${summary['total_remaining']:,.2f}")
        print(f"Over Budget: {summary['over_budget_count']}")

    elif args.budget_action == "delete":
        if not ctx.store.remove(args.id):
            raise DatabaseError("Budget not found", details={"id": args.id})
        print(f"Deleted budget {args.id}")


def handle_recompute_command(ctx: AppContext) -> None:
    budgets = ctx.engine.recompute_all()
    print(f"Recomputed {len(budgets)} budget(s).")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Budget and transaction reconciliation",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    import_parser = subparsers.add_parser("import", aliases=["imp"], help="Import transactions from CSV files")
    import_parser.add_argument(
        "--file",
        "-f",
        dest="files",
        action="append",
        required=True,
        help="Path to CSV file(s) to import (can be specified multiple times)"
    )

    txn_parser = subparsers.add_parser("transaction", aliases=["txn"], help="Manage transactions")
    txn_subparsers = txn_parser.add_subparsers(dest="transaction_action", help="Transaction actions")
    txn_add = txn_subparsers.add_parser("add", help="Record a transaction")
    txn_add.add_argument("--id", type=str, help="Transaction id (generated when omitted)")
    txn_add.add_argument("--date", type=_parse_date, required=True, help="Date (YYYY-MM-DD)")
    txn_add.add_argument("--category", type=str, required=True, help="Category name")
    txn_add.add_argument("--amount", type=float, required=True, help="Signed amount (negative for expenses)")
    txn_add.add_argument("--note", type=str, help="Optional note")
    txn_update = txn_subparsers.add_parser("update", help="Edit a transaction")
    txn_update.add_argument("--id", type=str, required=True, help="Transaction id")
    txn_update.add_argument("--date", type=_parse_date, help="New date (YYYY-MM-DD)")
    txn_update.add_argument("--category", type=str, help="New category")
    txn_update.add_argument("--amount", type=float, help="New signed amount")
    txn_update.add_argument("--note", type=str, help="New note")
    txn_delete = txn_subparsers.add_parser("delete", help="Delete a transaction")
    txn_delete.add_argument("--id", type=str, required=True, help="Transaction id")

    budget_parser = subparsers.add_parser("budget", aliases=["bud"], help="Manage budgets")
    budget_subparsers = budget_parser.add_subparsers(dest="budget_action", help="Budget actions")
    bud_create = budget_subparsers.add_parser("create", help="Create a budget")
    bud_create.add_argument("--category", type=str, required=True, help="Category name")
    bud_create.add_argument("--amount", type=float, required=True, help="Allocated amount")
    bud_create.add_argument(
        "--period",
        type=str,
        choices=[p.value for p in PeriodType],
        default=PeriodType.MONTHLY.value,
        help="Budget period (default: monthly)"
    )
    bud_create.add_argument("--anchor", type=_parse_date, help="Date inside the period (default: today)")
    bud_create.add_argument("--empty", action="store_true", help="Start from zero instead of backfilling")
    budget_subparsers.add_parser("list", help="List all budgets")
    bud_status = budget_subparsers.add_parser("status", help="Show budget status")
    bud_status.add_argument("--category", type=str, help="Only budgets for this category")
    bud_delete = budget_subparsers.add_parser("delete", help="Delete a budget")
    bud_delete.add_argument("--id", type=str, required=True, help="Budget id")

    subparsers.add_parser("recompute", help="Rebuild every budget from the ledger")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the application."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = load_config(Path(args.config))
        setup_logging(config)
    except FinanceAppError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        connection_string = get_connection_string(config)
        ctx = build_context(config, connection_string)
    except (FinanceAppError, OSError) as e:
        logger.error(f"Failed to initialize: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command in ["import", "imp"]:
            handle_import_command(args, config, ctx)
        elif args.command in ["transaction", "txn"]:
            if not args.transaction_action:
                parser.print_help()
                sys.exit(1)
            handle_transaction_command(args, ctx)
        elif args.command in ["budget", "bud"]:
            if not args.budget_action:
                parser.print_help()
                sys.exit(1)
            handle_budget_command(args, ctx)
        elif args.command == "recompute":
            handle_recompute_command(ctx)
        if ctx.engine.clamp_events:
            logger.warning(
                "%s budget removal(s) were clamped at zero; run 'recompute' to resync",
                ctx.engine.clamp_events
            )
    except FinanceAppError as e:
        logger.error(f"{args.command} command failed: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        ctx.db_manager.close()


if __name__ == "__main__":
    main()
