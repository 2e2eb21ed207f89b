"""
End-to-end tests for the command-line interface.
"""

import logging

import pytest
import yaml

from database_ops import DatabaseManager
from main import main


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def make_cli(tmp_path, monkeypatch):
    """Build a main() runner against a throwaway SQLite database; returns (run, connection string)."""
    monkeypatch.delenv("DB_CONNECTION_STRING", raising=False)
    connection_string = f"sqlite:///{(tmp_path / 'cli.db').as_posix()}"

    def build(**sections):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(yaml.safe_dump({
            "database": {"connection_string": connection_string},
            "logging": {"level": "WARNING"},
            **sections,
        }))

        def run(*argv):
            main(["--config", str(config_path), *argv])

        return run, connection_string

    return build


@pytest.fixture
def cli(make_cli):
    return make_cli()


def _budgets(connection_string):
    manager = DatabaseManager(connection_string)
    try:
        return manager.get_budgets()
    finally:
        manager.close()


class TestCli:

    def test_transaction_lifecycle_keeps_budget_in_sync(self, cli, capsys):
        run, connection_string = cli

        run("transaction", "add", "--id", "a", "--date", "2025-01-15", "--category", "Food", "--amount", "-120")
        run("budget", "create", "--category", "food", "--amount", "500", "--anchor", "2025-01-10")
        out = capsys.readouterr().out
        assert "spent $120.00" in out

        run("txn", "update", "--id", "a", "--amount", "-200")
        assert "updated 1 budget(s)" in capsys.readouterr().out
        budget = _budgets(connection_string)[0]
        assert budget.spent_amount == pytest.approx(200.0)
        assert budget.remaining_amount == pytest.approx(300.0)

        run("budget", "status", "--category", "FOOD")
        out = capsys.readouterr().out
        assert "BUDGET STATUS" in out
        assert "300.00" in out

        run("transaction", "delete", "--id", "a")
        assert _budgets(connection_string)[0].spent_amount == 0.0

    def test_import_recomputes_budgets(self, cli, capsys, tmp_path):
        run, connection_string = cli
        run("budget", "create", "--category", "Food", "--amount", "100", "--anchor", "2025-01-01", "--empty")
        csv_path = tmp_path / "january.csv"
        csv_path.write_text(
            "id,date,category,amount\n"
            "r1,2025-01-03,Food,-40\n"
            "r2,2025-01-04,food,-70\n"
            "r3,2025-01-05,Salary,3000\n"
            "r4,2025-02-01,Food,-10\n"
        )

        run("import", "--file", str(csv_path))

        assert "Imported 4 transactions" in capsys.readouterr().out
        budget = _budgets(connection_string)[0]
        assert budget.spent_amount == pytest.approx(110.0)
        assert budget.remaining_amount == 0.0
        assert budget.is_over_budget

    def test_recompute_command(self, cli, capsys):
        run, _ = cli
        run("budget", "create", "--category", "Food", "--amount", "100", "--anchor", "2025-01-01")
        run("recompute")
        assert "Recomputed 1 budget(s)." in capsys.readouterr().out

    def test_unknown_transaction_exits_with_error(self, cli, capsys):
        run, _ = cli
        with pytest.raises(SystemExit) as exc_info:
            run("transaction", "delete", "--id", "missing")
        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().err

    def test_no_command_prints_help(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    def test_strict_underflow_reports_committed_change(self, make_cli, capsys):
        run, connection_string = make_cli(reconciliation={"strict": True})
        run("transaction", "add", "--id", "a", "--date", "2025-01-15", "--category", "Food", "--amount", "-120")
        run("budget", "create", "--category", "Food", "--amount", "500", "--anchor", "2025-01-10", "--empty")
        capsys.readouterr()

        with pytest.raises(SystemExit) as exc_info:
            run("transaction", "delete", "--id", "a")

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "ledger change was saved" in err
        assert "recompute" in err
        manager = DatabaseManager(connection_string)
        try:
            assert manager.get_transaction("a") is None
        finally:
            manager.close()
        assert _budgets(connection_string)[0].spent_amount == 0.0
