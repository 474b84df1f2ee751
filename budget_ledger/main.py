"""Main module for the Budget Ledger application."""
import argparse
import getpass
import sys
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.table import Table

from budget_ledger.core.amount import format_amount
from budget_ledger.core.types import Frequency, Granularity, StatusLevel
from budget_ledger.exceptions import BudgetLedgerError
from budget_ledger.infrastructure.config import Config
from budget_ledger.services.aggregation.ledger_report import PeriodSummary
from budget_ledger.services.application_service import (
    ApplicationService,
    create_application_service,
)

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser for the CLI.
    """
    parser = argparse.ArgumentParser(description="Budget Ledger")
    parser.add_argument(
        "-c",
        "--config",
        help="YAML configuration file",
        type=Path,
    )
    sub_parser = parser.add_subparsers(dest="command")

    category_parser = sub_parser.add_parser("category", help="Manage categories")
    category_commands = category_parser.add_subparsers(dest="action", required=True)
    category_add = category_commands.add_parser("add", help="Add a category")
    category_add.add_argument("name", help="Name of the category")
    category_add.add_argument("target", help="Target amount")
    category_add.add_argument(
        "frequency",
        help="How often the target is spent",
        choices=[frequency.value for frequency in Frequency],
    )
    category_delete = category_commands.add_parser(
        "delete", help="Delete a category and its expenses"
    )
    category_delete.add_argument("category_id", help="ID of the category")
    category_commands.add_parser("list", help="List categories")

    expense_parser = sub_parser.add_parser("expense", help="Manage expenses")
    expense_commands = expense_parser.add_subparsers(dest="action", required=True)
    expense_add = expense_commands.add_parser("add", help="Record an expense")
    expense_add.add_argument("category_id", help="ID of the category")
    expense_add.add_argument("amount", help="Amount spent")
    expense_add.add_argument("-d", "--description", default="")
    expense_add.add_argument(
        "--date",
        dest="expense_date",
        help="Date of the expense (defaults to today)",
        type=date.fromisoformat,
    )
    expense_delete = expense_commands.add_parser("delete", help="Delete an expense")
    expense_delete.add_argument("expense_id", help="ID of the expense")
    expense_list = expense_commands.add_parser("list", help="List recent expenses")
    expense_list.add_argument("-n", "--limit", type=int, default=10)

    settings_parser = sub_parser.add_parser("settings", help="Show or edit settings")
    settings_parser.add_argument("--currency")
    settings_parser.add_argument("--user-name")
    settings_parser.add_argument(
        "--auto-backup",
        action=argparse.BooleanOptionalAction,
        default=None,
    )

    sub_parser.add_parser("summary", help="Budget against spend this week and month")

    history_parser = sub_parser.add_parser("history", help="Historical series")
    history_parser.add_argument(
        "granularity",
        choices=[granularity.value for granularity in Granularity],
        nargs="?",
        default=Granularity.MONTH.value,
    )
    history_parser.add_argument("-n", "--count", type=int, default=6)

    backup_parser = sub_parser.add_parser("backup", help="Manage backup snapshots")
    backup_parser.add_argument(
        "--list", action="store_true", help="List the stored snapshots"
    )
    backup_parser.add_argument("--restore", metavar="SNAPSHOT_ID")

    export_parser = sub_parser.add_parser("export", help="Export a backup file")
    export_parser.add_argument(
        "--password", action="store_true", help="Protect the backup with a password"
    )

    import_parser = sub_parser.add_parser("import", help="Import a backup file")
    import_parser.add_argument("backup_file", type=Path)
    import_parser.add_argument(
        "--password", action="store_true", help="The backup is password-protected"
    )

    report_parser = sub_parser.add_parser("report", help="Write an Excel report")
    report_parser.add_argument("report_file", type=Path)
    return parser


def handle_category_command(args: argparse.Namespace, app: ApplicationService) -> None:
    """Handle the category command."""
    match args.action:
        case "add":
            category = app.add_category(args.name, args.target, args.frequency)
            console.print(f"Added category {category.name} ({category.id})")
        case "delete":
            removed = app.delete_category(args.category_id)
            console.print(
                f"Deleted category {args.category_id} and {len(removed)} expenses"
            )
        case _:
            currency = app.state.settings.currency
            table = Table(title="Categories")
            for column in ("ID", "Name", "Target", "Frequency", "Weekly", "Monthly"):
                table.add_column(column)
            for item in app.category_breakdown():
                table.add_row(
                    item.category.id,
                    item.category.name,
                    format_amount(item.category.target, currency),
                    item.category.frequency.value,
                    format_amount(item.weekly_budget, currency),
                    format_amount(item.monthly_budget, currency),
                )
            console.print(table)


def handle_expense_command(args: argparse.Namespace, app: ApplicationService) -> None:
    """Handle the expense command."""
    match args.action:
        case "add":
            expense = app.add_expense(
                args.category_id, args.amount, args.description, args.expense_date
            )
            console.print(f"Recorded expense {expense.id}")
        case "delete":
            app.delete_expense(args.expense_id)
            console.print(f"Deleted expense {args.expense_id}")
        case _:
            state = app.state
            table = Table(title="Recent expenses")
            for column in ("ID", "Date", "Category", "Description", "Amount"):
                table.add_column(column)
            for expense in app.recent_expenses(args.limit):
                category = state.find_category(expense.category_id)
                table.add_row(
                    expense.id,
                    expense.expense_date.isoformat(),
                    category.name if category else expense.category_id,
                    expense.description,
                    format_amount(expense.amount, state.settings.currency),
                )
            console.print(table)


def handle_settings_command(args: argparse.Namespace, app: ApplicationService) -> None:
    """Handle the settings command."""
    settings = app.state.settings
    updated = settings._replace(
        currency=args.currency or settings.currency,
        user_name=settings.user_name if args.user_name is None else args.user_name,
        auto_backup=(
            settings.auto_backup if args.auto_backup is None else args.auto_backup
        ),
    )
    if updated != settings:
        app.save_settings(updated)
        settings = updated

    console.print("Currency:", settings.currency)
    console.print("User name:", settings.user_name)
    console.print("Automatic backup:", settings.auto_backup)
    console.print("Last backup:", settings.last_backup or "never")


def _summary_row(table: Table, name: str, summary: PeriodSummary, currency: str) -> None:
    table.add_row(
        name,
        f"{summary.first_date} to {summary.last_date}",
        format_amount(summary.budget, currency),
        format_amount(summary.spent, currency),
        format_amount(summary.remaining, currency),
        f"{summary.progress:.0%}",
        style="red" if summary.is_over_budget else None,
    )


def handle_summary_command(app: ApplicationService) -> None:
    """Handle the summary command."""
    currency = app.state.settings.currency
    table = Table(title="Budget summary")
    for column in ("Period", "Dates", "Budget", "Spent", "Remaining", "Progress"):
        table.add_column(column)
    _summary_row(table, "Week", app.current_week_totals(), currency)
    _summary_row(table, "Month", app.current_month_totals(), currency)
    console.print(table)


def handle_history_command(args: argparse.Namespace, app: ApplicationService) -> None:
    """Handle the history command."""
    currency = app.state.settings.currency
    table = Table(title=f"History by {args.granularity}")
    for column in ("Period", "Budget", "Spent"):
        table.add_column(column)
    for entry in app.historical_series(args.granularity, args.count):
        table.add_row(
            entry.label,
            format_amount(entry.budget_for_period, currency),
            format_amount(entry.spent_in_period, currency),
            style="red" if entry.spent_in_period > entry.budget_for_period else None,
        )
    console.print(table)


def handle_backup_command(args: argparse.Namespace, app: ApplicationService) -> None:
    """Handle the backup command."""
    if args.restore:
        app.restore_snapshot(args.restore)
        console.print(f"Restored snapshot {args.restore}")
        return
    if not args.list:
        snapshot = app.perform_backup()
        console.print(f"Created snapshot {snapshot.id}")

    table = Table(title="Backup snapshots")
    for column in ("ID", "Timestamp", "Version"):
        table.add_column(column)
    for snapshot in app.list_snapshots():
        table.add_row(snapshot.id, snapshot.timestamp.isoformat(), str(snapshot.version))
    console.print(table)


def main() -> None:
    """
    Command Line Interface for the Budget Ledger application.
    Several commands are available:
    - category: Add, delete or list categories
    - expense: Add, delete or list expenses
    - settings: Show or edit settings
    - summary: Budget against spend this week and month
    - history: Budget against spend over past periods
    - backup: Create, list or restore backup snapshots
    - export / import: Backup files, optionally password-protected
    - report: Write an Excel report
    """
    parser = create_parser()
    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    config = Config()
    if args.config is not None:
        config.parse(args.config)
    config.setup_logging()

    app = create_application_service(config)
    app.load()
    try:
        match args.command:
            case "category":
                handle_category_command(args, app)
            case "expense":
                handle_expense_command(args, app)
            case "settings":
                handle_settings_command(args, app)
            case "summary":
                handle_summary_command(app)
            case "history":
                handle_history_command(args, app)
            case "backup":
                handle_backup_command(args, app)
            case "export":
                if args.password:
                    path = app.export_encrypted_backup(getpass.getpass("Password: "))
                else:
                    path = app.export_backup()
                console.print(f"Backup written to {path}")
            case "import":
                if args.password:
                    app.import_encrypted_backup(
                        args.backup_file, getpass.getpass("Password: ")
                    )
                else:
                    app.import_backup(args.backup_file)
                console.print(f"Imported {args.backup_file}")
            case "report":
                console.print(f"Report written to {app.export_report(args.report_file)}")
    except BudgetLedgerError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        app.close()
        if app.status is not None and app.status.level != StatusLevel.INFO:
            console.print(f"[yellow]{app.status.text}[/yellow]")


if __name__ == "__main__":
    main()
