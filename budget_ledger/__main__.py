"""Entry point for running budget_ledger as a module."""

from budget_ledger.main import main

main()
