"""
Test Support Module

Builders for domain objects and CSV creators for the pipeline tests.
"""

from tests.support.builders import (
    DEFAULT_TAX_YEAR,
    make_purchase,
    make_withdrawal,
    make_disposal,
    make_ledger,
    make_calculator,
)
from tests.support.csv_creators import (
    create_transactions_csv_string,
    create_disposals_csv_string,
    write_csv,
)

__all__ = [
    "DEFAULT_TAX_YEAR",
    "make_purchase",
    "make_withdrawal",
    "make_disposal",
    "make_ledger",
    "make_calculator",
    "create_transactions_csv_string",
    "create_disposals_csv_string",
    "write_csv",
]
