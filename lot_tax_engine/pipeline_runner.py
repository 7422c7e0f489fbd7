# lot_tax_engine/pipeline_runner.py
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

# Configuration
import lot_tax_engine.config as config

from lot_tax_engine.domain.configuration import TaxConfiguration
from lot_tax_engine.domain.enums import LotSelectionMethod
from lot_tax_engine.domain.events import Transaction, DisposalRequest
from lot_tax_engine.domain.results import ValidationResult, TaxReport

# Core components
from lot_tax_engine.parsers.transactions_parser import parse_transactions_csv
from lot_tax_engine.parsers.disposals_parser import parse_disposals_csv
from lot_tax_engine.parsers.record_factory import create_transactions, create_disposal_requests
from lot_tax_engine.engine.tax_calculator import TaxCalculator

logger = logging.getLogger(__name__)


class ProcessingOutput:
    """
    Encapsulates the results of the core processing pipeline.
    """
    def __init__(self,
                 calculator: TaxCalculator,
                 validation_result: ValidationResult,
                 report: TaxReport,
                 transactions: List[Transaction],
                 disposals: List[DisposalRequest]):
        self.calculator = calculator
        self.validation_result = validation_result
        self.report = report
        self.transactions = transactions
        self.disposals = disposals

    @property
    def error_count(self) -> int:
        return len(self.validation_result.errors)


def load_transactions(transactions_file_path: str) -> List[Transaction]:
    raw_transactions = parse_transactions_csv(transactions_file_path)
    logger.info(f"Loaded {len(raw_transactions)} raw transaction records.")
    return create_transactions(raw_transactions)


def load_disposals(disposals_file_path: Optional[str]) -> List[DisposalRequest]:
    if not disposals_file_path:
        return []
    if not Path(disposals_file_path).exists():
        logger.info(f"No disposals file at {disposals_file_path}. Processing acquisitions only.")
        return []
    raw_disposals = parse_disposals_csv(disposals_file_path)
    logger.info(f"Loaded {len(raw_disposals)} raw disposal records.")
    return create_disposal_requests(raw_disposals)


def run_tax_pipeline(
    transactions_file_path: str,
    disposals_file_path: Optional[str] = None,
    tax_year: int = config.TAX_YEAR,  # Allow override for testing
    method: LotSelectionMethod | str = config.LOT_SELECTION_METHOD,
    long_term_threshold_days: int = config.LONG_TERM_THRESHOLD_DAYS,
    reference_price: Optional[Decimal] = None,
) -> ProcessingOutput:
    """
    Runs the core pipeline: parsing, lot processing and report generation.
    Returns a ProcessingOutput object containing all relevant results.
    """
    logger.info("Starting parsing pipeline...")
    transactions = load_transactions(transactions_file_path)
    disposals = load_disposals(disposals_file_path)
    logger.info(f"Parsing pipeline completed. {len(transactions)} transactions, {len(disposals)} disposals.")

    tax_configuration = TaxConfiguration.from_app_config(
        method=method,
        tax_year=tax_year,
        long_term_threshold_days=long_term_threshold_days,
        disposals=disposals,
    )
    calculator = TaxCalculator(tax_configuration)

    logger.info(f"Running lot processing for tax year {tax_year}...")
    validation_result = calculator.process_transactions(transactions)
    if validation_result.errors:
        logger.warning(f"Lot processing reported {len(validation_result.errors)} errors. The report will be marked incomplete.")

    report = calculator.generate_report(reference_price)
    logger.info("Lot processing run completed.")

    return ProcessingOutput(
        calculator=calculator,
        validation_result=validation_result,
        report=report,
        transactions=transactions,
        disposals=disposals,
    )


def write_lots_json(calculator: TaxCalculator, output_path: str) -> None:
    """Writes the ledger's lots in their structural form so they can be reloaded with LotLedger.from_records."""
    records = calculator.ledger.to_records()
    Path(output_path).write_text(json.dumps(records, indent=2), encoding="utf-8")
    logger.info(f"Wrote {len(records)} lots to {output_path}")
