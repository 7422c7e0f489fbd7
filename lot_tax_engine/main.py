# lot_tax_engine/main.py
import logging
import sys
from decimal import getcontext

# Configuration and CLI
import lot_tax_engine.config as config
from lot_tax_engine.cli import parse_arguments

# Core pipeline runner
from lot_tax_engine.pipeline_runner import run_tax_pipeline, write_lots_json, ProcessingOutput
from lot_tax_engine.engine.lot_ledger import LotLedgerError

# Reporting
from lot_tax_engine.reporting.console_reporter import (
    print_tax_report, print_simulation, print_method_comparison, print_suggestions
)
from lot_tax_engine.reporting.export import TaxExportFormat, TaxExportOptions, write_export
from lot_tax_engine.reporting.pdf_generator import PdfReportGenerator

logger = logging.getLogger(__name__)


def setup_decimal_context():
    """Sets the global decimal precision and rounding mode."""
    getcontext().prec = config.INTERNAL_CALCULATION_PRECISION
    valid_rounding_modes = ["ROUND_CEILING", "ROUND_DOWN", "ROUND_FLOOR", "ROUND_HALF_DOWN",
                            "ROUND_HALF_EVEN", "ROUND_HALF_UP", "ROUND_UP", "ROUND_05UP"]
    rounding_mode_to_set = config.DECIMAL_ROUNDING_MODE
    if rounding_mode_to_set not in valid_rounding_modes:
        logger.warning(f"Invalid DECIMAL_ROUNDING_MODE '{rounding_mode_to_set}' in config. Using ROUND_HALF_UP as fallback.")
        rounding_mode_to_set = "ROUND_HALF_UP"

    getcontext().rounding = rounding_mode_to_set
    logger.info(f"Global decimal precision set to {getcontext().prec}, rounding mode to {getcontext().rounding}.")


def main_application(argv=None):
    """
    Main application entry point.
    Parses arguments, runs processing, and generates reports.
    """
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    args = parse_arguments(argv)
    setup_decimal_context()

    logger.info("Starting lot tax engine...")

    try:
        processing_results: ProcessingOutput = run_tax_pipeline(
            transactions_file_path=args.transactions,
            disposals_file_path=args.disposals,
            tax_year=args.tax_year,
            method=args.method,
            long_term_threshold_days=args.long_term_days,
            reference_price=args.price,
        )
    except (OSError, ValueError) as e:
        logger.critical(f"Core processing pipeline failed: {e}. Exiting.", exc_info=True)
        sys.exit(1)

    report = processing_results.report
    calculator = processing_results.calculator

    if args.report:
        print_tax_report(report, show_detailed_lots=calculator.configuration.show_detailed_lots)

    if args.pdf_output_file:
        PdfReportGenerator(report, show_detailed_lots=calculator.configuration.show_detailed_lots).generate_report(args.pdf_output_file)

    if args.export_format:
        options = TaxExportOptions(
            format=TaxExportFormat[args.export_format],
            include_detailed_lots=calculator.configuration.show_detailed_lots,
            currency_precision=2 if calculator.configuration.round_to_cents else 8,
        )
        write_export(report, args.export_file, options)

    if args.lots_output:
        write_lots_json(calculator, args.lots_output)

    if args.simulate is not None:
        try:
            print_simulation(calculator.simulate_disposal(args.simulate, args.simulate_price))
            print_method_comparison(calculator.compare_methods(args.simulate, args.simulate_price))
        except LotLedgerError as e:
            logger.error(f"Simulation failed: {e}")

    if args.suggest:
        print_suggestions(calculator.suggest_optimizations(args.price), args.price)

    logger.info("Processing finished.")
    if processing_results.error_count > 0:
        logger.warning(f"There were {processing_results.error_count} processing errors. Review logs and output carefully.")


if __name__ == "__main__":
    main_application()
