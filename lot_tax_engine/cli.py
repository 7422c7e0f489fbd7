# lot_tax_engine/cli.py
import argparse
from decimal import Decimal, InvalidOperation

import lot_tax_engine.config as config  # For default paths and settings
from lot_tax_engine.domain.enums import LotSelectionMethod
from lot_tax_engine.reporting.export import TaxExportFormat


def _decimal_arg(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a decimal number: {value!r}")


def parse_arguments(argv=None):
    """Parses command line arguments for the application."""
    parser = argparse.ArgumentParser(description="Cost-basis lot tracking and capital gains report")

    # File paths
    parser.add_argument("--transactions", default=config.TRANSACTIONS_FILE_PATH, help="Path to normalized transactions CSV file.")
    parser.add_argument("--disposals", default=config.DISPOSALS_FILE_PATH, help="Path to disposals CSV file. Missing file means no disposals.")

    # Calculation settings
    parser.add_argument("--tax-year", type=int, default=config.TAX_YEAR, help="Tax year to process.")
    parser.add_argument("--method", type=str.upper, default=config.LOT_SELECTION_METHOD,
                        choices=[m.name for m in LotSelectionMethod], help="Lot selection method.")
    parser.add_argument("--long-term-days", type=int, default=config.LONG_TERM_THRESHOLD_DAYS,
                        help="Holding period in days after which a holding is long-term.")
    parser.add_argument("--price", type=_decimal_arg, default=None,
                        help="Reference price per unit for unrealized gain and optimization suggestions.")

    # Reporting options
    parser.add_argument("--report", action="store_true", help="Print the tax report to the console.")
    parser.add_argument("--pdf-output-file", type=str, default=None, help="Write a PDF report to this file.")
    parser.add_argument("--export-format", type=str.upper, default=None,
                        choices=[f.name for f in TaxExportFormat], help="Export the report as CSV, JSON or TURBOTAX.")
    parser.add_argument("--export-file", type=str, default=None,
                        help="Filename for the export. Defaults to a name derived from year, method and date.")
    parser.add_argument("--lots-output", type=str, default=None, help="Write the resulting lots as JSON to this file.")

    # What-if tools
    parser.add_argument("--simulate", type=_decimal_arg, metavar="QTY", default=None,
                        help="Simulate disposing QTY units without changing the lots; compares FIFO, LIFO and HIFO.")
    parser.add_argument("--simulate-price", type=_decimal_arg, default=None,
                        help="Sale price per unit for --simulate. Defaults to --price.")
    parser.add_argument("--suggest", action="store_true", help="Print tax optimization suggestions (requires --price).")

    args = parser.parse_args(argv)

    if args.simulate is not None and args.simulate_price is None:
        if args.price is None:
            parser.error("--simulate needs --simulate-price or --price")
        args.simulate_price = args.price
    if args.suggest and args.price is None:
        parser.error("--suggest needs --price")
    if args.long_term_days < 0:
        parser.error("--long-term-days must be non-negative")

    return args
