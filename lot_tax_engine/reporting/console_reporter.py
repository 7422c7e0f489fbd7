# lot_tax_engine/reporting/console_reporter.py
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from lot_tax_engine.domain.enums import LotSelectionMethod
from lot_tax_engine.domain.results import TaxReport, DisposalSimulation
import lot_tax_engine.config as config
from lot_tax_engine.reporting.reporting_utils import _q, _q_qty, _q_price, format_date, holding_period_label


logger = logging.getLogger(__name__)


def print_tax_report(report: TaxReport, show_detailed_lots: bool = config.SHOW_DETAILED_LOTS):
    symbol = config.ASSET_SYMBOL
    summary = report.summary
    logger.info(f"Generating console tax report for tax year {report.tax_year}...")

    print(f"\n--- {symbol} Capital Gains Report for Tax Year {report.tax_year} (All amounts in USD) ---")
    print(f"  Method: {report.method.name}")
    print(f"  Period: {format_date(report.start_date)} - {format_date(report.end_date)}")
    print(f"  Generated: {report.generated_at.strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"  Transactions processed: {report.total_transactions}")

    print("\nSummary")
    print(f"  Short-term gains:  {_q(summary.short_term_gains):>15}   losses: {_q(summary.short_term_losses):>15}   disposals: {summary.short_term_disposals}")
    print(f"  Long-term gains:   {_q(summary.long_term_gains):>15}   losses: {_q(summary.long_term_losses):>15}   disposals: {summary.long_term_disposals}")
    print(f"  Total gains:       {_q(summary.total_gains):>15}")
    print(f"  Total losses:      {_q(summary.total_losses):>15}")
    print(f"  Net gain/loss:     {_q(summary.net_gains):>15}")
    print(f"  Remaining holdings: {_q_qty(summary.remaining_quantity)} {symbol}, cost basis {_q(summary.remaining_cost_basis)}")
    if summary.unrealized_gain is not None:
        print(f"  Unrealized gain/loss at {_q_price(report.reference_price)}: {_q(summary.unrealized_gain)}")

    print("\nDisposals")
    date_w, qty_w, amt_w, hp_w = 10, 14, 14, 10
    header = " | ".join([
        f"{'Date':<{date_w}}", f"{'Qty':>{qty_w}}", f"{'Proceeds':>{amt_w}}", f"{'Cost Basis':>{amt_w}}",
        f"{'Fees':>{amt_w}}", f"{'Gain/Loss':>{amt_w}}", f"{'Term':<{hp_w}}",
    ])
    print("  " + header)
    print("  " + "-" * len(header))
    if not report.disposals:
        print("  No disposals in this period.")
    for disposal in report.disposals:
        print("  " + " | ".join([
            f"{format_date(disposal.date):<{date_w}}",
            f"{_q_qty(disposal.quantity):>{qty_w}}",
            f"{_q(disposal.proceeds):>{amt_w}}",
            f"{_q(disposal.cost_basis):>{amt_w}}",
            f"{_q(disposal.fees):>{amt_w}}",
            f"{_q(disposal.capital_gain):>{amt_w}}",
            f"{holding_period_label(disposal.holding_period):<{hp_w}}",
        ]))
        if show_detailed_lots:
            for fragment in disposal.disposed_lots:
                print(f"      └─ {fragment.lot_id}: {_q_qty(fragment.quantity)} {symbol} acquired "
                      f"{format_date(fragment.purchase_date) or 'unknown'}, cost basis {_q(fragment.cost_basis)} "
                      f"({holding_period_label(fragment.holding_period)})")

    print("\nRemaining lots")
    if not report.remaining_lots:
        print("  None.")
    for lot in report.remaining_lots:
        print(f"  {lot.lot_id:<10} {format_date(lot.purchase_date) or 'unknown':<10} "
              f"{_q_qty(lot.remaining):>14} of {_q_qty(lot.quantity):>14} {symbol} @ {_q_price(lot.price_per_unit)}")

    if report.warnings:
        print("\nWarnings")
        for warning in report.warnings:
            print(f"  - {warning}")
    if report.errors:
        print("\nErrors")
        for error in report.errors:
            print(f"  - {error}")
    if not report.is_complete:
        print("\nWARNING: Report is incomplete. Review the errors above before filing.")


def print_simulation(simulation: DisposalSimulation, title: str = "Hypothetical disposal"):
    print(f"\n--- {title} ---")
    print(f"  Quantity:   {_q_qty(simulation.quantity)} {config.ASSET_SYMBOL}")
    print(f"  Proceeds:   {_q(simulation.proceeds)}")
    print(f"  Cost basis: {_q(simulation.cost_basis)}")
    print(f"  Gain/loss:  {_q(simulation.capital_gain)} ({holding_period_label(simulation.holding_period)})")
    for fragment in simulation.disposed_lots:
        print(f"    └─ {fragment.lot_id}: {_q_qty(fragment.quantity)} at cost {_q(fragment.cost_basis)}")


def print_method_comparison(comparison: Dict[LotSelectionMethod, DisposalSimulation]):
    print("\n--- Method comparison ---")
    print(f"  {'Method':<8} | {'Cost Basis':>14} | {'Gain/Loss':>14} | Term")
    for method, simulation in comparison.items():
        print(f"  {method.name:<8} | {_q(simulation.cost_basis):>14} | {_q(simulation.capital_gain):>14} | "
              f"{holding_period_label(simulation.holding_period)}")


def print_suggestions(suggestions: List[str], reference_price: Optional[Decimal] = None):
    price_note = f" at {_q_price(reference_price)}" if reference_price is not None else ""
    print(f"\n--- Optimization suggestions{price_note} ---")
    for suggestion in suggestions:
        print(f"  - {suggestion}")
