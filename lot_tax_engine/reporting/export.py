# lot_tax_engine/reporting/export.py
import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from lot_tax_engine.domain.events import AcquisitionEvent, DisposalEvent, DisposedLotFragment
from lot_tax_engine.domain.results import TaxReport
import lot_tax_engine.config as config
from lot_tax_engine.reporting.reporting_utils import (
    _q, _q_qty, currency_exponent, format_date, holding_period_label
)

logger = logging.getLogger(__name__)


class TaxExportFormat(Enum):
    CSV = "CSV"
    JSON = "JSON"
    TURBOTAX = "TURBOTAX"


@dataclass
class TaxExportOptions:
    format: TaxExportFormat = TaxExportFormat.CSV
    include_detailed_lots: bool = True
    include_summary_only: bool = False
    currency_precision: int = 2


def _money(value: Optional[Decimal], options: TaxExportOptions) -> str:
    return str(_q(value, currency_exponent(options.currency_precision)))


def _rows_to_text(rows: List[List[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


def _csv_export(report: TaxReport, options: TaxExportOptions) -> str:
    summary = report.summary
    symbol = config.ASSET_SYMBOL
    rows: List[List[Any]] = [
        [f"{symbol} Lot Tax Report"],
        [f"Tax Year: {report.tax_year}"],
        [f"Method: {report.method.name}"],
        [f"Generated: {format_date(report.generated_at)}"],
        [],
        ["SUMMARY"],
        ["Description", "Amount"],
        ["Total Gains", _money(summary.total_gains, options)],
        ["Total Losses", _money(summary.total_losses, options)],
        ["Net Gains", _money(summary.net_gains, options)],
        ["Short-term Gains", _money(summary.short_term_gains, options)],
        ["Long-term Gains", _money(summary.long_term_gains, options)],
        ["Short-term Losses", _money(summary.short_term_losses, options)],
        ["Long-term Losses", _money(summary.long_term_losses, options)],
        [f"Remaining {symbol}", str(_q_qty(summary.remaining_quantity))],
        ["Remaining Cost Basis", _money(summary.remaining_cost_basis, options)],
        ["Unrealized Gains",
         _money(summary.unrealized_gain, options) if summary.unrealized_gain is not None else "N/A"],
        [],
    ]

    if options.include_summary_only:
        return _rows_to_text(rows)

    if report.disposals:
        rows.append(["DISPOSALS"])
        rows.append(["Date", f"{symbol} Amount", "Proceeds", "Cost Basis", "Fees", "Capital Gain/Loss",
                     "Holding Period", "Exchange"])
        for disposal in report.disposals:
            rows.append([
                format_date(disposal.date),
                str(_q_qty(disposal.quantity)),
                _money(disposal.proceeds, options),
                _money(disposal.cost_basis, options),
                _money(disposal.fees, options),
                _money(disposal.capital_gain, options),
                disposal.holding_period.name,
                disposal.exchange or "",
            ])
        rows.append([])

    rows.append(["ACQUISITIONS"])
    rows.append(["Date", f"{symbol} Amount", "USD Amount", f"Price per {symbol}", "Exchange", "Transaction ID"])
    for acquisition in report.acquisitions:
        price_per_unit = acquisition.usd_value / acquisition.quantity if acquisition.quantity else Decimal(0)
        rows.append([
            format_date(acquisition.date),
            str(_q_qty(acquisition.quantity)),
            _money(acquisition.usd_value, options),
            _money(price_per_unit, options),
            acquisition.exchange or "",
            acquisition.transaction_id,
        ])
    rows.append([])

    if options.include_detailed_lots and report.remaining_lots:
        rows.append(["REMAINING TAX LOTS"])
        rows.append(["Lot ID", "Purchase Date", f"Original {symbol}", f"Remaining {symbol}", "Cost Basis",
                     f"Price per {symbol}", "Exchange"])
        for lot in report.remaining_lots:
            remaining_cost = lot.remaining * lot.cost_basis / lot.quantity if lot.quantity else Decimal(0)
            rows.append([
                lot.lot_id,
                format_date(lot.purchase_date),
                str(_q_qty(lot.quantity)),
                str(_q_qty(lot.remaining)),
                _money(remaining_cost, options),
                _money(lot.price_per_unit, options),
                lot.exchange,
            ])

    return _rows_to_text(rows)


def _turbotax_export(report: TaxReport) -> str:
    """One row per disposed lot fragment, in the column layout tax software imports."""
    rows: List[List[Any]] = [
        ["Description", "Date Acquired", "Date Sold", "Sales Price", "Cost or Other Basis", "Gain or Loss", "Type"]
    ]
    description = f"Bitcoin ({config.ASSET_SYMBOL})" if config.ASSET_SYMBOL == "BTC" else config.ASSET_SYMBOL
    for disposal in report.disposals:
        for fragment in disposal.disposed_lots:
            if disposal.quantity:
                sales_price = _q(fragment.quantity * disposal.proceeds / disposal.quantity)
            else:
                sales_price = _q(0)
            cost_basis = _q(fragment.cost_basis)
            rows.append([
                description,
                format_date(fragment.purchase_date),
                format_date(disposal.date),
                str(sales_price),
                str(cost_basis),
                str(sales_price - cost_basis),
                holding_period_label(fragment.holding_period),
            ])
    return _rows_to_text(rows)


def _date_or_none(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if isinstance(value, datetime) else None


def _fragment_to_dict(fragment: DisposedLotFragment) -> Dict[str, Any]:
    return {
        "lot_id": fragment.lot_id,
        "quantity": str(fragment.quantity),
        "cost_basis": str(fragment.cost_basis),
        "purchase_date": _date_or_none(fragment.purchase_date),
        "holding_period": fragment.holding_period.name,
    }


def _disposal_to_dict(disposal: DisposalEvent) -> Dict[str, Any]:
    return {
        "id": disposal.id,
        "date": _date_or_none(disposal.date),
        "quantity": str(disposal.quantity),
        "proceeds": str(disposal.proceeds),
        "cost_basis": str(disposal.cost_basis),
        "fees": str(disposal.fees),
        "capital_gain": str(disposal.capital_gain),
        "holding_period": disposal.holding_period.name,
        "exchange": disposal.exchange,
        "notes": disposal.notes,
        "disposed_lots": [_fragment_to_dict(f) for f in disposal.disposed_lots],
    }


def _acquisition_to_dict(acquisition: AcquisitionEvent) -> Dict[str, Any]:
    return {
        "id": acquisition.id,
        "date": _date_or_none(acquisition.date),
        "quantity": str(acquisition.quantity),
        "usd_value": str(acquisition.usd_value),
        "cost_basis": str(acquisition.cost_basis),
        "transaction_id": acquisition.transaction_id,
        "exchange": acquisition.exchange,
    }


def report_to_dict(report: TaxReport) -> Dict[str, Any]:
    """JSON-compatible form of a report. Decimals are strings so no precision is lost."""
    summary = report.summary
    return {
        "tax_year": report.tax_year,
        "method": report.method.name,
        "generated_at": report.generated_at.isoformat(),
        "start_date": _date_or_none(report.start_date),
        "end_date": _date_or_none(report.end_date),
        "total_transactions": report.total_transactions,
        "is_complete": report.is_complete,
        "reference_price": str(report.reference_price) if report.reference_price is not None else None,
        "long_term_threshold_days": report.long_term_threshold_days,
        "summary": {
            "total_gains": str(summary.total_gains),
            "total_losses": str(summary.total_losses),
            "net_gains": str(summary.net_gains),
            "short_term_gains": str(summary.short_term_gains),
            "long_term_gains": str(summary.long_term_gains),
            "short_term_losses": str(summary.short_term_losses),
            "long_term_losses": str(summary.long_term_losses),
            "total_disposals": summary.total_disposals,
            "short_term_disposals": summary.short_term_disposals,
            "long_term_disposals": summary.long_term_disposals,
            "total_cost_basis": str(summary.total_cost_basis),
            "remaining_quantity": str(summary.remaining_quantity),
            "remaining_cost_basis": str(summary.remaining_cost_basis),
            "unrealized_gain": str(summary.unrealized_gain) if summary.unrealized_gain is not None else None,
        },
        "acquisitions": [_acquisition_to_dict(a) for a in report.acquisitions],
        "disposals": [_disposal_to_dict(d) for d in report.disposals],
        "remaining_lots": [lot.to_record() for lot in report.remaining_lots],
        "warnings": list(report.warnings),
        "errors": list(report.errors),
    }


def _json_export(report: TaxReport, options: TaxExportOptions) -> str:
    payload = {
        "report": report_to_dict(report),
        "export_options": {
            "format": options.format.value,
            "include_detailed_lots": options.include_detailed_lots,
            "include_summary_only": options.include_summary_only,
            "currency_precision": options.currency_precision,
        },
        "exported_at": datetime.now().isoformat(),
    }
    return json.dumps(payload, indent=2)


def export_report(report: TaxReport, options: Optional[TaxExportOptions] = None) -> str:
    options = options or TaxExportOptions()
    if options.format == TaxExportFormat.CSV:
        return _csv_export(report, options)
    if options.format == TaxExportFormat.TURBOTAX:
        return _turbotax_export(report)
    if options.format == TaxExportFormat.JSON:
        return _json_export(report, options)
    raise ValueError(f"Unsupported export format: {options.format}")


def default_export_filename(report: TaxReport, export_format: TaxExportFormat) -> str:
    base_filename = (f"{config.ASSET_SYMBOL.lower()}-tax-report-{report.tax_year}-{report.method.name.lower()}-"
                     f"{report.generated_at.strftime('%Y-%m-%d')}")
    if export_format == TaxExportFormat.TURBOTAX:
        return f"{base_filename}-turbotax.csv"
    if export_format == TaxExportFormat.JSON:
        return f"{base_filename}.json"
    return f"{base_filename}.csv"


def write_export(report: TaxReport, output_path: Optional[str] = None,
                 options: Optional[TaxExportOptions] = None) -> str:
    """Writes the export to output_path (or a generated file name) and returns the path written."""
    options = options or TaxExportOptions()
    content = export_report(report, options)
    path = Path(output_path or default_export_filename(report, options.format))
    path.write_text(content, encoding="utf-8")
    logger.info(f"Exported {options.format.value} tax report to {path}")
    return str(path)
