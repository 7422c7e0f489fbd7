# lot_tax_engine/reporting/pdf_generator.py
import logging
from decimal import Decimal
from typing import List, Any, Optional

from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, PageBreak
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib import colors
from reportlab.lib.units import cm
from reportlab.lib.enums import TA_LEFT, TA_CENTER, TA_RIGHT, TA_JUSTIFY

from lot_tax_engine.domain.results import TaxReport
from lot_tax_engine.reporting.reporting_utils import _q, _q_price, _q_qty, format_date, holding_period_label
import lot_tax_engine.config as app_config

logger = logging.getLogger(__name__)


class PdfReportGenerator:
    def __init__(self,
                 report: TaxReport,
                 show_detailed_lots: bool = app_config.SHOW_DETAILED_LOTS,
                 report_version: str = app_config.REPORT_VERSION):
        self.report = report
        self.show_detailed_lots = show_detailed_lots
        self.report_version = report_version
        self.symbol = app_config.ASSET_SYMBOL

        self.styles = self._generate_styles()
        self.story: List[Any] = []

    def _generate_styles(self):
        styles = getSampleStyleSheet()

        styles.add(ParagraphStyle(name='H1', fontSize=16, leading=20, spaceAfter=10, alignment=TA_CENTER, fontName='Helvetica-Bold'))
        styles.add(ParagraphStyle(name='H2', fontSize=14, leading=18, spaceAfter=8, spaceBefore=12, fontName='Helvetica-Bold'))
        styles.add(ParagraphStyle(name='H3', fontSize=12, leading=16, spaceAfter=6, spaceBefore=10, fontName='Helvetica-Bold'))

        body_text_style = styles['BodyText']
        body_text_style.fontSize = 10
        body_text_style.leading = 12
        body_text_style.spaceAfter = 6
        body_text_style.fontName = 'Helvetica'

        styles.add(ParagraphStyle(name='Disclaimer', fontSize=8, leading=10, spaceAfter=12, alignment=TA_JUSTIFY, fontName='Helvetica'))
        styles.add(ParagraphStyle(name='TableHeader', alignment=TA_CENTER, fontSize=8, fontName='Helvetica-Bold', textColor=colors.black))
        styles.add(ParagraphStyle(name='TableCell', alignment=TA_LEFT, fontSize=8, fontName='Helvetica', textColor=colors.black))
        styles.add(ParagraphStyle(name='TableCellRight', alignment=TA_RIGHT, fontSize=8, fontName='Helvetica', textColor=colors.black))

        return styles

    def _format_decimal(self, value: Optional[Decimal], precision_type: str = "total") -> str:
        if value is None:
            return ""
        if precision_type == "price":
            return str(_q_price(value))
        elif precision_type == "quantity":
            return str(_q_qty(value))
        return str(_q(value))

    @staticmethod
    def _looks_numeric(text: str) -> bool:
        return bool(text) and (text[0].isdigit() or (text.startswith('-') and len(text) > 1 and text[1].isdigit()))

    def _create_styled_table(self, data: List[List[Any]], col_widths: Optional[List[float]] = None,
                             extra_styles: Optional[List[Any]] = None, repeatRows=1) -> Table:
        styled_data = []
        for i, row_content in enumerate(data):
            styled_row = []
            for cell_content in row_content:
                if isinstance(cell_content, Paragraph):
                    styled_row.append(cell_content)
                    continue
                text_content = "" if cell_content is None else str(cell_content)
                if i < repeatRows:
                    style_name = 'TableHeader'
                elif self._looks_numeric(text_content):
                    style_name = 'TableCellRight'
                else:
                    style_name = 'TableCell'
                styled_row.append(Paragraph(text_content, self.styles[style_name]))
            styled_data.append(styled_row)

        tbl = Table(styled_data, colWidths=col_widths, repeatRows=repeatRows)

        base_ts_cmds = [
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('LEFTPADDING', (0, 0), (-1, -1), 3),
            ('RIGHTPADDING', (0, 0), (-1, -1), 3),
            ('TOPPADDING', (0, 0), (-1, -1), 2),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
        ]
        if repeatRows > 0:
            base_ts_cmds.append(('BACKGROUND', (0, 0), (-1, repeatRows - 1), colors.lightgrey))
        if extra_styles:
            base_ts_cmds.extend(extra_styles)

        tbl.setStyle(TableStyle(base_ts_cmds))
        return tbl

    def _add_title_page(self):
        report = self.report
        self.story.append(Paragraph(f"{self.symbol} Capital Gains Report {report.tax_year}", self.styles['H1']))
        self.story.append(Spacer(1, 1*cm))
        self.story.append(Paragraph(f"Tax year: {report.tax_year}", self.styles['BodyText']))
        self.story.append(Paragraph(f"Taxpayer: {app_config.TAXPAYER_NAME}", self.styles['BodyText']))
        self.story.append(Paragraph(f"Lot selection method: {report.method.name}", self.styles['BodyText']))
        self.story.append(Paragraph(f"Period: {format_date(report.start_date)} - {format_date(report.end_date)}", self.styles['BodyText']))
        self.story.append(Paragraph(f"Report generated: {report.generated_at.strftime('%m/%d/%Y')}", self.styles['BodyText']))
        self.story.append(Paragraph(f"Tool version: Lot Tax Engine {self.report_version}", self.styles['BodyText']))
        self.story.append(Spacer(1, 0.5*cm))
        disclaimer_text = ("This report was generated automatically from the supplied transaction records. "
                           "It supports the preparation of a tax return and is not tax advice. "
                           "All figures should be checked for correctness.")
        self.story.append(Paragraph(disclaimer_text, self.styles['Disclaimer']))

    def _add_methodology_notes(self):
        self.story.append(Paragraph("Methodology", self.styles['H2']))
        notes = [
            f"Disposals are allocated to acquisition lots using {self.report.method.name}.",
            "Cost basis of a partially consumed lot is allocated in proportion to the quantity taken.",
            f"A holding is long-term when held more than {self.report.long_term_threshold_days} days; "
            f"a disposal spanning several lots is long-term only if every lot is.",
            f"`Decimal` arithmetic with an internal precision of {app_config.INTERNAL_CALCULATION_PRECISION} digits and rounding mode "
            f"'{app_config.DECIMAL_ROUNDING_MODE}'. Amounts are quantized for display only.",
            "Self-custody withdrawals and transfers are not taxable events and create no lots.",
        ]
        for note in notes:
            self.story.append(Paragraph(f"• {note}", self.styles['BodyText']))

    def _add_summary(self):
        summary = self.report.summary
        self.story.append(Paragraph("Summary", self.styles['H2']))
        data = [
            ["Description", "Amount (USD)"],
            ["Short-term gains", self._format_decimal(summary.short_term_gains)],
            ["Short-term losses", self._format_decimal(summary.short_term_losses)],
            ["Long-term gains", self._format_decimal(summary.long_term_gains)],
            ["Long-term losses", self._format_decimal(summary.long_term_losses)],
            ["Total gains", self._format_decimal(summary.total_gains)],
            ["Total losses", self._format_decimal(summary.total_losses)],
            ["Net gain/loss", self._format_decimal(summary.net_gains)],
            [f"Remaining {self.symbol}", self._format_decimal(summary.remaining_quantity, "quantity")],
            ["Remaining cost basis", self._format_decimal(summary.remaining_cost_basis)],
        ]
        if summary.unrealized_gain is not None:
            data.append([f"Unrealized gain/loss at {self._format_decimal(self.report.reference_price, 'price')}",
                         self._format_decimal(summary.unrealized_gain)])
        data.append(["Disposals (short-term / long-term)",
                     f"{summary.total_disposals} ({summary.short_term_disposals} / {summary.long_term_disposals})"])
        self.story.append(self._create_styled_table(data, col_widths=[9*cm, 5*cm]))

    def _add_disposal_details(self):
        self.story.append(Paragraph("Disposals", self.styles['H2']))
        if not self.report.disposals:
            self.story.append(Paragraph("No disposals in this tax year.", self.styles['BodyText']))
            return

        data = [["Date", "Lot", "Acquired", f"Qty ({self.symbol})", "Proceeds", "Cost basis", "Fees", "Gain/Loss", "Term"]]
        for disposal in self.report.disposals:
            data.append([
                format_date(disposal.date), "", "",
                self._format_decimal(disposal.quantity, "quantity"),
                self._format_decimal(disposal.proceeds),
                self._format_decimal(disposal.cost_basis),
                self._format_decimal(disposal.fees),
                self._format_decimal(disposal.capital_gain),
                holding_period_label(disposal.holding_period),
            ])
            if self.show_detailed_lots:
                for fragment in disposal.disposed_lots:
                    data.append([
                        "", fragment.lot_id, format_date(fragment.purchase_date),
                        self._format_decimal(fragment.quantity, "quantity"),
                        "", self._format_decimal(fragment.cost_basis), "", "",
                        holding_period_label(fragment.holding_period),
                    ])
        col_widths = [2*cm, 1.5*cm, 2*cm, 2.3*cm, 2*cm, 2*cm, 1.5*cm, 2*cm, 1.8*cm]
        self.story.append(self._create_styled_table(data, col_widths=col_widths))

    def _add_remaining_lots(self):
        self.story.append(Paragraph("Remaining lots", self.styles['H2']))
        if not self.report.remaining_lots:
            self.story.append(Paragraph("No remaining lots.", self.styles['BodyText']))
            return
        data = [["Lot", "Acquired", f"Original ({self.symbol})", f"Remaining ({self.symbol})", "Price per unit", "Exchange"]]
        for lot in self.report.remaining_lots:
            data.append([
                lot.lot_id,
                format_date(lot.purchase_date),
                self._format_decimal(lot.quantity, "quantity"),
                self._format_decimal(lot.remaining, "quantity"),
                self._format_decimal(lot.price_per_unit, "price"),
                lot.exchange,
            ])
        self.story.append(self._create_styled_table(data, col_widths=[2*cm, 2.5*cm, 3*cm, 3*cm, 3*cm, 3*cm]))

    def _add_issues(self):
        if not self.report.warnings and not self.report.errors:
            return
        self.story.append(Paragraph("Processing notes", self.styles['H2']))
        if not self.report.is_complete:
            self.story.append(Paragraph("This report is incomplete: some records could not be processed.", self.styles['H3']))
        for error in self.report.errors:
            self.story.append(Paragraph(f"• Error: {error}", self.styles['BodyText']))
        for warning in self.report.warnings:
            self.story.append(Paragraph(f"• {warning}", self.styles['BodyText']))

    def generate_report(self, output_file_path: str):
        logger.info(f"Generating PDF report: {output_file_path}")
        doc = SimpleDocTemplate(output_file_path)

        final_doc_story: List[Any] = []

        self.story = []
        self._add_title_page()
        self._add_methodology_notes()
        final_doc_story.extend(self.story)

        final_doc_story.append(PageBreak())

        self.story = []
        self._add_summary()
        self._add_disposal_details()
        self._add_remaining_lots()
        self._add_issues()
        final_doc_story.extend(self.story)

        try:
            doc.build(final_doc_story)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to build PDF report: {e}", exc_info=True)
            raise
        logger.info(f"PDF report created: {output_file_path}")
