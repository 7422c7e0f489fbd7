import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, Context
from typing import Dict, Iterable, List, Optional, Tuple

from lot_tax_engine.domain.configuration import TaxConfiguration
from lot_tax_engine.domain.enums import HoldingPeriod, LotSelectionMethod, ValidationCode
from lot_tax_engine.domain.events import Transaction, DisposalRequest, AcquisitionEvent, DisposalEvent
from lot_tax_engine.domain.results import (
    ValidationIssue, ValidationResult, TaxPeriodSummary, TaxReport, DisposalSimulation
)
from lot_tax_engine.engine.lot_ledger import LotLedger, LotLedgerError, TaxLot
from lot_tax_engine.engine.period_summary import PeriodSummaryCalculator
from lot_tax_engine.utils.type_utils import safe_decimal, parse_datetime
import lot_tax_engine.config as global_config

logger = logging.getLogger(__name__)

COMPARABLE_METHODS = (LotSelectionMethod.FIFO, LotSelectionMethod.LIFO, LotSelectionMethod.HIFO)


class TaxCalculator:
    """
    Drives a LotLedger through one tax period: builds lots from the period's acquisitions,
    replays the configured disposals and aggregates the results into a report.
    """

    def __init__(self, configuration: TaxConfiguration, existing_lots: Optional[Iterable[TaxLot]] = None):
        self.configuration = replace(configuration, disposals=list(configuration.disposals))
        self._ledger = LotLedger(existing_lots, long_term_threshold_days=self.configuration.long_term_threshold_days)
        self.acquisition_events: List[AcquisitionEvent] = []
        self.disposal_events: List[DisposalEvent] = []
        self.last_validation: Optional[ValidationResult] = None

        self.ctx = Context(prec=global_config.INTERNAL_CALCULATION_PRECISION, rounding=global_config.DECIMAL_ROUNDING_MODE)

    @property
    def ledger(self) -> LotLedger:
        return self._ledger

    def _period_bounds(self) -> Tuple[datetime, datetime]:
        tax_year = self.configuration.tax_year
        return datetime(tax_year, 1, 1), datetime(tax_year, 12, 31, 23, 59, 59, 999999)

    def _filter_transactions_by_year(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        start_date, end_date = self._period_bounds()
        in_period: List[Transaction] = []
        for transaction in transactions:
            tx_date = parse_datetime(transaction.date)
            if tx_date is None:
                logger.warning(f"Transaction {transaction.id} has unparseable date '{transaction.date}'. Excluded from period.")
                continue
            if start_date <= tx_date <= end_date:
                if tx_date is not transaction.date:
                    transaction = replace(transaction, date=tx_date)
                in_period.append(transaction)
        return in_period

    def process_transactions(self, transactions: Iterable[Transaction]) -> ValidationResult:
        """
        Rebuilds lots and events from scratch for the configured tax year.
        Data problems are collected into the returned result; nothing is raised.
        """
        self.acquisition_events = []
        self.disposal_events = []
        self._ledger.clear()
        self._ledger.long_term_threshold_days = self.configuration.long_term_threshold_days

        result = ValidationResult()
        tax_year = self.configuration.tax_year

        year_transactions = self._filter_transactions_by_year(transactions)
        logger.info(f"Processing {len(year_transactions)} transactions for tax year {tax_year} "
                    f"using {self.configuration.method.name}.")

        if not year_transactions:
            result.warnings.append(ValidationIssue(
                code=ValidationCode.NO_TRANSACTIONS,
                message=f"No transactions found for tax year {tax_year}",
                suggestion="Check if the tax year is correct or if transactions exist for this period",
            ))

        for transaction in year_transactions:
            if transaction.is_custody_movement():
                logger.info(f"Transaction {transaction.id} is a custody movement ({transaction.type}). Skipped.")
                result.warnings.append(ValidationIssue(
                    code=ValidationCode.WITHDRAWAL_SKIPPED,
                    message=(f"Withdrawal transaction skipped (non-taxable): {transaction.quantity} "
                             f"{global_config.ASSET_SYMBOL} to {transaction.destination_wallet or 'self-custody'}"),
                    event_id=transaction.id,
                    suggestion="This withdrawal does not create a taxable event",
                ))
                continue
            try:
                self._process_acquisition(transaction)
            except (ValueError, TypeError, ArithmeticError) as e:
                logger.error(f"Failed to process acquisition {transaction.id}: {e}")
                result.errors.append(ValidationIssue(
                    code=ValidationCode.ACQUISITION_ERROR,
                    message=f"Failed to process acquisition: {e}",
                    event_id=transaction.id,
                    details=f"Transaction ID: {transaction.id}",
                ))

        for disposal in self.configuration.disposals:
            if self.configuration.method == LotSelectionMethod.SPECIFIC_ID and not disposal.lot_ids:
                result.warnings.append(ValidationIssue(
                    code=ValidationCode.SPECIFIC_ID_FALLBACK,
                    message=f"Disposal {disposal.id} uses SPECIFIC_ID without lot ids; lots were selected FIFO",
                    event_id=disposal.id,
                    suggestion="Name the lots to dispose on the disposal record",
                ))
            try:
                self._process_disposal(disposal)
            except (LotLedgerError, ValueError, TypeError, ArithmeticError) as e:
                logger.error(f"Failed to process disposal {disposal.id}: {e}")
                result.errors.append(ValidationIssue(
                    code=ValidationCode.DISPOSAL_ERROR,
                    message=f"Failed to process disposal: {e}",
                    event_id=disposal.id,
                    details=f"Disposal ID: {disposal.id}",
                ))

        result.errors.extend(self._ledger.validate())

        logger.info(f"Tax year {tax_year}: {len(self.acquisition_events)} acquisitions, {len(self.disposal_events)} disposals, "
                    f"{len(result.errors)} errors, {len(result.warnings)} warnings.")
        self.last_validation = result
        return result

    def _process_acquisition(self, transaction: Transaction) -> AcquisitionEvent:
        quantity = safe_decimal(transaction.quantity)
        if quantity is None or not quantity.is_finite() or quantity <= Decimal(0):
            raise ValueError(f"quantity must be positive, got {transaction.quantity}")

        self._ledger.create_lot(transaction)
        usd_value = safe_decimal(transaction.usd_amount, default=Decimal(0))
        event = AcquisitionEvent(
            id=f"acq-{transaction.id}",
            date=transaction.date,
            quantity=quantity,
            usd_value=usd_value,
            cost_basis=usd_value,
            transaction_id=transaction.id,
            exchange=transaction.exchange,
        )
        self.acquisition_events.append(event)
        return event

    def _process_disposal(self, disposal: DisposalRequest) -> DisposalEvent:
        disposal_event = self._ledger.consume(disposal, self.configuration.method)
        self.disposal_events.append(disposal_event)
        return disposal_event

    def calculate_summary(self, reference_price: Optional[Decimal] = None) -> TaxPeriodSummary:
        calculator = PeriodSummaryCalculator(
            disposals=self.disposal_events,
            ledger=self._ledger,
            reference_price=safe_decimal(reference_price),
        )
        return calculator.calculate_summary()

    def generate_report(self, reference_price: Optional[Decimal] = None) -> TaxReport:
        start_date, end_date = self._period_bounds()
        reference_price = safe_decimal(reference_price)
        summary = self.calculate_summary(reference_price)
        remaining_lots = self._ledger.get_remaining_lots()

        warnings: List[str] = []
        errors: List[str] = []
        if self.last_validation is not None:
            warnings.extend(w.message for w in self.last_validation.warnings)
            errors.extend(e.message for e in self.last_validation.errors)

        if not self.disposal_events:
            warnings.append("No disposal events found - this report shows acquisitions only")
        if not remaining_lots:
            warnings.append(f"No remaining {global_config.ASSET_SYMBOL} lots - all holdings appear to have been disposed")

        return TaxReport(
            tax_year=self.configuration.tax_year,
            method=self.configuration.method,
            generated_at=datetime.now(),
            summary=summary,
            acquisitions=list(self.acquisition_events),
            disposals=list(self.disposal_events),
            remaining_lots=remaining_lots,
            start_date=start_date,
            end_date=end_date,
            total_transactions=len(self.acquisition_events) + len(self.disposal_events),
            is_complete=not errors,
            warnings=warnings,
            errors=errors,
            reference_price=reference_price,
            long_term_threshold_days=self.configuration.long_term_threshold_days,
        )

    def _simulation_method(self) -> LotSelectionMethod:
        # Hypothetical disposals never carry lot ids
        if self.configuration.method == LotSelectionMethod.SPECIFIC_ID:
            return LotSelectionMethod.FIFO
        return self.configuration.method

    def _simulate(self, quantity: Decimal, price: Decimal, date: Optional[datetime],
                  method: LotSelectionMethod) -> DisposalSimulation:
        quantity = safe_decimal(quantity)
        price = safe_decimal(price, default=Decimal(0))
        request = DisposalRequest(
            quantity=quantity,
            date=parse_datetime(date) or datetime.now(),
            sale_price=price,
            total_proceeds=self.ctx.multiply(quantity, price) if quantity is not None else None,
            id="hypothetical",
        )
        scratch_ledger = self._ledger.clone()
        disposal_event = scratch_ledger.consume(request, method)
        return DisposalSimulation(
            quantity=disposal_event.quantity,
            proceeds=disposal_event.proceeds,
            cost_basis=disposal_event.cost_basis,
            capital_gain=disposal_event.capital_gain,
            holding_period=disposal_event.holding_period,
            disposed_lots=disposal_event.disposed_lots,
        )

    def simulate_disposal(self, quantity: Decimal, price: Decimal,
                          date: Optional[datetime] = None) -> DisposalSimulation:
        """What-if disposal on a throwaway copy of the ledger. Raises the same errors as a real one."""
        return self._simulate(quantity, price, date, self._simulation_method())

    def compare_methods(self, quantity: Decimal, price: Decimal,
                        date: Optional[datetime] = None) -> Dict[LotSelectionMethod, DisposalSimulation]:
        return {method: self._simulate(quantity, price, date, method) for method in COMPARABLE_METHODS}

    def suggest_optimizations(self, reference_price: Decimal, as_of: Optional[datetime] = None) -> List[str]:
        remaining_lots = self._ledger.get_remaining_lots()
        if not remaining_lots:
            return ["No remaining lots to optimize"]

        reference_price = safe_decimal(reference_price, default=Decimal(0))
        as_of = parse_datetime(as_of) or datetime.now()
        suggestions: List[str] = []

        losing_lot_count = 0
        total_paper_loss = Decimal(0)
        for lot in remaining_lots:
            current_value = self.ctx.multiply(lot.remaining, reference_price)
            if not lot.quantity:
                continue
            proportional_cost_basis = self.ctx.divide(self.ctx.multiply(lot.remaining, lot.cost_basis), lot.quantity)
            if current_value < proportional_cost_basis:
                losing_lot_count += 1
                total_paper_loss = self.ctx.add(total_paper_loss, self.ctx.subtract(proportional_cost_basis, current_value))

        if losing_lot_count:
            total_loss_display = total_paper_loss.quantize(global_config.OUTPUT_PRECISION_AMOUNTS, context=self.ctx)
            suggestions.append(
                f"Tax-loss harvesting opportunity: {losing_lot_count} lots with potential losses totaling ${total_loss_display}"
            )

        short_term_lot_count = sum(
            1 for lot in remaining_lots
            if self._ledger.classify_holding_period(lot.purchase_date, as_of) == HoldingPeriod.SHORT_TERM
        )
        if short_term_lot_count:
            suggestions.append(
                f"Consider holding {short_term_lot_count} lots longer for long-term capital gains treatment"
            )

        suggestions.append(
            f"Current method: {self.configuration.method.name}. "
            f"Consider comparing FIFO, LIFO, and HIFO methods for optimal tax treatment."
        )
        return suggestions

    def update_configuration(self, **changes) -> None:
        self.configuration = replace(self.configuration, **changes)
        self._ledger.long_term_threshold_days = self.configuration.long_term_threshold_days

    def get_configuration(self) -> TaxConfiguration:
        return replace(self.configuration, disposals=list(self.configuration.disposals))
