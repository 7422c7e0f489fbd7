"""
Test Group: Tax Calculator

Tests for batch processing of a tax year, report generation,
what-if simulation, method comparison and optimization suggestions.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from lot_tax_engine.domain.enums import HoldingPeriod, LotSelectionMethod, ValidationCode
from lot_tax_engine.domain.events import DisposalRequest
from lot_tax_engine.engine.lot_ledger import InsufficientBalanceError, EmptyLedgerError
from tests.support import (
    DEFAULT_TAX_YEAR, make_purchase, make_withdrawal, make_disposal, make_calculator
)


def _priced_purchases():
    # 50000, 55000 and 45000 per unit
    return [
        make_purchase("tx-1", "2024-01-15", "0.02", "1000"),
        make_purchase("tx-2", "2024-02-15", "0.04", "2200"),
        make_purchase("tx-3", "2024-03-15", "0.06", "2700"),
    ]


def _codes(issues):
    return [issue.code for issue in issues]


# =============================================================================
# Batch Processing
# =============================================================================

class TestProcessTransactions:

    def test_acquisitions_become_lots_and_events(self):
        calculator = make_calculator()
        result = calculator.process_transactions(_priced_purchases())
        assert result.is_valid
        assert result.warnings == []
        assert [lot.transaction_id for lot in calculator.ledger.get_all_lots()] == ["tx-1", "tx-2", "tx-3"]
        assert [event.id for event in calculator.acquisition_events] == ["acq-tx-1", "acq-tx-2", "acq-tx-3"]
        assert calculator.acquisition_events[1].cost_basis == Decimal("2200")

    def test_only_transactions_of_the_tax_year_are_used(self):
        calculator = make_calculator(tax_year=DEFAULT_TAX_YEAR)
        calculator.process_transactions([
            make_purchase("tx-old", "2023-12-31T23:59:59", "0.1", "4000"),
            make_purchase("tx-first", "2024-01-01T00:00:00", "0.1", "4000"),
            make_purchase("tx-last", "2024-12-31T23:59:59", "0.1", "9000"),
            make_purchase("tx-next", "2025-01-01T00:00:00", "0.1", "9000"),
        ])
        assert [lot.transaction_id for lot in calculator.ledger.get_all_lots()] == ["tx-first", "tx-last"]

    def test_string_dates_are_parsed(self):
        calculator = make_calculator()
        purchase = make_purchase("tx-1", None, "0.1", "4000")
        purchase.date = "2024-05-01"
        calculator.process_transactions([purchase])
        assert calculator.ledger.get_lot("lot-1").purchase_date == datetime(2024, 5, 1)

    def test_unparseable_date_is_excluded(self, caplog):
        calculator = make_calculator()
        purchase = make_purchase("tx-1", None, "0.1", "4000")
        purchase.date = "sometime in spring"
        with caplog.at_level("WARNING"):
            result = calculator.process_transactions([purchase])
        assert len(calculator.ledger) == 0
        assert _codes(result.warnings) == [ValidationCode.NO_TRANSACTIONS]
        assert "unparseable date" in caplog.text

    def test_empty_period_warns(self):
        result = make_calculator().process_transactions([])
        assert result.is_valid
        assert _codes(result.warnings) == [ValidationCode.NO_TRANSACTIONS]
        assert str(DEFAULT_TAX_YEAR) in result.warnings[0].message

    def test_custody_movements_are_skipped(self):
        calculator = make_calculator()
        transfer = make_purchase("tx-3", "2024-03-01", "0.01", "0", type="Transfer")
        flagged = make_purchase("tx-4", "2024-03-02", "0.01", "600", is_taxable=False)
        result = calculator.process_transactions([
            make_purchase("tx-1", "2024-01-15", "0.1", "4000"),
            make_withdrawal("tx-2", "2024-02-01", "0.05", destination_wallet="bc1-cold"),
            transfer,
            flagged,
        ])
        assert len(calculator.ledger) == 1
        assert _codes(result.warnings) == [ValidationCode.WITHDRAWAL_SKIPPED] * 3
        assert result.warnings[0].event_id == "tx-2"
        assert "bc1-cold" in result.warnings[0].message
        assert "self-custody" in result.warnings[1].message

    def test_non_positive_acquisition_is_an_error_and_batch_continues(self):
        calculator = make_calculator()
        result = calculator.process_transactions([
            make_purchase("tx-1", "2024-01-15", "0", "0"),
            make_purchase("tx-2", "2024-02-15", "0.1", "4000"),
        ])
        assert _codes(result.errors) == [ValidationCode.ACQUISITION_ERROR]
        assert result.errors[0].event_id == "tx-1"
        assert [lot.transaction_id for lot in calculator.ledger.get_all_lots()] == ["tx-2"]

    def test_failed_disposal_is_collected_and_others_still_apply(self):
        disposals = [
            make_disposal("2024-06-01", "1.0", "60000", disposal_id="too-big"),
            make_disposal("2024-06-02", "0.02", "60000", disposal_id="ok"),
        ]
        calculator = make_calculator(disposals=disposals)
        result = calculator.process_transactions(_priced_purchases())
        assert _codes(result.errors) == [ValidationCode.DISPOSAL_ERROR]
        assert result.errors[0].event_id == "too-big"
        assert "Insufficient balance" in result.errors[0].message
        assert [event.id for event in calculator.disposal_events] == ["disposal-ok"]
        assert calculator.ledger.total_remaining_quantity() == Decimal("0.10")

    def test_malformed_disposals_are_collected_not_raised(self):
        aware = make_disposal(datetime(2024, 6, 1, tzinfo=timezone.utc), "0.01", "60000", disposal_id="aware")
        no_price = DisposalRequest(quantity=Decimal("0.01"), date=datetime(2024, 6, 2), sale_price=None, id="no-price")
        valid = make_disposal("2024-06-03", "0.01", "60000", disposal_id="valid")
        calculator = make_calculator(disposals=[aware, no_price, valid])

        result = calculator.process_transactions(_priced_purchases())

        assert _codes(result.errors) == [ValidationCode.DISPOSAL_ERROR]
        assert result.errors[0].event_id == "no-price"
        assert [event.id for event in calculator.disposal_events] == ["disposal-aware", "disposal-valid"]
        assert calculator.disposal_events[0].date == datetime(2024, 6, 1)
        assert calculator.ledger.total_remaining_quantity() == Decimal("0.10")

    def test_disposals_use_configured_method(self):
        calculator = make_calculator(
            method="HIFO",
            disposals=[make_disposal("2024-06-01", "0.05", "60000", total_proceeds="3000")],
        )
        calculator.process_transactions(_priced_purchases())
        event = calculator.disposal_events[0]
        assert event.cost_basis == Decimal("2700")
        assert event.capital_gain == Decimal("300")

    def test_specific_id_without_lot_ids_warns(self):
        calculator = make_calculator(
            method=LotSelectionMethod.SPECIFIC_ID,
            disposals=[
                make_disposal("2024-06-01", "0.01", "60000", disposal_id="named", lot_ids=["lot-3"]),
                make_disposal("2024-06-02", "0.01", "60000", disposal_id="unnamed"),
            ],
        )
        result = calculator.process_transactions(_priced_purchases())
        assert _codes(result.warnings) == [ValidationCode.SPECIFIC_ID_FALLBACK]
        assert result.warnings[0].event_id == "unnamed"
        assert [f.lot_id for e in calculator.disposal_events for f in e.disposed_lots] == ["lot-3", "lot-1"]

    def test_reprocessing_resets_state(self):
        calculator = make_calculator(disposals=[make_disposal("2024-06-01", "0.01", "60000")])
        calculator.process_transactions(_priced_purchases())
        calculator.process_transactions(_priced_purchases()[:1])
        assert [lot.lot_id for lot in calculator.ledger.get_all_lots()] == ["lot-1"]
        assert len(calculator.acquisition_events) == 1
        assert len(calculator.disposal_events) == 1
        assert calculator.ledger.total_remaining_quantity() == Decimal("0.01")

    def test_ledger_findings_are_folded_into_errors(self):
        calculator = make_calculator()
        result = calculator.process_transactions([make_purchase("tx-1", "2024-01-15", "0.1", "0")])
        assert _codes(result.errors) == [ValidationCode.ZERO_COST_BASIS]


# =============================================================================
# Report Generation
# =============================================================================

class TestGenerateReport:

    def test_report_contents(self):
        calculator = make_calculator(
            disposals=[make_disposal("2024-06-01", "0.03", "60000", total_proceeds="1800")],
        )
        calculator.process_transactions(_priced_purchases())
        report = calculator.generate_report()

        assert report.tax_year == DEFAULT_TAX_YEAR
        assert report.method == LotSelectionMethod.FIFO
        assert report.start_date == datetime(2024, 1, 1)
        assert report.end_date.date() == datetime(2024, 12, 31).date()
        assert report.total_transactions == 4
        assert report.is_complete is True
        assert report.errors == []
        assert report.warnings == []
        assert len(report.acquisitions) == 3
        assert len(report.disposals) == 1
        assert [lot.lot_id for lot in report.remaining_lots] == ["lot-2", "lot-3"]

        summary = report.summary
        # 0.02 of lot-1 (1000) plus 0.01 of lot-2 (550)
        assert summary.total_gains == Decimal("250")
        assert summary.short_term_gains == Decimal("250")
        assert summary.total_disposals == 1
        assert summary.short_term_disposals == 1
        assert summary.unrealized_gain is None
        assert report.reference_price is None

    def test_report_carries_long_term_threshold(self):
        calculator = make_calculator(long_term_threshold_days=400)
        calculator.process_transactions(_priced_purchases())
        assert calculator.generate_report().long_term_threshold_days == 400

    def test_unrealized_gain_with_reference_price(self):
        calculator = make_calculator()
        calculator.process_transactions([make_purchase("tx-1", "2024-03-15", "0.06", "3000")])
        assert calculator.generate_report(Decimal("60000")).summary.unrealized_gain == Decimal("600")
        assert calculator.generate_report(Decimal("40000")).summary.unrealized_gain == Decimal("-600")

    def test_acquisitions_only_note(self):
        calculator = make_calculator()
        calculator.process_transactions(_priced_purchases())
        report = calculator.generate_report()
        assert "No disposal events found - this report shows acquisitions only" in report.warnings

    def test_fully_disposed_note(self):
        calculator = make_calculator(disposals=[make_disposal("2024-06-01", "0.12", "60000")])
        calculator.process_transactions(_priced_purchases())
        report = calculator.generate_report()
        assert "No remaining BTC lots - all holdings appear to have been disposed" in report.warnings

    def test_errors_make_report_incomplete(self):
        calculator = make_calculator(disposals=[make_disposal("2024-06-01", "5", "60000")])
        calculator.process_transactions(_priced_purchases())
        report = calculator.generate_report()
        assert report.is_complete is False
        assert len(report.errors) == 1
        assert report.errors[0].startswith("Failed to process disposal")

    def test_generate_report_does_not_change_state(self):
        calculator = make_calculator(disposals=[make_disposal("2024-06-01", "0.03", "60000")])
        calculator.process_transactions(_priced_purchases())
        before = [(lot.lot_id, lot.remaining) for lot in calculator.ledger.get_all_lots()]
        calculator.generate_report(Decimal("50000"))
        calculator.generate_report()
        assert [(lot.lot_id, lot.remaining) for lot in calculator.ledger.get_all_lots()] == before


# =============================================================================
# Simulation and Comparison
# =============================================================================

class TestSimulation:

    def test_simulation_leaves_ledger_untouched(self):
        calculator = make_calculator()
        calculator.process_transactions(_priced_purchases())
        before = [(lot.lot_id, lot.remaining) for lot in calculator.ledger.get_remaining_lots()]

        simulation = calculator.simulate_disposal(Decimal("0.03"), Decimal("60000"), datetime(2024, 6, 1))

        assert simulation.proceeds == Decimal("1800")
        assert simulation.cost_basis == Decimal("1550")
        assert simulation.capital_gain == Decimal("250")
        assert simulation.holding_period == HoldingPeriod.SHORT_TERM
        assert [(lot.lot_id, lot.remaining) for lot in calculator.ledger.get_remaining_lots()] == before

    def test_simulation_raises_ledger_errors(self):
        calculator = make_calculator()
        with pytest.raises(EmptyLedgerError):
            calculator.simulate_disposal(Decimal("0.01"), Decimal("60000"))
        calculator.process_transactions(_priced_purchases())
        with pytest.raises(InsufficientBalanceError):
            calculator.simulate_disposal(Decimal("1"), Decimal("60000"))

    def test_simulation_accepts_plain_numbers(self):
        calculator = make_calculator()
        calculator.process_transactions(_priced_purchases())
        simulation = calculator.simulate_disposal("0.02", 60000, datetime(2024, 6, 1))
        assert simulation.cost_basis == Decimal("1000")

    def test_compare_methods(self):
        calculator = make_calculator()
        calculator.process_transactions(_priced_purchases())
        comparison = calculator.compare_methods(Decimal("0.03"), Decimal("60000"), datetime(2024, 6, 1))
        assert list(comparison) == [LotSelectionMethod.FIFO, LotSelectionMethod.LIFO, LotSelectionMethod.HIFO]
        assert comparison[LotSelectionMethod.FIFO].cost_basis == Decimal("1550")
        assert comparison[LotSelectionMethod.LIFO].cost_basis == Decimal("1350")
        assert comparison[LotSelectionMethod.HIFO].cost_basis == Decimal("1650")
        assert calculator.ledger.total_remaining_quantity() == Decimal("0.12")


# =============================================================================
# Optimization Suggestions
# =============================================================================

class TestSuggestOptimizations:

    def test_empty_ledger(self):
        assert make_calculator().suggest_optimizations(Decimal("60000")) == ["No remaining lots to optimize"]

    def test_loss_harvesting_and_holding_suggestions(self):
        calculator = make_calculator()
        calculator.process_transactions(_priced_purchases())
        suggestions = calculator.suggest_optimizations(Decimal("48000"), as_of=datetime(2024, 6, 1))
        assert suggestions == [
            "Tax-loss harvesting opportunity: 2 lots with potential losses totaling $320.00",
            "Consider holding 3 lots longer for long-term capital gains treatment",
            "Current method: FIFO. Consider comparing FIFO, LIFO, and HIFO methods for optimal tax treatment.",
        ]

    def test_only_method_hint_when_nothing_to_harvest(self):
        calculator = make_calculator(method="HIFO")
        calculator.process_transactions(_priced_purchases())
        suggestions = calculator.suggest_optimizations(Decimal("100000"), as_of=datetime(2026, 1, 1))
        assert suggestions == [
            "Current method: HIFO. Consider comparing FIFO, LIFO, and HIFO methods for optimal tax treatment."
        ]


# =============================================================================
# Configuration
# =============================================================================

class TestConfiguration:

    def test_get_configuration_returns_a_copy(self):
        calculator = make_calculator(disposals=[make_disposal("2024-06-01", "0.01", "60000")])
        configuration = calculator.get_configuration()
        configuration.disposals.clear()
        configuration.tax_year = 1999
        assert len(calculator.get_configuration().disposals) == 1
        assert calculator.get_configuration().tax_year == DEFAULT_TAX_YEAR

    def test_update_configuration(self):
        calculator = make_calculator()
        calculator.update_configuration(method="lifo", long_term_threshold_days=30)
        configuration = calculator.get_configuration()
        assert configuration.method == LotSelectionMethod.LIFO
        assert calculator.ledger.long_term_threshold_days == 30

    def test_invalid_configuration_is_rejected(self):
        calculator = make_calculator()
        with pytest.raises(ValueError):
            calculator.update_configuration(method="AVERAGE")
        with pytest.raises(ValueError):
            calculator.update_configuration(long_term_threshold_days=-1)
        assert calculator.get_configuration().method == LotSelectionMethod.FIFO
