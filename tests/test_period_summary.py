from datetime import datetime
from decimal import Decimal

from lot_tax_engine.domain.enums import HoldingPeriod
from lot_tax_engine.domain.events import DisposalEvent
from lot_tax_engine.engine.period_summary import PeriodSummaryCalculator
from tests.support import make_purchase, make_ledger


def _disposal(event_id: str, gain: str, holding_period: HoldingPeriod) -> DisposalEvent:
    gain = Decimal(gain)
    return DisposalEvent(
        id=event_id,
        date=datetime(2024, 6, 1),
        quantity=Decimal("0.01"),
        proceeds=Decimal("600") + gain,
        cost_basis=Decimal("600"),
        fees=Decimal("0"),
        capital_gain=gain,
        holding_period=holding_period,
        disposed_lots=(),
    )


class TestPeriodSummary:

    def test_empty_period(self):
        summary = PeriodSummaryCalculator(disposals=[], ledger=make_ledger([])).calculate_summary()
        assert summary.total_gains == Decimal("0")
        assert summary.total_losses == Decimal("0")
        assert summary.net_gains == Decimal("0")
        assert summary.total_disposals == 0
        assert summary.remaining_quantity == Decimal("0")
        assert summary.unrealized_gain is None

    def test_gains_and_losses_split_by_holding_period(self):
        disposals = [
            _disposal("d1", "300", HoldingPeriod.SHORT_TERM),
            _disposal("d2", "-120.50", HoldingPeriod.SHORT_TERM),
            _disposal("d3", "1000", HoldingPeriod.LONG_TERM),
            _disposal("d4", "-40", HoldingPeriod.LONG_TERM),
            _disposal("d5", "0", HoldingPeriod.LONG_TERM),
        ]
        summary = PeriodSummaryCalculator(disposals=disposals, ledger=make_ledger([])).calculate_summary()

        assert summary.short_term_gains == Decimal("300")
        assert summary.short_term_losses == Decimal("120.50")
        assert summary.long_term_gains == Decimal("1000")
        assert summary.long_term_losses == Decimal("40")
        assert summary.total_gains == Decimal("1300")
        assert summary.total_losses == Decimal("160.50")
        assert summary.net_gains == Decimal("1139.50")
        assert summary.total_disposals == 5
        assert summary.short_term_disposals == 2
        assert summary.long_term_disposals == 3

    def test_totals_reconcile(self):
        disposals = [
            _disposal("d1", "12.34", HoldingPeriod.SHORT_TERM),
            _disposal("d2", "-56.78", HoldingPeriod.LONG_TERM),
        ]
        summary = PeriodSummaryCalculator(disposals=disposals, ledger=make_ledger([])).calculate_summary()
        assert summary.total_gains == summary.short_term_gains + summary.long_term_gains
        assert summary.total_losses == summary.short_term_losses + summary.long_term_losses
        assert summary.net_gains == summary.total_gains - summary.total_losses
        assert summary.total_disposals == summary.short_term_disposals + summary.long_term_disposals

    def test_ledger_positions_and_unrealized_gain(self):
        ledger = make_ledger([
            make_purchase("tx-1", "2024-01-15", "0.02", "1000"),
            make_purchase("tx-2", "2024-03-15", "0.06", "3000"),
        ])
        summary = PeriodSummaryCalculator(
            disposals=[], ledger=ledger, reference_price=Decimal("60000")
        ).calculate_summary()
        assert summary.total_cost_basis == Decimal("4000")
        assert summary.remaining_quantity == Decimal("0.08")
        assert summary.remaining_cost_basis == Decimal("4000")
        assert summary.unrealized_gain == Decimal("800")
