import logging
from decimal import Decimal, Context
from typing import List, Optional

from lot_tax_engine.domain.enums import HoldingPeriod
from lot_tax_engine.domain.events import DisposalEvent
from lot_tax_engine.domain.results import TaxPeriodSummary
from lot_tax_engine.engine.lot_ledger import LotLedger
import lot_tax_engine.config as global_config

logger = logging.getLogger(__name__)


class PeriodSummaryCalculator:
    def __init__(self,
                 disposals: List[DisposalEvent],
                 ledger: LotLedger,
                 reference_price: Optional[Decimal] = None):
        self.disposals = disposals
        self.ledger = ledger
        self.reference_price = reference_price

        self.ctx = Context(prec=global_config.INTERNAL_CALCULATION_PRECISION, rounding=global_config.DECIMAL_ROUNDING_MODE)

    def calculate_summary(self) -> TaxPeriodSummary:
        total_gains = self.ctx.create_decimal(Decimal('0'))
        total_losses = self.ctx.create_decimal(Decimal('0'))
        short_term_gains = self.ctx.create_decimal(Decimal('0'))
        long_term_gains = self.ctx.create_decimal(Decimal('0'))
        short_term_losses = self.ctx.create_decimal(Decimal('0'))
        long_term_losses = self.ctx.create_decimal(Decimal('0'))
        short_term_disposals = 0
        long_term_disposals = 0

        for disposal in self.disposals:
            gain = disposal.capital_gain if disposal.capital_gain is not None else Decimal('0')
            is_short_term = disposal.holding_period == HoldingPeriod.SHORT_TERM

            if is_short_term:
                short_term_disposals += 1
            else:
                long_term_disposals += 1

            if gain >= Decimal('0'):
                total_gains = self.ctx.add(total_gains, gain)
                if is_short_term:
                    short_term_gains = self.ctx.add(short_term_gains, gain)
                else:
                    long_term_gains = self.ctx.add(long_term_gains, gain)
            else:
                loss = gain.copy_abs()
                total_losses = self.ctx.add(total_losses, loss)
                if is_short_term:
                    short_term_losses = self.ctx.add(short_term_losses, loss)
                else:
                    long_term_losses = self.ctx.add(long_term_losses, loss)

        remaining_quantity = self.ledger.total_remaining_quantity()

        unrealized_gain: Optional[Decimal] = None
        if self.reference_price is not None:
            unrealized_gain = self.ledger.unrealized_gain(self.reference_price)

        logger.debug(f"Summary over {len(self.disposals)} disposals: gains {total_gains}, losses {total_losses}, "
                     f"remaining qty {remaining_quantity}")

        return TaxPeriodSummary(
            total_gains=total_gains,
            total_losses=total_losses,
            net_gains=self.ctx.subtract(total_gains, total_losses),
            short_term_gains=short_term_gains,
            long_term_gains=long_term_gains,
            short_term_losses=short_term_losses,
            long_term_losses=long_term_losses,
            total_disposals=len(self.disposals),
            short_term_disposals=short_term_disposals,
            long_term_disposals=long_term_disposals,
            total_cost_basis=self.ledger.total_cost_basis(),
            remaining_quantity=remaining_quantity,
            remaining_cost_basis=self.ledger.remaining_cost_basis(),
            unrealized_gain=unrealized_gain,
        )
