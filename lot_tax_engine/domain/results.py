# lot_tax_engine/domain/results.py
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple, TYPE_CHECKING

from .enums import HoldingPeriod, LotSelectionMethod, ValidationCode
from .events import AcquisitionEvent, DisposalEvent, DisposedLotFragment

if TYPE_CHECKING:
    from lot_tax_engine.engine.lot_ledger import TaxLot


@dataclass(frozen=True)
class ValidationIssue:
    code: ValidationCode
    message: str
    lot_id: Optional[str] = None
    event_id: Optional[str] = None
    details: Optional[str] = None
    suggestion: Optional[str] = None


@dataclass
class ValidationResult:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class TaxPeriodSummary:
    total_gains: Decimal = Decimal('0')
    total_losses: Decimal = Decimal('0')  # Absolute value
    net_gains: Decimal = Decimal('0')
    short_term_gains: Decimal = Decimal('0')
    long_term_gains: Decimal = Decimal('0')
    short_term_losses: Decimal = Decimal('0')
    long_term_losses: Decimal = Decimal('0')

    total_disposals: int = 0
    short_term_disposals: int = 0
    long_term_disposals: int = 0

    total_cost_basis: Decimal = Decimal('0')       # Every lot ever recorded
    remaining_quantity: Decimal = Decimal('0')
    remaining_cost_basis: Decimal = Decimal('0')
    unrealized_gain: Optional[Decimal] = None      # Only with a reference price


@dataclass
class TaxReport:
    tax_year: int
    method: LotSelectionMethod
    generated_at: datetime
    summary: TaxPeriodSummary

    acquisitions: List[AcquisitionEvent]
    disposals: List[DisposalEvent]
    remaining_lots: List["TaxLot"]

    start_date: datetime
    end_date: datetime
    total_transactions: int

    is_complete: bool
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    reference_price: Optional[Decimal] = None
    long_term_threshold_days: int = 365


@dataclass(frozen=True)
class DisposalSimulation:
    """Outcome of a hypothetical disposal. Same shape as a real one, never committed."""
    quantity: Decimal
    proceeds: Decimal
    cost_basis: Decimal
    capital_gain: Decimal
    holding_period: HoldingPeriod
    disposed_lots: Tuple[DisposedLotFragment, ...]
