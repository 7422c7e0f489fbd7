# lot_tax_engine/domain/events.py
from dataclasses import dataclass, field, KW_ONLY
from datetime import datetime
from decimal import Decimal
import uuid
from typing import Optional, Tuple

from .enums import HoldingPeriod, TaxEventType, CUSTODY_TRANSACTION_TYPES


@dataclass
class Transaction:
    """
    A normalized transaction as delivered by the import layer.
    Field names follow the import layer's record; amounts are in USD, quantity in units of the asset.
    """
    id: str
    date: Optional[datetime]
    exchange: str
    type: str
    usd_amount: Decimal
    quantity: Decimal
    price: Decimal

    _: KW_ONLY
    # Withdrawal tracking (optional for older imports)
    destination_wallet: Optional[str] = None
    network_fee: Optional[Decimal] = None  # In units of the asset
    network_fee_usd: Optional[Decimal] = None
    is_self_custody: Optional[bool] = None
    notes: Optional[str] = None

    # Tax treatment flag. None means "derive from type".
    is_taxable: Optional[bool] = None

    def is_custody_movement(self) -> bool:
        """True for self-custody withdrawals and transfers, which never create a lot."""
        if self.type in CUSTODY_TRANSACTION_TYPES:
            return True
        if self.is_self_custody is True:
            return True
        if self.is_taxable is False:
            return True
        return False


@dataclass(frozen=True)
class DisposalRequest:
    """A sale, spend or gift-out to be allocated against lots. Never mutated by the engine."""
    quantity: Decimal
    date: datetime
    sale_price: Optional[Decimal]  # Price per unit at sale

    _: KW_ONLY
    total_proceeds: Optional[Decimal] = None  # Defaults to quantity * sale_price
    fees: Decimal = Decimal("0")
    exchange: Optional[str] = None
    notes: Optional[str] = None
    lot_ids: Tuple[str, ...] = ()  # Explicit lots for SPECIFIC_ID, consumed in this order
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def proceeds(self) -> Optional[Decimal]:
        if self.total_proceeds is not None:
            return self.total_proceeds
        if self.sale_price is None:
            return None
        return self.quantity * self.sale_price


@dataclass(frozen=True)
class DisposedLotFragment:
    lot_id: str
    quantity: Decimal    # Amount taken from this lot
    cost_basis: Decimal  # Proportional share of the lot's cost basis
    purchase_date: Optional[datetime]
    holding_period: HoldingPeriod


@dataclass(frozen=True)
class AcquisitionEvent:
    id: str
    date: datetime
    quantity: Decimal
    usd_value: Decimal
    cost_basis: Decimal
    transaction_id: str
    exchange: str
    event_type: TaxEventType = TaxEventType.ACQUISITION


@dataclass(frozen=True)
class DisposalEvent:
    id: str
    date: datetime
    quantity: Decimal
    proceeds: Decimal
    cost_basis: Decimal
    fees: Decimal
    capital_gain: Decimal  # proceeds - cost_basis - fees, negative for a loss
    holding_period: HoldingPeriod
    disposed_lots: Tuple[DisposedLotFragment, ...]

    _: KW_ONLY
    exchange: Optional[str] = None
    notes: Optional[str] = None
    event_type: TaxEventType = TaxEventType.DISPOSAL
