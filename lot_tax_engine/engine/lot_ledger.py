import logging
from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta
from decimal import Decimal, Context
from typing import Any, Dict, Iterable, List, Optional

from lot_tax_engine.domain.enums import HoldingPeriod, LotSelectionMethod, ValidationCode
from lot_tax_engine.domain.events import Transaction, DisposalRequest, DisposedLotFragment, DisposalEvent
from lot_tax_engine.domain.results import ValidationIssue
from lot_tax_engine.utils.sorting_utils import order_lots_for_disposal
from lot_tax_engine.utils.type_utils import safe_decimal, parse_datetime
import lot_tax_engine.config as global_config

logger = logging.getLogger(__name__)


class LotLedgerError(Exception):
    """Base class for failures that leave the ledger untouched."""


class EmptyLedgerError(LotLedgerError):
    pass


class InsufficientBalanceError(LotLedgerError):
    def __init__(self, requested: Decimal, available: Decimal):
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient balance: trying to dispose {requested}, only {available} available")


class InvalidDisposalError(LotLedgerError):
    pass


class UnknownLotError(LotLedgerError):
    pass


@dataclass
class TaxLot:
    lot_id: str
    transaction_id: str
    purchase_date: Optional[datetime]  # None when the stored date could not be parsed
    quantity: Decimal   # Original amount acquired
    remaining: Decimal  # Decremented in place by disposals
    cost_basis: Decimal  # Total USD cost, fixed at acquisition
    exchange: str = ""

    @property
    def price_per_unit(self) -> Decimal:
        if not self.quantity:
            return Decimal(0)
        return self.cost_basis / self.quantity

    def copy(self) -> "TaxLot":
        return replace(self)

    def to_record(self) -> Dict[str, Any]:
        """Plain structural form. Decimals are strings so no precision is lost in JSON."""
        return {
            "lot_id": self.lot_id,
            "transaction_id": self.transaction_id,
            "purchase_date": self.purchase_date.isoformat() if isinstance(self.purchase_date, datetime) else None,
            "quantity": format(self.quantity, "f"),
            "remaining": format(self.remaining, "f"),
            "cost_basis": format(self.cost_basis, "f"),
            "price_per_unit": format(self.price_per_unit, "f"),
            "exchange": self.exchange,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "TaxLot":
        lot_id = record.get("lot_id") or record.get("id")
        if not lot_id:
            raise ValueError(f"Lot record has no id: {record}")
        purchase_date = parse_datetime(record.get("purchase_date"))
        if purchase_date is None:
            logger.warning(f"Lot record {lot_id} has unparseable purchase date '{record.get('purchase_date')}'. Loaded without a date.")
        quantity = safe_decimal(record.get("quantity"), default=Decimal(0))
        return cls(
            lot_id=str(lot_id),
            transaction_id=str(record.get("transaction_id") or ""),
            purchase_date=purchase_date,
            quantity=quantity,
            remaining=safe_decimal(record.get("remaining"), default=quantity),
            cost_basis=safe_decimal(record.get("cost_basis"), default=Decimal(0)),
            exchange=str(record.get("exchange") or ""),
        )


_CORRECTABLE_FIELDS = {f.name for f in fields(TaxLot)} - {"lot_id"}


class LotLedger:
    """
    Owns the acquisition lots of one asset and allocates disposals against them.

    Lot state changes only through create_lot() and consume(); the correction helpers
    (update_lot, remove_lot, clear) exist for administrative repair. Every read returns copies.
    The ledger has no internal locking and must have a single owner.
    """
    LOT_ID_PREFIX = "lot-"

    def __init__(self,
                 lots: Optional[Iterable[TaxLot]] = None,
                 long_term_threshold_days: int = global_config.LONG_TERM_THRESHOLD_DAYS,
                 internal_calculation_precision: int = global_config.INTERNAL_CALCULATION_PRECISION,
                 decimal_rounding_mode: str = global_config.DECIMAL_ROUNDING_MODE):
        self.long_term_threshold_days = long_term_threshold_days
        self.internal_calculation_precision = internal_calculation_precision
        self.decimal_rounding_mode = decimal_rounding_mode
        self.ctx = Context(prec=internal_calculation_precision, rounding=decimal_rounding_mode)

        self._lots: Dict[str, TaxLot] = {}  # Insertion ordered, which is the FIFO tie-breaker
        for lot in lots or []:
            self._lots[lot.lot_id] = lot.copy()
        self._next_lot_number = self._restore_lot_counter()

    def __len__(self) -> int:
        return len(self._lots)

    def _restore_lot_counter(self) -> int:
        max_number = 0
        for lot_id in self._lots:
            suffix = lot_id[len(self.LOT_ID_PREFIX):] if lot_id.startswith(self.LOT_ID_PREFIX) else ""
            if suffix.isdigit():
                max_number = max(max_number, int(suffix))
        return max_number + 1

    def create_lot(self, transaction: Transaction) -> TaxLot:
        quantity = safe_decimal(transaction.quantity)
        cost_basis = safe_decimal(transaction.usd_amount)
        if quantity is None or cost_basis is None:
            raise ValueError(f"Transaction {transaction.id} lacks a quantity or USD amount; cannot create a lot.")

        lot_id = f"{self.LOT_ID_PREFIX}{self._next_lot_number}"
        self._next_lot_number += 1

        lot = TaxLot(
            lot_id=lot_id,
            transaction_id=transaction.id,
            purchase_date=transaction.date,
            quantity=quantity,
            remaining=quantity,
            cost_basis=cost_basis,
            exchange=transaction.exchange or "",
        )
        self._lots[lot_id] = lot
        logger.debug(f"Created {lot_id} from transaction {transaction.id}: qty {quantity}, cost basis {cost_basis}")
        return lot.copy()

    def classify_holding_period(self, purchase_date: Optional[datetime], sale_date: Optional[datetime]) -> HoldingPeriod:
        # Compared as naive datetimes, the same way transaction dates are filtered
        purchase_date = parse_datetime(purchase_date)
        sale_date = parse_datetime(sale_date)
        if purchase_date is None or sale_date is None:
            return HoldingPeriod.SHORT_TERM
        if sale_date - purchase_date > timedelta(days=self.long_term_threshold_days):
            return HoldingPeriod.LONG_TERM
        return HoldingPeriod.SHORT_TERM

    def _select_candidates(self, available: List[TaxLot], request: DisposalRequest,
                           method: LotSelectionMethod) -> List[TaxLot]:
        if method == LotSelectionMethod.SPECIFIC_ID:
            if request.lot_ids:
                selected: List[TaxLot] = []
                seen = set()
                for lot_id in request.lot_ids:
                    lot = self._lots.get(lot_id)
                    if lot is None:
                        raise UnknownLotError(f"Disposal {request.id} names unknown lot '{lot_id}'")
                    if lot_id not in seen and lot.remaining > 0:
                        selected.append(lot)
                        seen.add(lot_id)
                return selected
            logger.warning(f"Disposal {request.id}: SPECIFIC_ID requested without lot ids. Falling back to FIFO ordering.")
            method = LotSelectionMethod.FIFO
        return order_lots_for_disposal(available, method)

    def _resolve_proceeds(self, request: DisposalRequest, quantity: Decimal) -> Decimal:
        total_proceeds = safe_decimal(request.total_proceeds)
        if total_proceeds is not None and total_proceeds.is_finite():
            return total_proceeds
        sale_price = safe_decimal(request.sale_price)
        if sale_price is None or not sale_price.is_finite():
            raise InvalidDisposalError(
                f"Disposal {request.id} has neither total proceeds nor a usable sale price (got {request.sale_price!r})"
            )
        return self.ctx.multiply(quantity, sale_price)

    def consume(self, request: DisposalRequest,
                method: LotSelectionMethod | str = LotSelectionMethod.FIFO) -> DisposalEvent:
        """
        Allocates a disposal against the lots and returns the resulting disposal event.
        Raises EmptyLedgerError, InsufficientBalanceError or InvalidDisposalError without touching any lot.
        """
        method = LotSelectionMethod.from_name(method)
        quantity_to_dispose = safe_decimal(request.quantity)
        if quantity_to_dispose is None or not quantity_to_dispose.is_finite() or quantity_to_dispose <= Decimal(0):
            raise InvalidDisposalError(f"Disposal {request.id} quantity must be a positive finite amount, got {request.quantity}")

        proceeds = self._resolve_proceeds(request, quantity_to_dispose)
        fees = safe_decimal(request.fees, default=Decimal(0))
        sale_date = parse_datetime(request.date)

        available = [lot for lot in self._lots.values() if lot.remaining > Decimal(0)]
        if not available:
            raise EmptyLedgerError("No lots available for disposal")

        candidates = self._select_candidates(available, request, method)
        total_available = sum((lot.remaining for lot in candidates), Decimal(0))
        if quantity_to_dispose > total_available:
            raise InsufficientBalanceError(quantity_to_dispose, total_available)

        # Plan every fragment before mutating anything
        fragments: List[DisposedLotFragment] = []
        allocations: List[tuple] = []
        quantity_remaining_to_dispose = quantity_to_dispose
        for lot in candidates:
            if quantity_remaining_to_dispose <= Decimal(0):
                break
            quantity_from_this_lot = min(quantity_remaining_to_dispose, lot.remaining)
            if lot.quantity:
                cost_basis_for_portion = self.ctx.divide(self.ctx.multiply(quantity_from_this_lot, lot.cost_basis), lot.quantity)
            else:
                cost_basis_for_portion = Decimal(0)

            fragments.append(DisposedLotFragment(
                lot_id=lot.lot_id,
                quantity=quantity_from_this_lot,
                cost_basis=cost_basis_for_portion,
                purchase_date=lot.purchase_date,
                holding_period=self.classify_holding_period(lot.purchase_date, sale_date),
            ))
            allocations.append((lot, quantity_from_this_lot))
            quantity_remaining_to_dispose = self.ctx.subtract(quantity_remaining_to_dispose, quantity_from_this_lot)

        for lot, quantity_from_this_lot in allocations:
            lot.remaining = self.ctx.subtract(lot.remaining, quantity_from_this_lot)

        total_cost_basis = Decimal(0)
        for fragment in fragments:
            total_cost_basis = self.ctx.add(total_cost_basis, fragment.cost_basis)
        capital_gain = self.ctx.subtract(self.ctx.subtract(proceeds, total_cost_basis), fees)

        # A disposal spanning several lots is long-term only if every fragment is
        if any(f.holding_period == HoldingPeriod.SHORT_TERM for f in fragments):
            overall_holding_period = HoldingPeriod.SHORT_TERM
        else:
            overall_holding_period = HoldingPeriod.LONG_TERM

        logger.info(f"Disposal {request.id}: {quantity_to_dispose} from {len(fragments)} lot(s) via {method.name}, "
                    f"cost basis {total_cost_basis}, gain {capital_gain} ({overall_holding_period.name})")

        return DisposalEvent(
            id=f"disposal-{request.id}",
            date=sale_date if sale_date is not None else request.date,
            quantity=quantity_to_dispose,
            proceeds=proceeds,
            cost_basis=total_cost_basis,
            fees=fees,
            capital_gain=capital_gain,
            holding_period=overall_holding_period,
            disposed_lots=tuple(fragments),
            exchange=request.exchange,
            notes=request.notes,
        )

    # --- Queries (recomputed on every call) ---

    def get_all_lots(self) -> List[TaxLot]:
        return [lot.copy() for lot in self._lots.values()]

    def get_remaining_lots(self) -> List[TaxLot]:
        return [lot.copy() for lot in self._lots.values() if lot.remaining > Decimal(0)]

    def get_lot(self, lot_id: str) -> Optional[TaxLot]:
        lot = self._lots.get(lot_id)
        return lot.copy() if lot else None

    def total_cost_basis(self) -> Decimal:
        total = Decimal(0)
        for lot in self._lots.values():
            total = self.ctx.add(total, lot.cost_basis)
        return total

    def total_remaining_quantity(self) -> Decimal:
        total = Decimal(0)
        for lot in self._lots.values():
            total = self.ctx.add(total, lot.remaining)
        return total

    def remaining_cost_basis(self) -> Decimal:
        total = Decimal(0)
        for lot in self._lots.values():
            if lot.remaining > Decimal(0) and lot.quantity:
                portion = self.ctx.divide(self.ctx.multiply(lot.remaining, lot.cost_basis), lot.quantity)
                total = self.ctx.add(total, portion)
        return total

    def unrealized_gain(self, reference_price: Decimal) -> Decimal:
        current_value = self.ctx.multiply(self.total_remaining_quantity(), safe_decimal(reference_price, default=Decimal(0)))
        return self.ctx.subtract(current_value, self.remaining_cost_basis())

    def validate(self) -> List[ValidationIssue]:
        """Integrity scan. Reports problems, never repairs them."""
        issues: List[ValidationIssue] = []
        for lot in self._lots.values():
            if lot.remaining < Decimal(0):
                issues.append(ValidationIssue(
                    code=ValidationCode.NEGATIVE_REMAINING,
                    message=f"Lot {lot.lot_id} has negative remaining amount: {lot.remaining}",
                    lot_id=lot.lot_id,
                ))
            if lot.remaining > lot.quantity:
                issues.append(ValidationIssue(
                    code=ValidationCode.REMAINING_EXCEEDS_ORIGINAL,
                    message=f"Lot {lot.lot_id} remaining ({lot.remaining}) exceeds original amount ({lot.quantity})",
                    lot_id=lot.lot_id,
                ))
            if lot.cost_basis <= Decimal(0):
                issues.append(ValidationIssue(
                    code=ValidationCode.ZERO_COST_BASIS,
                    message=f"Lot {lot.lot_id} has zero or negative cost basis: {lot.cost_basis}",
                    lot_id=lot.lot_id,
                ))
            if not isinstance(lot.purchase_date, datetime):
                issues.append(ValidationIssue(
                    code=ValidationCode.INVALID_DATE,
                    message=f"Lot {lot.lot_id} has invalid purchase date",
                    lot_id=lot.lot_id,
                ))
        return issues

    # --- Administrative corrections ---

    def update_lot(self, lot_id: str, /, **changes: Any) -> bool:
        lot = self._lots.get(lot_id)
        if lot is None:
            return False
        unknown = set(changes) - _CORRECTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot correct field(s) {sorted(unknown)} on lot {lot_id}")
        for name, value in changes.items():
            setattr(lot, name, value)
        logger.warning(f"Lot {lot_id} manually corrected: {changes}")
        return True

    def remove_lot(self, lot_id: str) -> bool:
        return self._lots.pop(lot_id, None) is not None

    def clear(self) -> None:
        self._lots.clear()
        self._next_lot_number = 1

    # --- Serialization ---

    def to_records(self) -> List[Dict[str, Any]]:
        return [lot.to_record() for lot in self._lots.values()]

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]], **ledger_kwargs: Any) -> "LotLedger":
        return cls([TaxLot.from_record(r) for r in records], **ledger_kwargs)

    def clone(self) -> "LotLedger":
        """Independent full copy, used for what-if calculations."""
        return LotLedger(
            self.get_all_lots(),
            long_term_threshold_days=self.long_term_threshold_days,
            internal_calculation_precision=self.internal_calculation_precision,
            decimal_rounding_mode=self.decimal_rounding_mode,
        )
