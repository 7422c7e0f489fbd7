# lot_tax_engine/domain/enums.py
from enum import Enum


class LotSelectionMethod(Enum):
    """Order in which lots are consumed by a disposal."""
    FIFO = "FIFO"                # Earliest purchase date first
    LIFO = "LIFO"                # Latest purchase date first
    HIFO = "HIFO"                # Highest price per unit first (tax-loss harvesting)
    SPECIFIC_ID = "SPECIFIC_ID"  # Caller names the lots on the disposal request

    @classmethod
    def from_name(cls, name: "str | LotSelectionMethod") -> "LotSelectionMethod":
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).strip().upper().replace("-", "_")]
        except KeyError:
            raise ValueError(f"Unknown lot selection method '{name}'. Expected one of: {', '.join(m.name for m in cls)}") from None


class HoldingPeriod(Enum):
    SHORT_TERM = "SHORT_TERM"  # Held for at most the long-term threshold
    LONG_TERM = "LONG_TERM"    # Held strictly longer than the threshold


class TaxEventType(Enum):
    ACQUISITION = "ACQUISITION"
    DISPOSAL = "DISPOSAL"


class ValidationCode(Enum):
    # Lot integrity findings (LotLedger.validate)
    NEGATIVE_REMAINING = "NEGATIVE_REMAINING"
    REMAINING_EXCEEDS_ORIGINAL = "REMAINING_EXCEEDS_ORIGINAL"
    ZERO_COST_BASIS = "ZERO_COST_BASIS"
    INVALID_DATE = "INVALID_DATE"

    # Batch processing (TaxCalculator.process_transactions)
    NO_TRANSACTIONS = "NO_TRANSACTIONS"
    WITHDRAWAL_SKIPPED = "WITHDRAWAL_SKIPPED"
    ACQUISITION_ERROR = "ACQUISITION_ERROR"
    DISPOSAL_ERROR = "DISPOSAL_ERROR"
    SPECIFIC_ID_FALLBACK = "SPECIFIC_ID_FALLBACK"


# Transaction type labels that mark a non-taxable custody movement
CUSTODY_TRANSACTION_TYPES = frozenset({"Withdrawal", "Transfer"})
