# lot_tax_engine/utils/sorting_utils.py
import logging
from datetime import datetime
from typing import Any, List, Sequence, Tuple, TYPE_CHECKING

from lot_tax_engine.domain.enums import LotSelectionMethod

if TYPE_CHECKING:
    from lot_tax_engine.engine.lot_ledger import TaxLot

logger = logging.getLogger(__name__)


def _purchase_date_key(lot: "TaxLot") -> datetime:
    # Lots with an unparseable date sort as the oldest; validate() reports them separately.
    return lot.purchase_date if isinstance(lot.purchase_date, datetime) else datetime.min


def get_lot_sort_key(lot: "TaxLot", method: LotSelectionMethod) -> Tuple[Any, ...]:
    """
    Primary ordering key for a lot under the given method.
    FIFO/LIFO/SPECIFIC_ID order by purchase date; HIFO orders by price per unit, not by date.
    Ties are left to the stable sort, which keeps insertion order.
    """
    if method == LotSelectionMethod.HIFO:
        return (lot.price_per_unit,)
    return (_purchase_date_key(lot),)


def order_lots_for_disposal(lots: Sequence["TaxLot"], method: LotSelectionMethod) -> List["TaxLot"]:
    """
    Returns the candidate lots in consumption order.
    - FIFO: ascending purchase date
    - LIFO: descending purchase date
    - HIFO: descending price per unit
    SPECIFIC_ID without explicit lots is ordered like FIFO.
    """
    descending = method in (LotSelectionMethod.LIFO, LotSelectionMethod.HIFO)
    # sorted() is stable for reverse=True as well, so equal keys keep insertion order.
    return sorted(lots, key=lambda lot: get_lot_sort_key(lot, method), reverse=descending)
