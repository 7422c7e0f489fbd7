# lot_tax_engine/parsers/record_factory.py
import logging
import uuid
from decimal import Decimal
from typing import Iterable, List, Optional

from lot_tax_engine.domain.events import Transaction, DisposalRequest
from lot_tax_engine.parsers.raw_models import RawTransactionRecord, RawDisposalRecord
from lot_tax_engine.utils.type_utils import parse_datetime

logger = logging.getLogger(__name__)


def create_transaction(raw: RawTransactionRecord) -> Transaction:
    """
    Converts a raw transaction row into a domain Transaction.
    An unparseable date is kept as None; the calculator excludes such transactions from every period.
    """
    tx_date = parse_datetime(raw.date)
    if tx_date is None:
        logger.warning(f"Transaction {raw.id}: could not parse date '{raw.date}'.")

    price = raw.price
    if price is None and raw.usd_amount is not None and raw.btc_amount:
        price = raw.usd_amount / raw.btc_amount

    return Transaction(
        id=raw.id,
        date=tx_date,
        exchange=raw.exchange or "",
        type=raw.type,
        usd_amount=raw.usd_amount,
        quantity=raw.btc_amount,
        price=price if price is not None else Decimal(0),
        destination_wallet=raw.destination_wallet,
        network_fee=raw.network_fee,
        network_fee_usd=raw.network_fee_usd,
        is_self_custody=raw.is_self_custody,
        notes=raw.notes,
        is_taxable=raw.is_taxable,
    )


def create_disposal_request(raw: RawDisposalRecord) -> Optional[DisposalRequest]:
    """Returns None when the disposal date cannot be parsed, since no holding period can be derived."""
    disposal_date = parse_datetime(raw.date)
    disposal_id = raw.id or str(uuid.uuid4())
    if disposal_date is None:
        logger.warning(f"Disposal {disposal_id}: could not parse date '{raw.date}'. Skipped.")
        return None

    return DisposalRequest(
        quantity=raw.btc_amount,
        date=disposal_date,
        sale_price=raw.sale_price,
        total_proceeds=raw.total_proceeds,
        fees=raw.fees if raw.fees is not None else Decimal(0),
        exchange=raw.exchange,
        notes=raw.notes,
        lot_ids=tuple(raw.lot_id_list()),
        id=disposal_id,
    )


def create_transactions(raw_records: Iterable[RawTransactionRecord]) -> List[Transaction]:
    return [create_transaction(raw) for raw in raw_records]


def create_disposal_requests(raw_records: Iterable[RawDisposalRecord]) -> List[DisposalRequest]:
    requests: List[DisposalRequest] = []
    for raw in raw_records:
        request = create_disposal_request(raw)
        if request is not None:
            requests.append(request)
    return requests
