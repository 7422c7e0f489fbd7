# lot_tax_engine/parsers/transactions_parser.py
import csv
import logging
from typing import List
from pydantic import ValidationError

from .raw_models import RawTransactionRecord

logger = logging.getLogger(__name__)


def parse_transactions_csv(file_path: str, encoding='utf-8-sig') -> List[RawTransactionRecord]:
    raw_transactions: List[RawTransactionRecord] = []
    try:
        with open(file_path, mode='r', encoding=encoding, newline='') as csvfile:
            reader = csv.DictReader(csvfile)
            for i, row_dict in enumerate(reader):
                try:
                    # Pydantic will use Field aliases for mapping
                    raw_transactions.append(RawTransactionRecord(**row_dict))
                except ValidationError as e:
                    logger.warning(f"Validation error parsing transaction row {i+2}: {row_dict}. Error: {e.errors()}")
    except FileNotFoundError:
        logger.error(f"Transactions file not found: {file_path}")
    return raw_transactions
