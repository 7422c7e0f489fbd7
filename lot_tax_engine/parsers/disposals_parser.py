# lot_tax_engine/parsers/disposals_parser.py
import csv
import logging
from typing import List
from pydantic import ValidationError

from .raw_models import RawDisposalRecord

logger = logging.getLogger(__name__)


def parse_disposals_csv(file_path: str, encoding='utf-8-sig') -> List[RawDisposalRecord]:
    raw_disposals: List[RawDisposalRecord] = []
    try:
        with open(file_path, mode='r', encoding=encoding, newline='') as csvfile:
            reader = csv.DictReader(csvfile)
            for i, row_dict in enumerate(reader):
                try:
                    raw_disposals.append(RawDisposalRecord(**row_dict))
                except ValidationError as e:
                    logger.warning(f"Validation error parsing disposal row {i+2}: {row_dict}. Error: {e.errors()}")
    except FileNotFoundError:
        logger.error(f"Disposals file not found: {file_path}")
    return raw_disposals
