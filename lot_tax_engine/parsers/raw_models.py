# lot_tax_engine/parsers/raw_models.py
from typing import Optional, Any
from decimal import Decimal, InvalidOperation
from pydantic import BaseModel, ConfigDict, Field, field_validator

from lot_tax_engine.utils.type_utils import safe_decimal, safe_bool


class RawBaseRecord(BaseModel):
    # Rows come from csv.DictReader, so every value arrives as a string (or None for short rows)
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    @staticmethod
    def _blank_to_none(v: Any) -> Any:
        if v is None or str(v).strip() == "":
            return None
        return v

    @classmethod
    def _to_decimal(cls, v: Any) -> Optional[Decimal]:
        v = cls._blank_to_none(v)
        if v is None:
            return None
        try:
            return safe_decimal(v, raise_error=True)
        except InvalidOperation:
            raise ValueError(f"not a number: {v!r}")


class RawTransactionRecord(RawBaseRecord):
    # Header names match the normalized export of the import layer
    id: str = Field(alias="Id")
    date: str = Field(alias="Date")  # Kept as str, parsed by the record factory
    exchange: Optional[str] = Field(None, alias="Exchange")
    type: str = Field("Purchase", alias="Type")
    usd_amount: Optional[Decimal] = Field(None, alias="UsdAmount")
    btc_amount: Optional[Decimal] = Field(None, alias="BtcAmount")
    price: Optional[Decimal] = Field(None, alias="Price")
    destination_wallet: Optional[str] = Field(None, alias="DestinationWallet")
    network_fee: Optional[Decimal] = Field(None, alias="NetworkFee")
    network_fee_usd: Optional[Decimal] = Field(None, alias="NetworkFeeUsd")
    is_self_custody: Optional[bool] = Field(None, alias="IsSelfCustody")
    is_taxable: Optional[bool] = Field(None, alias="IsTaxable")
    notes: Optional[str] = Field(None, alias="Notes")

    @field_validator('usd_amount', 'btc_amount', 'price', 'network_fee', 'network_fee_usd', mode='before')
    @classmethod
    def parse_decimal_fields(cls, v: Any) -> Optional[Decimal]:
        return cls._to_decimal(v)

    @field_validator('is_self_custody', 'is_taxable', mode='before')
    @classmethod
    def parse_bool_fields(cls, v: Any) -> Optional[bool]:
        return safe_bool(cls._blank_to_none(v))

    @field_validator('id', 'date', mode='before')
    @classmethod
    def require_non_empty(cls, v: Any) -> str:
        if v is None or str(v).strip() == "":
            raise ValueError("must not be empty")
        return str(v).strip()

    @field_validator('exchange', 'destination_wallet', 'notes', mode='before')
    @classmethod
    def strip_optional_strings(cls, v: Any) -> Optional[str]:
        v = cls._blank_to_none(v)
        return None if v is None else str(v).strip()


class RawDisposalRecord(RawBaseRecord):
    id: Optional[str] = Field(None, alias="Id")  # Generated when missing
    date: str = Field(alias="Date")
    btc_amount: Decimal = Field(alias="BtcAmount")
    sale_price: Decimal = Field(alias="SalePrice")
    total_proceeds: Optional[Decimal] = Field(None, alias="TotalProceeds")
    fees: Optional[Decimal] = Field(None, alias="Fees")
    exchange: Optional[str] = Field(None, alias="Exchange")
    notes: Optional[str] = Field(None, alias="Notes")
    lot_ids: Optional[str] = Field(None, alias="LotIds")  # Separated by ';' or '|'

    @field_validator('btc_amount', 'sale_price', 'total_proceeds', 'fees', mode='before')
    @classmethod
    def parse_decimal_fields(cls, v: Any) -> Optional[Decimal]:
        return cls._to_decimal(v)

    @field_validator('date', mode='before')
    @classmethod
    def require_date(cls, v: Any) -> str:
        if v is None or str(v).strip() == "":
            raise ValueError("must not be empty")
        return str(v).strip()

    @field_validator('id', 'exchange', 'notes', 'lot_ids', mode='before')
    @classmethod
    def strip_optional_strings(cls, v: Any) -> Optional[str]:
        v = cls._blank_to_none(v)
        return None if v is None else str(v).strip()

    def lot_id_list(self) -> list:
        if not self.lot_ids:
            return []
        return [part.strip() for part in self.lot_ids.replace('|', ';').split(';') if part.strip()]
