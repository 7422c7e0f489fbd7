# lot_tax_engine/domain/configuration.py
from dataclasses import dataclass, field
from typing import List

from .enums import LotSelectionMethod
from .events import DisposalRequest
import lot_tax_engine.config as app_config


@dataclass
class TaxConfiguration:
    method: LotSelectionMethod
    tax_year: int
    long_term_threshold_days: int = 365

    # Planned or recorded disposals to replay against the lots of the period
    disposals: List[DisposalRequest] = field(default_factory=list)

    # Display preferences, passed through to the rendering layer
    include_previous_years: bool = False
    show_detailed_lots: bool = True
    round_to_cents: bool = True

    def __post_init__(self):
        self.method = LotSelectionMethod.from_name(self.method)
        if self.long_term_threshold_days < 0:
            raise ValueError(f"TaxConfiguration.long_term_threshold_days must be non-negative, got {self.long_term_threshold_days}")

    @classmethod
    def from_app_config(cls, **overrides) -> "TaxConfiguration":
        """Builds a configuration from lot_tax_engine.config defaults, with keyword overrides."""
        values = dict(
            method=app_config.LOT_SELECTION_METHOD,
            tax_year=app_config.TAX_YEAR,
            long_term_threshold_days=app_config.LONG_TERM_THRESHOLD_DAYS,
            include_previous_years=app_config.INCLUDE_PREVIOUS_YEARS,
            show_detailed_lots=app_config.SHOW_DETAILED_LOTS,
            round_to_cents=app_config.ROUND_TO_CENTS,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
