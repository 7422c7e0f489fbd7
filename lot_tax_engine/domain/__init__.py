# lot_tax_engine/domain/__init__.py
# This file can be empty or used to make imports easier.

# Example (optional):
# from .enums import LotSelectionMethod, HoldingPeriod, TaxEventType, ValidationCode
# from .events import Transaction, DisposalRequest, DisposedLotFragment, AcquisitionEvent, DisposalEvent
# from .results import ValidationIssue, ValidationResult, TaxPeriodSummary, TaxReport, DisposalSimulation
# from .configuration import TaxConfiguration
