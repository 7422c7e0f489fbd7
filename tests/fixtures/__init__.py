"""
Test Fixtures Module

YAML-based scenarios for lot selection (lot_selection_scenarios.yaml).
Each scenario lists purchases, disposals, the method under test and the
expected per-disposal outcome plus the remaining lots.

Use load_yaml_fixture() to read a file and parse_lot_scenarios() to turn it
into LotScenario objects for pytest.mark.parametrize.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from decimal import Decimal
import yaml


FIXTURES_DIR = Path(__file__).parent


@dataclass
class PurchaseInput:
    """Parsed purchase from YAML."""
    id: str
    date: str
    qty: Decimal
    usd: Decimal


@dataclass
class DisposalInput:
    """Parsed disposal from YAML."""
    id: str
    date: str
    qty: Decimal
    price: Decimal
    fees: Decimal = Decimal("0")
    lot_ids: List[str] = field(default_factory=list)


@dataclass
class ExpectedDisposal:
    """Expected outcome of one disposal."""
    lots: List[str]
    cost_basis: Decimal
    gain: Decimal
    holding_period: str


@dataclass
class LotScenario:
    """A single lot selection scenario parsed from YAML."""
    id: str
    description: str
    method: str
    purchases: List[PurchaseInput]
    disposals: List[DisposalInput]
    expected_disposals: List[ExpectedDisposal]
    expected_remaining: Dict[str, Decimal]
    expected_errors: int = 0
    long_term_threshold_days: int = 365
    notes: Optional[str] = None


def _dec(value: Any) -> Decimal:
    return Decimal(str(value))


def _parse_purchase(purchase_dict: Dict) -> PurchaseInput:
    return PurchaseInput(
        id=purchase_dict["id"],
        date=str(purchase_dict["date"]),
        qty=_dec(purchase_dict["qty"]),
        usd=_dec(purchase_dict["usd"]),
    )


def _parse_disposal(disposal_dict: Dict) -> DisposalInput:
    return DisposalInput(
        id=disposal_dict["id"],
        date=str(disposal_dict["date"]),
        qty=_dec(disposal_dict["qty"]),
        price=_dec(disposal_dict["price"]),
        fees=_dec(disposal_dict.get("fees", 0)),
        lot_ids=list(disposal_dict.get("lot_ids", [])),
    )


def _parse_expected_disposal(expected_dict: Dict) -> ExpectedDisposal:
    return ExpectedDisposal(
        lots=list(expected_dict["lots"]),
        cost_basis=_dec(expected_dict["cost_basis"]),
        gain=_dec(expected_dict["gain"]),
        holding_period=expected_dict.get("holding_period", "SHORT_TERM"),
    )


def load_yaml_fixture(filename: str) -> Dict[str, Any]:
    """
    Load a YAML scenario file.

    Args:
        filename: Name of the YAML file in the fixtures directory

    Returns:
        Parsed YAML content as a dictionary
    """
    filepath = FIXTURES_DIR / filename
    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def parse_lot_scenarios(fixture_data: Dict[str, Any]) -> List[LotScenario]:
    """
    Parse lot selection scenarios from loaded YAML.

    Dates are quoted in the YAML so they reach the builders as ISO strings.
    """
    scenarios = []
    for scenario in fixture_data.get("scenarios", []):
        inputs = scenario.get("inputs", {})
        expected = scenario.get("expected", {})
        scenarios.append(LotScenario(
            id=scenario["id"],
            description=scenario["description"],
            method=scenario["method"],
            purchases=[_parse_purchase(p) for p in inputs.get("purchases", [])],
            disposals=[_parse_disposal(d) for d in inputs.get("disposals", [])],
            expected_disposals=[_parse_expected_disposal(d) for d in expected.get("disposals", [])],
            expected_remaining={lot_id: _dec(qty) for lot_id, qty in expected.get("remaining", {}).items()},
            expected_errors=expected.get("errors", 0),
            long_term_threshold_days=scenario.get("long_term_threshold_days", 365),
            notes=scenario.get("notes"),
        ))
    return scenarios


def get_lot_selection_scenarios() -> List[LotScenario]:
    return parse_lot_scenarios(load_yaml_fixture("lot_selection_scenarios.yaml"))
