# tests/conftest.py
import pytest
import tempfile
import os
from decimal import getcontext, ROUND_HALF_UP  # Default rounding for tests if config is invalid

from lot_tax_engine import config as app_config


@pytest.fixture(scope="session", autouse=True)
def set_decimal_precision_session_wide():
    """
    Set global decimal precision and rounding for all tests in the session.
    This mirrors main.setup_decimal_context().
    """
    getcontext().prec = app_config.INTERNAL_CALCULATION_PRECISION

    valid_rounding_modes = ["ROUND_CEILING", "ROUND_DOWN", "ROUND_FLOOR", "ROUND_HALF_DOWN",
                            "ROUND_HALF_EVEN", "ROUND_HALF_UP", "ROUND_UP", "ROUND_05UP"]
    if app_config.DECIMAL_ROUNDING_MODE in valid_rounding_modes:
        getcontext().rounding = app_config.DECIMAL_ROUNDING_MODE  # type: ignore
    else:
        getcontext().rounding = ROUND_HALF_UP  # type: ignore


@pytest.fixture
def temp_data_dir():
    """
    Creates a temporary directory for test input/output files.
    Yields the path to this directory and cleans it up afterwards.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def data_paths(temp_data_dir):
    """Paths for the pipeline input and output files inside temp_data_dir."""
    data_path = lambda filename: os.path.join(temp_data_dir, filename)
    return {
        "transactions": data_path("transactions.csv"),
        "disposals": data_path("disposals.csv"),
        "lots": data_path("lots.json"),
        "pdf": data_path("report.pdf"),
        "export": data_path("export.csv"),
        "temp_dir_root": temp_data_dir,
    }
