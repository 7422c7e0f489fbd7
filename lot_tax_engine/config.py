# lot_tax_engine/config.py

from decimal import Decimal

# Normalized input files (one row per transaction / planned disposal)
TRANSACTIONS_FILE_PATH = "data/transactions.csv"
DISPOSALS_FILE_PATH = "data/disposals.csv"

# Tax year being processed
TAX_YEAR = 2024

# Lot selection method: FIFO, LIFO, HIFO or SPECIFIC_ID
LOT_SELECTION_METHOD = "FIFO"

# Holding longer than this many days is long-term (exactly at the threshold is short-term)
LONG_TERM_THRESHOLD_DAYS = 365

# Label of the tracked asset, used by reports only
ASSET_SYMBOL = "BTC"

# Display preferences. The engine passes these through to the rendering layer untouched.
INCLUDE_PREVIOUS_YEARS = False
SHOW_DETAILED_LOTS = True
ROUND_TO_CENTS = True

# Taxpayer information for the PDF title page
TAXPAYER_NAME = "Satoshi Nakamoto"  # Placeholder - Please update
REPORT_VERSION = "v1.0"

# Numerical precision
INTERNAL_CALCULATION_PRECISION = 28
DECIMAL_ROUNDING_MODE = "ROUND_HALF_UP"  # Python's decimal module uses strings like 'ROUND_HALF_UP', 'ROUND_HALF_EVEN'

# Output precisions (display/export only, never used for intermediate calculations)
OUTPUT_PRECISION_AMOUNTS: Decimal = Decimal("0.01")
OUTPUT_PRECISION_PER_UNIT: Decimal = Decimal("0.01")
PRECISION_QUANTITY: Decimal = Decimal("0.00000001")  # 1 satoshi
