"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Single source of truth for the unit and denomination values
used when normalizing storage ask prices.

============================================================
UNITS
============================================================
Asks are quoted by providers in attoFIL per GiB per epoch.
The index reports FIL (and USD) per TiB per 30-day month.

============================================================
"""

from decimal import Decimal


# ============================================================
# SYSTEM IDENTIFICATION
# ============================================================

SYSTEM_NAME = "storage-ask-index"
SYSTEM_VERSION = "1.0.0"

# ============================================================
# DENOMINATION
# ============================================================

NATIVE_SYMBOL = "FIL"
REFERENCE_SYMBOL = "USD"

# 1 FIL = 10^18 attoFIL
ATTO_PER_NATIVE = Decimal(10) ** 18

# ============================================================
# TIME AND CAPACITY
# ============================================================

EPOCH_SECONDS = 30
SECONDS_PER_DAY = 86400
DAYS_PER_MONTH = 30
EPOCHS_PER_MONTH = SECONDS_PER_DAY * DAYS_PER_MONTH // EPOCH_SECONDS  # 86400

GIB_PER_TIB = 1024

# GiB/epoch -> TiB/month
CAPACITY_MULTIPLIER = Decimal(GIB_PER_TIB * EPOCHS_PER_MONTH)

# ============================================================
# PRECISION
# ============================================================

DECIMAL_CONTEXT_PRECISION = 50

NATIVE_PRICE_PLACES = 4
REFERENCE_PRICE_PLACES = 8
AVERAGE_PRICE_PLACES = 8
EXCHANGE_RATE_PLACES = 2

# ============================================================
# VALIDITY BOUNDS (raw ask, attoFIL per GiB per epoch)
# ============================================================

MIN_RAW_PRICE = 1
MAX_PRICE_NATIVE_PER_GIB_EPOCH = Decimal("0.0000001")  # 10^11 attoFIL
