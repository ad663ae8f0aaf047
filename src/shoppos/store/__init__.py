"""Local record store"""

from .db import (
    CUSTOMERS_KEY,
    DATASET_KEYS,
    DB_PATH,
    PRODUCTS_KEY,
    SALES_KEY,
    SETTINGS_KEY,
    RecordStore,
)

__all__ = [
    "CUSTOMERS_KEY",
    "DATASET_KEYS",
    "DB_PATH",
    "PRODUCTS_KEY",
    "SALES_KEY",
    "SETTINGS_KEY",
    "RecordStore",
]
