"""shoppos - point-of-sale catalog, checkout, customers and sales reporting"""

__version__ = "0.1.0"

from shoppos.app import ShopApp
from shoppos.catalog import CatalogService
from shoppos.checkout import Cart, CheckoutPipeline
from shoppos.customers import CustomerService
from shoppos.errors import (
    DuplicateCustomer,
    InsufficientPayment,
    InsufficientStock,
    NotFoundError,
    PersistenceFailure,
    ShopPOSError,
    ValidationError,
)
from shoppos.reporting import ReportingView
from shoppos.store import RecordStore

__all__ = [
    "ShopApp",
    "RecordStore",
    "CatalogService",
    "CustomerService",
    "Cart",
    "CheckoutPipeline",
    "ReportingView",
    "ShopPOSError",
    "ValidationError",
    "InsufficientPayment",
    "InsufficientStock",
    "NotFoundError",
    "PersistenceFailure",
    "DuplicateCustomer",
]
