"""Error types raised by the shop services"""

from typing import Optional


class ShopPOSError(Exception):
    """Base error carrying a short machine-readable code"""
    def __init__(self, code: str, message: str = ""):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}" if message else f"[{code}]")


class ValidationError(ShopPOSError):
    """Bad product, customer, cart or settings input. Nothing was mutated."""
    def __init__(self, errors, message: Optional[str] = None):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("validation", message or "; ".join(self.errors))


class InsufficientPayment(ShopPOSError):
    """Cash tendered is below the sale total"""
    def __init__(self, total: float, tendered: float):
        self.total = total
        self.tendered = tendered
        super().__init__(
            "insufficient_payment",
            f"Insufficient cash amount: tendered {tendered:.2f}, total {total:.2f}",
        )


class InsufficientStock(ShopPOSError):
    """A cart line would exceed the product's stock"""
    def __init__(self, product_name: str, available: int):
        self.product_name = product_name
        self.available = available
        super().__init__(
            "insufficient_stock",
            f"Not enough stock available for {product_name} (in stock: {available})",
        )


class NotFoundError(ShopPOSError):
    """Unknown record id"""
    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__("not_found", f"{kind} not found: {record_id}")


class PersistenceFailure(ShopPOSError):
    """The record store could not write a key"""
    def __init__(self, key: str, message: str = ""):
        self.key = key
        super().__init__("persistence", message or f"Failed to save '{key}'")


class DuplicateCustomer(ShopPOSError):
    """A customer with the same name or email already exists"""
    def __init__(self, existing_id: str):
        self.existing_id = existing_id
        super().__init__(
            "duplicate_customer", "Customer with this name or email already exists"
        )
