"""Shop POS data models.

Records are persisted as JSON lists under the store keys ``products``,
``sales`` and ``customers`` and the ``settings`` object. The stored shape uses
camelCase keys so existing exports stay readable.
"""

from dataclasses import asdict, dataclass, field
from typing import Optional

CATEGORIES = ("electronics", "clothing", "food", "books", "other")
PAYMENT_METHODS = ("cash", "card", "qr")


@dataclass
class Product:
    """Catalog product"""
    id: str
    name: str
    category: str
    price: float
    stock: int = 0
    barcode: Optional[str] = None
    description: Optional[str] = None
    date_added: str = ""         # ISO timestamp

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "stock": self.stock,
            "dateAdded": self.date_added,
        }
        if self.barcode is not None:
            data["barcode"] = self.barcode
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            category=data.get("category", "other"),
            price=data.get("price", 0),
            stock=int(data.get("stock", 0) or 0),
            barcode=data.get("barcode"),
            description=data.get("description"),
            date_added=data.get("dateAdded", ""),
        )


@dataclass
class CartItem:
    """One cart line. Not persisted until checkout."""
    product_id: str
    name: str
    price: float
    quantity: int = 1
    category: Optional[str] = None


@dataclass
class SaleItem:
    """Sale line with the price snapshot taken at sale time"""
    product_id: str
    name: str
    price: float
    quantity: int
    category: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        data = {
            "productId": self.product_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
        }
        if self.category is not None:
            data["category"] = self.category
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SaleItem":
        return cls(
            product_id=data["productId"],
            name=data.get("name", ""),
            price=data.get("price", 0),
            quantity=int(data.get("quantity", 0)),
            category=data.get("category"),
        )

    @classmethod
    def from_cart_item(cls, item: CartItem) -> "SaleItem":
        return cls(
            product_id=item.product_id,
            name=item.name,
            price=item.price,
            quantity=item.quantity,
            category=item.category,
        )


@dataclass
class Sale:
    """Completed sale"""
    id: str
    receipt_number: str
    items: list[SaleItem] = field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    payment_method: str = "cash"
    cash_received: Optional[float] = None
    change: Optional[float] = 0.0
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    date: str = ""               # ISO timestamp
    refunded: bool = False
    refund_date: Optional[str] = None

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "receiptNumber": self.receipt_number,
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "paymentMethod": self.payment_method,
            "cashReceived": self.cash_received,
            "change": self.change,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "date": self.date,
        }
        if self.refunded:
            data["refunded"] = True
            data["refundDate"] = self.refund_date
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Sale":
        items = [SaleItem.from_dict(i) for i in data.get("items", [])]
        total = data.get("total", 0)
        tax = data.get("tax") or 0
        subtotal = data.get("subtotal")
        if subtotal is None:
            subtotal = total - tax
        return cls(
            id=data["id"],
            receipt_number=data.get("receiptNumber", ""),
            items=items,
            subtotal=subtotal,
            tax=tax,
            total=total,
            payment_method=data.get("paymentMethod") or "cash",
            cash_received=data.get("cashReceived"),
            change=data.get("change"),
            customer_id=data.get("customerId"),
            customer_name=data.get("customerName"),
            date=data.get("date", ""),
            refunded=bool(data.get("refunded", False)),
            refund_date=data.get("refundDate"),
        )


@dataclass
class Customer:
    """Customer record with denormalized purchase statistics"""
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    date_added: str = ""
    total_purchases: int = 0
    total_spent: float = 0.0
    last_purchase: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email or "",
            "phone": self.phone or "",
            "address": self.address or "",
            "dateAdded": self.date_added,
            "totalPurchases": self.total_purchases,
            "totalSpent": self.total_spent,
        }
        if self.last_purchase:
            data["lastPurchase"] = self.last_purchase
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Customer":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            email=data.get("email") or None,
            phone=data.get("phone") or None,
            address=data.get("address") or None,
            date_added=data.get("dateAdded", ""),
            total_purchases=int(data.get("totalPurchases") or 0),
            total_spent=data.get("totalSpent") or 0,
            last_purchase=data.get("lastPurchase"),
        )


@dataclass
class Settings:
    """Shop settings singleton"""
    shop_name: str = "My Shop"
    shop_address: str = "123 Main Street, City, State"
    shop_phone: str = "+1 234 567 8900"
    tax_rate: float = 0.0        # 0.0 - 1.0
    enable_qr_payment: bool = True
    qr_payment_instructions: str = "Scan QR code to pay with your mobile wallet"
    currency: str = "USD"
    theme: str = "light"

    _KEYS = {
        "shop_name": "shopName",
        "shop_address": "shopAddress",
        "shop_phone": "shopPhone",
        "tax_rate": "taxRate",
        "enable_qr_payment": "enableQRPayment",
        "qr_payment_instructions": "qrPaymentInstructions",
        "currency": "currency",
        "theme": "theme",
    }

    def to_dict(self) -> dict:
        return {self._KEYS[k]: v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        kwargs = {}
        for attr, key in cls._KEYS.items():
            if key in data and data[key] is not None:
                kwargs[attr] = data[key]
        return cls(**kwargs)
