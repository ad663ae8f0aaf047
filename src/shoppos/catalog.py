"""Product catalog and stock adjustment"""

from __future__ import annotations

import logging
from typing import Optional

from .errors import PersistenceFailure, ValidationError
from .events import PRODUCTS_UPDATED, EventBus
from .models import CATEGORIES, Product
from .store import PRODUCTS_KEY, RecordStore
from .utils import LOW_STOCK_THRESHOLD, generate_id, get_stock_status, now_iso

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    {"name": "Laptop Computer", "category": "electronics", "price": 899.99, "stock": 15},
    {"name": "Wireless Mouse", "category": "electronics", "price": 29.99, "stock": 50},
    {"name": "T-Shirt", "category": "clothing", "price": 19.99, "stock": 25},
    {"name": "Jeans", "category": "clothing", "price": 49.99, "stock": 30},
    {"name": "Coffee Beans", "category": "food", "price": 12.99, "stock": 40},
    {"name": "Chocolate Bar", "category": "food", "price": 3.99, "stock": 60},
    {"name": "Programming Book", "category": "books", "price": 39.99, "stock": 20},
    {"name": "Novel", "category": "books", "price": 14.99, "stock": 35},
]

_EDITABLE = ("name", "category", "price", "stock", "barcode", "description")


def validate_product(data: dict) -> list[str]:
    """Check product input. Returns the violations in order, empty if valid."""
    errors = []

    name = data.get("name")
    if not isinstance(name, str) or len(name.strip()) < 2:
        errors.append("Product name must be at least 2 characters long")

    category = data.get("category")
    if not category:
        errors.append("Please select a category")
    elif category not in CATEGORIES:
        errors.append(f"Unknown category: {category}")

    price = data.get("price")
    if not _is_number(price) or price <= 0:
        errors.append("Price must be greater than 0")

    stock = data.get("stock")
    if not isinstance(stock, int) or isinstance(stock, bool) or stock < 0:
        errors.append("Stock must be 0 or greater")

    return errors


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class CatalogService:
    """CRUD over the ``products`` collection"""

    def __init__(self, store: RecordStore, events: Optional[EventBus] = None):
        self.store = store
        self.events = events or EventBus()

    async def _load(self) -> list[Product]:
        rows = await self.store.get(PRODUCTS_KEY, [])
        return [Product.from_dict(r) for r in rows]

    async def _save(self, products: list[Product]):
        ok = await self.store.set(PRODUCTS_KEY, [p.to_dict() for p in products])
        if not ok:
            raise PersistenceFailure(PRODUCTS_KEY)

    # ── queries ──

    async def list(self) -> list[Product]:
        return await self._load()

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        for product in await self._load():
            if product.id == product_id:
                return product
        return None

    async def search(self, query: str) -> list[Product]:
        """Match name or category (case-insensitive) or barcode substring"""
        products = await self._load()
        if not query:
            return products
        q = query.lower()
        return [
            p for p in products
            if q in p.name.lower()
            or q in p.category.lower()
            or (p.barcode and query in p.barcode)
        ]

    async def filter_by_category(self, category: str) -> list[Product]:
        products = await self._load()
        if category == "all":
            return products
        return [p for p in products if p.category == category]

    # ── mutations ──

    def validate(self, data: dict) -> list[str]:
        return validate_product(data)

    async def add(self, data: dict) -> Product:
        """Add a product. Assigns id and dateAdded.

        Raises:
            ValidationError: invalid input, nothing saved
            PersistenceFailure: store write failed
        """
        errors = validate_product(data)
        if errors:
            raise ValidationError(errors)

        product = Product(
            id=generate_id(),
            name=data["name"].strip(),
            category=data["category"],
            price=data["price"],
            stock=data["stock"],
            barcode=data.get("barcode") or None,
            description=data.get("description") or None,
            date_added=now_iso(),
        )
        products = await self._load()
        products.append(product)
        await self._save(products)
        logger.info("Added product %s (%s)", product.name, product.id)
        await self.events.emit(PRODUCTS_UPDATED, product)
        return product

    async def update(self, product_id: str, updates: dict) -> Optional[Product]:
        """Merge ``updates`` into a product. Returns ``None`` for an unknown id."""
        products = await self._load()
        for index, product in enumerate(products):
            if product.id == product_id:
                break
        else:
            return None

        merged = {attr: getattr(product, attr) for attr in _EDITABLE}
        merged.update({k: v for k, v in updates.items() if k in _EDITABLE})
        errors = validate_product(merged)
        if errors:
            raise ValidationError(errors)

        for attr in _EDITABLE:
            setattr(product, attr, merged[attr])
        product.name = product.name.strip()
        products[index] = product
        await self._save(products)
        await self.events.emit(PRODUCTS_UPDATED, product)
        return product

    async def delete(self, product_id: str) -> bool:
        products = await self._load()
        remaining = [p for p in products if p.id != product_id]
        if len(remaining) == len(products):
            return False
        await self._save(remaining)
        await self.events.emit(PRODUCTS_UPDATED, None)
        return True

    async def adjust_stock(self, product_id: str, delta: int) -> Optional[int]:
        """Add ``delta`` to stock, clamped at zero.

        Returns:
            the new stock, or ``None`` for an unknown product
        """
        products = await self._load()
        for product in products:
            if product.id == product_id:
                break
        else:
            return None

        new_stock = max(0, product.stock + delta)
        if product.stock + delta < 0:
            logger.warning(
                "Stock for %s clamped at 0 (had %d, delta %d)",
                product.name, product.stock, delta,
            )
        product.stock = new_stock
        await self._save(products)
        await self.events.emit(PRODUCTS_UPDATED, product)
        return new_stock

    async def restock(self, product_id: str, amount: int) -> Optional[int]:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ValidationError("Please enter a valid positive number")
        return await self.adjust_stock(product_id, amount)

    async def seed_demo(self) -> list[Product]:
        """Add the demo products when the catalog is empty"""
        if await self._load():
            return []
        added = []
        for i, sample in enumerate(DEMO_PRODUCTS):
            data = dict(sample)
            data["barcode"] = f"{2000000000000 + i * 7919:013d}"
            data["description"] = f"High quality {sample['name'].lower()}"
            added.append(await self.add(data))
        return added

    # ── inventory ──

    async def low_stock(self, threshold: int = LOW_STOCK_THRESHOLD) -> list[Product]:
        return [p for p in await self._load() if 0 < p.stock <= threshold]

    async def out_of_stock(self) -> list[Product]:
        return [p for p in await self._load() if p.stock == 0]

    async def inventory_summary(self) -> dict:
        products = await self._load()
        out_of_stock = sum(1 for p in products if p.stock == 0)
        return {
            "totalProducts": len(products),
            "totalValue": sum(p.price * p.stock for p in products),
            "totalUnits": sum(p.stock for p in products),
            "lowStockCount": sum(1 for p in products if 0 < p.stock <= LOW_STOCK_THRESHOLD),
            "outOfStockCount": out_of_stock,
            "inStockCount": len(products) - out_of_stock,
        }

    async def inventory_report_rows(self) -> list[dict]:
        """Flat rows for the inventory CSV"""
        return [
            {
                "name": p.name,
                "category": p.category,
                "price": p.price,
                "stock": p.stock,
                "value": p.price * p.stock,
                "status": get_stock_status(p.stock),
            }
            for p in await self._load()
        ]
