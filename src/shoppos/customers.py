"""Customer records and their running purchase statistics"""

from __future__ import annotations

import logging
from typing import Optional

from .errors import DuplicateCustomer, PersistenceFailure, ValidationError
from .events import CUSTOMER_ADDED, CUSTOMER_DELETED, CUSTOMER_UPDATED, EventBus
from .models import Customer, Sale
from .store import CUSTOMERS_KEY, SALES_KEY, RecordStore
from .utils import format_date, generate_id, now_iso, parse_iso

logger = logging.getLogger(__name__)

_EDITABLE = ("name", "email", "phone", "address")


def _clean(data: dict) -> dict:
    """Strip editable text fields, empty strings become None"""
    cleaned = {}
    for key in _EDITABLE:
        if key in data:
            value = (data[key] or "").strip()
            cleaned[key] = value or None
    return cleaned


class CustomerService:
    """CRUD over the ``customers`` collection"""

    def __init__(self, store: RecordStore, events: Optional[EventBus] = None):
        self.store = store
        self.events = events or EventBus()

    async def _load(self) -> list[Customer]:
        rows = await self.store.get(CUSTOMERS_KEY, [])
        return [Customer.from_dict(r) for r in rows]

    async def _save(self, customers: list[Customer]):
        ok = await self.store.set(CUSTOMERS_KEY, [c.to_dict() for c in customers])
        if not ok:
            raise PersistenceFailure(CUSTOMERS_KEY)

    async def _sales_for(self, customer_id: str) -> list[Sale]:
        rows = await self.store.get(SALES_KEY, [])
        return [Sale.from_dict(r) for r in rows if r.get("customerId") == customer_id]

    # ── queries ──

    async def list(self) -> list[Customer]:
        return await self._load()

    async def get_by_id(self, customer_id: str) -> Optional[Customer]:
        for customer in await self._load():
            if customer.id == customer_id:
                return customer
        return None

    async def find_by_email(self, email: str) -> Optional[Customer]:
        for customer in await self._load():
            if customer.email == email:
                return customer
        return None

    async def find_by_phone(self, phone: str) -> Optional[Customer]:
        for customer in await self._load():
            if customer.phone == phone:
                return customer
        return None

    async def search(self, query: str) -> list[Customer]:
        customers = await self._load()
        if not query:
            return customers
        q = query.lower()
        return [
            c for c in customers
            if q in c.name.lower()
            or (c.email and q in c.email.lower())
            or (c.phone and query in c.phone)
        ]

    async def top_customers(self, limit: int = 10) -> list[Customer]:
        customers = sorted(await self._load(), key=lambda c: c.total_spent, reverse=True)
        return customers[:limit]

    async def summary(self) -> dict:
        customers = await self._load()
        total_spent = sum(c.total_spent for c in customers)
        return {
            "totalCustomers": len(customers),
            "activeCustomers": sum(1 for c in customers if c.total_purchases > 0),
            "totalSpent": total_spent,
            "averageSpent": total_spent / len(customers) if customers else 0,
        }

    async def purchase_history(self, customer_id: str) -> list[Sale]:
        """All sales attached to the customer, oldest first"""
        return await self._sales_for(customer_id)

    async def export_rows(self) -> list[dict]:
        return [
            {
                "name": c.name,
                "email": c.email or "",
                "phone": c.phone or "",
                "address": c.address or "",
                "totalSpent": c.total_spent,
                "totalPurchases": c.total_purchases,
                "dateAdded": format_date(parse_iso(c.date_added)) if c.date_added else "",
            }
            for c in await self._load()
        ]

    # ── mutations ──

    async def add(self, data: dict) -> Customer:
        """Add a customer.

        Raises:
            ValidationError: name missing
            DuplicateCustomer: name or email already used (case-insensitive)
        """
        fields = _clean(data)
        if not fields.get("name"):
            raise ValidationError("Customer name is required")

        customers = await self._load()
        name = fields["name"].lower()
        email = (fields.get("email") or "").lower()
        for existing in customers:
            if existing.name.lower() == name or (
                email and existing.email and existing.email.lower() == email
            ):
                raise DuplicateCustomer(existing.id)

        customer = Customer(id=generate_id(), date_added=now_iso(), **fields)
        customers.append(customer)
        await self._save(customers)
        logger.info("Added customer %s (%s)", customer.name, customer.id)
        await self.events.emit(CUSTOMER_ADDED, customer)
        return customer

    async def update(self, customer_id: str, updates: dict) -> Optional[Customer]:
        """Update contact fields. Returns ``None`` for an unknown id."""
        fields = _clean(updates)
        if "name" in fields and not fields["name"]:
            raise ValidationError("Customer name is required")

        customers = await self._load()
        for customer in customers:
            if customer.id == customer_id:
                break
        else:
            return None

        for key, value in fields.items():
            setattr(customer, key, value)
        await self._save(customers)
        await self.events.emit(CUSTOMER_UPDATED, customer)
        return customer

    async def delete(self, customer_id: str) -> bool:
        customers = await self._load()
        remaining = [c for c in customers if c.id != customer_id]
        if len(remaining) == len(customers):
            return False
        await self._save(remaining)
        await self.events.emit(CUSTOMER_DELETED, customer_id)
        return True

    # ── statistics ──

    async def record_purchase(self, customer_id: str, amount: float) -> Optional[Customer]:
        """Count one more purchase of ``amount`` for the customer"""
        customers = await self._load()
        for customer in customers:
            if customer.id == customer_id:
                break
        else:
            logger.warning("Purchase for unknown customer %s not recorded", customer_id)
            return None

        customer.total_purchases += 1
        customer.total_spent += amount
        customer.last_purchase = now_iso()
        await self._save(customers)
        await self.events.emit(CUSTOMER_UPDATED, customer)
        return customer

    async def recompute_stats(self, customer_id: str) -> Optional[Customer]:
        """Rebuild totalPurchases/totalSpent from the customer's non-refunded sales.

        Persists only when the stored values differ.
        """
        customers = await self._load()
        for customer in customers:
            if customer.id == customer_id:
                break
        else:
            return None

        sales = [s for s in await self._sales_for(customer_id) if not s.refunded]
        total_purchases = len(sales)
        total_spent = sum(s.total for s in sales)
        if (customer.total_purchases, customer.total_spent) != (total_purchases, total_spent):
            customer.total_purchases = total_purchases
            customer.total_spent = total_spent
            await self._save(customers)
            await self.events.emit(CUSTOMER_UPDATED, customer)
        return customer

    async def recompute_all(self) -> int:
        """Recompute statistics for every customer. Returns how many changed."""
        changed = 0
        for customer in await self._load():
            before = (customer.total_purchases, customer.total_spent)
            updated = await self.recompute_stats(customer.id)
            if updated and (updated.total_purchases, updated.total_spent) != before:
                changed += 1
        return changed
