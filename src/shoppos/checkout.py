"""Cart and the checkout pipeline.

Checkout persists the sale, then decrements stock per line, then updates the
attached customer's statistics, then notifies subscribers. These are separate
store writes: a failure part way leaves the earlier writes in place.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from .catalog import CatalogService
from .customers import CustomerService
from .errors import (
    InsufficientPayment,
    InsufficientStock,
    NotFoundError,
    PersistenceFailure,
    ValidationError,
)
from .events import SALE_COMPLETED, SALE_REFUNDED, EventBus
from .models import PAYMENT_METHODS, CartItem, Product, Sale, SaleItem
from .settings import SettingsService
from .store import SALES_KEY, RecordStore
from .utils import calculate_cart_totals, generate_id, generate_receipt_number, now_iso

logger = logging.getLogger(__name__)


class Cart:
    """Lines being assembled for one sale"""

    def __init__(self):
        self._items: list[CartItem] = []

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def get(self, product_id: str) -> Optional[CartItem]:
        for item in self._items:
            if item.product_id == product_id:
                return item
        return None

    def add_product(self, product: Product) -> CartItem:
        """Add one unit of ``product``.

        Raises:
            InsufficientStock: the line already holds all available stock
        """
        item = self.get(product.id)
        if item:
            if item.quantity >= product.stock:
                raise InsufficientStock(product.name, product.stock)
            item.quantity += 1
            return item

        if product.stock < 1:
            raise InsufficientStock(product.name, product.stock)
        item = CartItem(
            product_id=product.id,
            name=product.name,
            price=product.price,
            quantity=1,
            category=product.category,
        )
        self._items.append(item)
        return item

    def set_quantity(self, product: Product, quantity: int) -> Optional[CartItem]:
        """Set a line's quantity. Zero or less removes the line."""
        item = self.get(product.id)
        if item is None:
            return None
        if quantity <= 0:
            self.remove(product.id)
            return None
        if quantity > product.stock:
            raise InsufficientStock(product.name, product.stock)
        item.quantity = quantity
        return item

    def remove(self, product_id: str) -> bool:
        before = len(self._items)
        self._items = [i for i in self._items if i.product_id != product_id]
        return len(self._items) < before

    def clear(self):
        self._items = []

    def totals(self, tax_rate: float = 0) -> dict:
        return calculate_cart_totals(self._items, tax_rate)


class CheckoutPipeline:
    """Turns a cart into a persisted sale and applies its side effects"""

    def __init__(
        self,
        store: RecordStore,
        catalog: CatalogService,
        customers: CustomerService,
        settings: SettingsService,
        events: Optional[EventBus] = None,
    ):
        self.store = store
        self.catalog = catalog
        self.customers = customers
        self.settings = settings
        self.events = events or EventBus()
        self._lock = asyncio.Lock()

    # ── sales collection ──

    async def list_sales(self) -> list[Sale]:
        rows = await self.store.get(SALES_KEY, [])
        return [Sale.from_dict(r) for r in rows]

    async def get_sale(self, sale_id: str) -> Optional[Sale]:
        for sale in await self.list_sales():
            if sale.id == sale_id:
                return sale
        return None

    async def last_sale(self) -> Optional[Sale]:
        sales = await self.list_sales()
        return sales[-1] if sales else None

    async def _save_sales(self, sales: list[Sale]):
        if not await self.store.set(SALES_KEY, [s.to_dict() for s in sales]):
            raise PersistenceFailure(SALES_KEY)

    def _unique_receipt_number(self, sales: list[Sale], now: datetime) -> str:
        taken = {s.receipt_number for s in sales}
        number = generate_receipt_number(now)
        bump = 0
        while number in taken:
            bump += 1
            number = generate_receipt_number(now + timedelta(milliseconds=bump))
        return number

    # ── checkout ──

    async def checkout(
        self,
        cart: Cart,
        payment_method: str,
        tendered: Optional[float] = None,
        customer_id: Optional[str] = None,
    ) -> Sale:
        """Complete a sale from ``cart``.

        Args:
            cart: non-empty cart; quantities were checked against stock when added
            payment_method: "cash", "card" or "qr"
            tendered: cash handed over (cash payments only)
            customer_id: optional customer to credit with the purchase

        Returns:
            the persisted Sale

        Raises:
            ValidationError: empty cart, unknown or disabled payment method
            NotFoundError: unknown customer
            InsufficientPayment: cash tendered below total
            PersistenceFailure: a store write failed
        """
        async with self._lock:
            if not cart:
                raise ValidationError("Cart is empty")
            if payment_method not in PAYMENT_METHODS:
                raise ValidationError(f"Unknown payment method: {payment_method}")

            settings = await self.settings.get()
            if payment_method == "qr" and not settings.enable_qr_payment:
                raise ValidationError("QR payment is disabled")

            customer = None
            if customer_id:
                customer = await self.customers.get_by_id(customer_id)
                if customer is None:
                    raise NotFoundError("Customer", customer_id)

            totals = cart.totals(settings.tax_rate)
            cash_received = None
            change = 0.0
            if payment_method == "cash":
                cash_received = tendered or 0
                if cash_received < totals["total"]:
                    raise InsufficientPayment(totals["total"], cash_received)
                change = cash_received - totals["total"]

            sales = await self.list_sales()
            sale = Sale(
                id=generate_id(),
                receipt_number=self._unique_receipt_number(sales, datetime.now()),
                items=[SaleItem.from_cart_item(i) for i in cart.items],
                subtotal=totals["subtotal"],
                tax=totals["tax"],
                total=totals["total"],
                payment_method=payment_method,
                cash_received=cash_received,
                change=change,
                customer_id=customer.id if customer else None,
                customer_name=customer.name if customer else None,
                date=now_iso(),
            )
            sales.append(sale)
            await self._save_sales(sales)
            logger.info("Sale %s recorded, total %.2f", sale.receipt_number, sale.total)

            for item in sale.items:
                new_stock = await self.catalog.adjust_stock(item.product_id, -item.quantity)
                if new_stock is None:
                    logger.warning(
                        "Product %s on sale %s no longer exists, stock not adjusted",
                        item.product_id, sale.receipt_number,
                    )

            if customer:
                await self.customers.record_purchase(customer.id, sale.total)

            await self.events.emit(SALE_COMPLETED, sale)
            cart.clear()
            return sale

    # ── refund ──

    async def refund(self, sale_id: str) -> Optional[Sale]:
        """Restore stock for every line and mark the sale refunded.

        Customer statistics are left as they are.

        Returns:
            the refunded Sale, or ``None`` for an unknown id
        """
        async with self._lock:
            sales = await self.list_sales()
            for sale in sales:
                if sale.id == sale_id:
                    break
            else:
                return None

            if sale.refunded:
                raise ValidationError(f"Sale {sale.receipt_number} was already refunded")

            for item in sale.items:
                if await self.catalog.adjust_stock(item.product_id, item.quantity) is None:
                    logger.warning(
                        "Product %s on refunded sale %s no longer exists",
                        item.product_id, sale.receipt_number,
                    )

            sale.refunded = True
            sale.refund_date = now_iso()
            await self._save_sales(sales)
            logger.info("Sale %s refunded", sale.receipt_number)
            await self.events.emit(SALE_REFUNDED, sale)
            return sale
