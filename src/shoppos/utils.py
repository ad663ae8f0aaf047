"""Formatting, id and calculation helpers shared by the services"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

LOW_STOCK_THRESHOLD = 10

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


def generate_id() -> str:
    """Random opaque record id"""
    return uuid.uuid4().hex


def generate_receipt_number(now: Optional[datetime] = None) -> str:
    """Receipt number R<year><month><day>-<last 6 digits of epoch millis>.

    Args:
        now: local time of the sale (default: now)

    Returns:
        e.g. "R20261017-512345"
    """
    now = now or datetime.now()
    millis = str((now.astimezone(timezone.utc) - EPOCH) // timedelta(milliseconds=1))
    return f"R{now.year}{now.month:02d}{now.day:02d}-{millis[-6:]}"


def get_stock_status(stock: int) -> str:
    if stock == 0:
        return "out-of-stock"
    if stock <= LOW_STOCK_THRESHOLD:
        return "low-stock"
    return "in-stock"


def now_iso() -> str:
    """Current UTC time as 2026-10-17T08:30:00.123Z"""
    return to_iso(datetime.now(timezone.utc))


def to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.astimezone()
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse a stored timestamp into an aware datetime"""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt


def format_currency(amount: float, currency: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency, currency + " ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_date(dt: datetime) -> str:
    """Oct 17, 2026"""
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}"


def format_time(dt: datetime) -> str:
    """02:05:09 PM"""
    return dt.strftime("%I:%M:%S %p")


def calculate_cart_totals(items: Iterable, tax_rate: float = 0) -> dict:
    """Cart totals. `items` are CartItem/SaleItem objects or dicts.

    Returns:
        {"subtotal": ..., "tax": ..., "total": ...} with total == subtotal + tax
    """
    subtotal = 0.0
    for item in items:
        if isinstance(item, dict):
            subtotal += item["price"] * item["quantity"]
        else:
            subtotal += item.price * item.quantity
    tax = subtotal * (tax_rate or 0)
    return {"subtotal": subtotal, "tax": tax, "total": subtotal + tax}
