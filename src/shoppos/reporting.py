"""Read-only sales reporting over a date range"""

import csv
import io
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .models import Sale
from .store import SALES_KEY, RecordStore
from .utils import format_currency, format_date, format_time, parse_iso

DEFAULT_RANGE_DAYS = 30

SALES_CSV_HEADERS = [
    "Receipt Number",
    "Date",
    "Time",
    "Customer",
    "Payment Method",
    "Items Count",
    "Subtotal",
    "Tax",
    "Total",
    "Items Details",
]


def to_csv(rows: Iterable[dict], headers: Optional[list[str]] = None) -> str:
    """Serialize flat records as CSV, header row first.

    Fields containing a comma, quote or newline are quoted with internal quotes
    doubled. ``None`` becomes an empty field.
    """
    rows = list(rows)
    if headers is None:
        if not rows:
            return ""
        headers = list(rows[0].keys())

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if row.get(h) is None else row.get(h) for h in headers])
    return buf.getvalue().rstrip("\n")


class ReportingView:
    """Aggregates over the sales whose date falls in [start, end]

    Args:
        store: record store
        start, end: inclusive bounds; default is the 30 days ending at ``now``
        now: reference time (default: the moment the view is created)
    """

    def __init__(
        self,
        store: RecordStore,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ):
        self.store = store
        self.now = _aware(now or datetime.now())
        self.end = _aware(end) if end else self.now
        self.start = _aware(start) if start else self.end - timedelta(days=DEFAULT_RANGE_DAYS)

    async def all_sales(self) -> list[Sale]:
        rows = await self.store.get(SALES_KEY, [])
        return [Sale.from_dict(r) for r in rows]

    async def sales(self) -> list[Sale]:
        return [
            s for s in await self.all_sales()
            if self.start <= parse_iso(s.date) <= self.end
        ]

    async def summary(self) -> dict:
        sales = await self.sales()
        total = sum(s.total for s in sales)
        return {
            "totalSales": total,
            "totalTransactions": len(sales),
            "averageSale": total / len(sales) if sales else 0,
        }

    async def today_total(self) -> float:
        """Revenue since local midnight of ``now``, regardless of the range"""
        day_start = self.now.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = day_start + timedelta(days=1)
        return sum(
            s.total for s in await self.all_sales()
            if day_start <= parse_iso(s.date) < day_end
        )

    async def payment_breakdown(self) -> dict[str, dict]:
        breakdown: dict[str, dict] = {}
        for sale in await self.sales():
            entry = breakdown.setdefault(sale.payment_method, {"count": 0, "total": 0})
            entry["count"] += 1
            entry["total"] += sale.total
        return breakdown

    async def top_products(self, limit: int = 10) -> list[dict]:
        """Products ranked by revenue in the range"""
        by_product: dict[str, dict] = {}
        for sale in await self.sales():
            for item in sale.items:
                entry = by_product.setdefault(
                    item.product_id,
                    {"productId": item.product_id, "name": item.name, "quantity": 0, "revenue": 0},
                )
                entry["quantity"] += item.quantity
                entry["revenue"] += item.line_total
        ranked = sorted(by_product.values(), key=lambda e: e["revenue"], reverse=True)
        return ranked[:limit]

    async def report(self) -> dict:
        sales = await self.sales()
        return {
            "period": {
                "start": self.start.date().isoformat(),
                "end": self.end.date().isoformat(),
            },
            "summary": await self.summary(),
            "paymentMethods": await self.payment_breakdown(),
            "topProducts": await self.top_products(),
            "sales": [
                {
                    "date": s.date,
                    "receiptNumber": s.receipt_number,
                    "total": s.total,
                    "items": s.item_count,
                    "paymentMethod": s.payment_method,
                }
                for s in sales
            ],
        }

    async def sales_rows(self, currency: str = "USD") -> list[dict]:
        rows = []
        for sale in await self.sales():
            when = parse_iso(sale.date).astimezone()
            details = "; ".join(
                f"{i.name} ({i.quantity}x{format_currency(i.price, currency)})"
                for i in sale.items
            )
            rows.append({
                "Receipt Number": sale.receipt_number or "N/A",
                "Date": format_date(when),
                "Time": format_time(when),
                "Customer": sale.customer_name or "Walk-in Customer",
                "Payment Method": sale.payment_method or "cash",
                "Items Count": sale.item_count,
                "Subtotal": sale.subtotal,
                "Tax": sale.tax,
                "Total": sale.total,
                "Items Details": details,
            })
        return rows

    async def export_csv(self, currency: str = "USD") -> str:
        return to_csv(await self.sales_rows(currency), SALES_CSV_HEADERS)

    def default_filename(self) -> str:
        return f"sales-report-{self.start.date().isoformat()}-to-{self.end.date().isoformat()}.csv"


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.astimezone()
