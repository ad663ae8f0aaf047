"""
Tests for the reporting view and CSV serialization.
"""

from datetime import datetime, timedelta, timezone

import pytest

from shoppos.reporting import SALES_CSV_HEADERS, ReportingView, to_csv
from shoppos.store import SALES_KEY

UTC = timezone.utc
NOW = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


def _sale(sale_id, day_offset, total, method="cash", items=None, customer_name=None):
    when = NOW - timedelta(days=day_offset)
    return {
        "id": sale_id,
        "receiptNumber": f"R{when:%Y%m%d}-{sale_id:0>6}",
        "items": items or [],
        "subtotal": total,
        "tax": 0,
        "total": total,
        "paymentMethod": method,
        "cashReceived": total if method == "cash" else None,
        "change": 0,
        "customerId": None,
        "customerName": customer_name,
        "date": when.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


def _item(product_id, name, price, quantity):
    return {"productId": product_id, "name": name, "price": price, "quantity": quantity}


@pytest.fixture
def sales(app, run):
    rows = [
        _sale("1", 0, 30, "cash", [_item("p1", "Coffee Beans", 10, 3)], "Ada"),
        _sale("2", 5, 20, "card", [_item("p2", "Novel", 5, 2), _item("p1", "Coffee Beans", 10, 1)]),
        _sale("3", 29, 10, "qr", [_item("p2", "Novel", 5, 2)]),
        _sale("4", 45, 99, "card", [_item("p3", "Laptop Computer", 99, 1)]),
    ]
    run(app.store.set(SALES_KEY, rows))
    return rows


class TestDateRange:
    """Date filtering is inclusive and defaults to the trailing 30 days."""

    def test_default_range_is_thirty_days(self, app):
        view = ReportingView(app.store, now=NOW)
        assert view.end == NOW
        assert view.start == NOW - timedelta(days=30)

    def test_default_range_filters(self, app, run, sales):
        view = ReportingView(app.store, now=NOW)
        assert [s.id for s in run(view.sales())] == ["1", "2", "3"]

    def test_bounds_inclusive(self, app, run, sales):
        exact = NOW - timedelta(days=5)
        view = ReportingView(app.store, start=exact, end=exact, now=NOW)
        assert [s.id for s in run(view.sales())] == ["2"]

    def test_naive_bounds_are_local_time(self, app, run, sales):
        view = ReportingView(app.store, start=datetime(2000, 1, 1), end=datetime(2100, 1, 1))
        assert len(run(view.sales())) == 4


class TestAggregates:
    """Summary, payment breakdown and top products."""

    def test_summary(self, app, run, sales):
        view = ReportingView(app.store, now=NOW)
        assert run(view.summary()) == {
            "totalSales": 60,
            "totalTransactions": 3,
            "averageSale": 20,
        }

    def test_summary_empty(self, app, run):
        view = ReportingView(app.store, now=NOW)
        assert run(view.summary()) == {"totalSales": 0, "totalTransactions": 0, "averageSale": 0}

    def test_payment_breakdown(self, app, run, sales):
        view = ReportingView(app.store, now=NOW)
        assert run(view.payment_breakdown()) == {
            "cash": {"count": 1, "total": 30},
            "card": {"count": 1, "total": 20},
            "qr": {"count": 1, "total": 10},
        }

    def test_top_products_by_revenue(self, app, run, sales):
        view = ReportingView(app.store, now=NOW)
        top = run(view.top_products())
        assert [(t["name"], t["quantity"], t["revenue"]) for t in top] == [
            ("Coffee Beans", 4, 40),
            ("Novel", 4, 20),
        ]
        assert len(run(view.top_products(limit=1))) == 1

    def test_report(self, app, run, sales):
        view = ReportingView(app.store, now=NOW)
        report = run(view.report())
        assert report["period"] == {"start": "2026-09-17", "end": "2026-10-17"}
        assert report["summary"]["totalTransactions"] == 3
        assert report["sales"][0] == {
            "date": sales[0]["date"],
            "receiptNumber": sales[0]["receiptNumber"],
            "total": 30,
            "items": 1,
            "paymentMethod": "cash",
        }

    def test_view_does_not_mutate(self, app, run, sales):
        view = ReportingView(app.store, now=NOW)
        run(view.report())
        run(view.export_csv())
        assert run(app.store.get(SALES_KEY)) == sales


class TestCsv:
    """CSV serialization with RFC 4180 style quoting."""

    def test_header_first(self):
        assert to_csv([{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]) == "a,b\n1,x\n2,y"

    def test_quoting(self):
        rows = [{"name": 'Say "hi"', "note": "a,b", "multi": "line1\nline2", "empty": None}]
        assert to_csv(rows) == (
            'name,note,multi,empty\n'
            '"Say ""hi""","a,b","line1\nline2",'
        )

    def test_empty(self):
        assert to_csv([]) == ""

    def test_sales_export(self, app, run, sales):
        view = ReportingView(app.store, now=NOW)
        lines = run(view.export_csv()).split("\n")
        assert lines[0] == ",".join(SALES_CSV_HEADERS)
        assert len(lines) == 4
        assert lines[1].startswith(f"{sales[0]['receiptNumber']},")
        assert ",Ada,cash,1,30,0,30," in lines[1]
        assert lines[1].endswith("Coffee Beans (3x$10.00)")
        assert "Walk-in Customer" in lines[2]
        assert lines[2].endswith("Novel (2x$5.00); Coffee Beans (1x$10.00)")

    def test_default_filename(self, app):
        view = ReportingView(app.store, now=NOW)
        assert view.default_filename() == "sales-report-2026-09-17-to-2026-10-17.csv"
