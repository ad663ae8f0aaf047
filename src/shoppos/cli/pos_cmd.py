#!/usr/bin/env python3
"""
Shop POS CLI

Usage:
    shoppos init [--demo]
    shoppos products [--search TEXT] [--category CATEGORY]
    shoppos add-product --name NAME --category CATEGORY --price PRICE --stock N
    shoppos stock
    shoppos adjust-stock PRODUCT_ID DELTA
    shoppos restock PRODUCT_ID AMOUNT
    shoppos customers [--search TEXT]
    shoppos add-customer --name NAME [--email EMAIL] [--phone PHONE]
    shoppos sell --item PRODUCT_ID[:QTY] ... --payment cash|card|qr [--tendered AMOUNT]
    shoppos refund SALE_ID
    shoppos report [--from YYYY-MM-DD] [--to YYYY-MM-DD] [--csv PATH]
    shoppos export [--dir DIR]
    shoppos import FILE
    shoppos receipt [SALE_ID]
    shoppos settings [--shop-name NAME] [--tax-rate RATE] ...
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

from dotenv import load_dotenv

from shoppos.app import ShopApp
from shoppos.config import load_config
from shoppos.errors import ShopPOSError
from shoppos.utils import format_currency, get_stock_status

load_dotenv()


async def cmd_init(app: ShopApp, args):
    """Create the data file and optionally load demo products"""
    settings = await app.settings.get()
    if not await app.store.get("settings"):
        await app.settings.update()
    print(f"Shop data: {app.store.path}")
    if args.demo:
        added = await app.catalog.seed_demo()
        if added:
            print(f"{len(added)} demo products added.")
        else:
            print("Catalog is not empty, demo products skipped.")
    print(f"Shop: {settings.shop_name}  tax {settings.tax_rate * 100:g}%  currency {settings.currency}")


async def cmd_products(app: ShopApp, args):
    """List products"""
    if args.search:
        products = await app.catalog.search(args.search)
    else:
        products = await app.catalog.filter_by_category(args.category or "all")

    if not products:
        print("No products found.")
        return

    settings = await app.settings.get()
    print(f"=== Products ({len(products)}) ===\n")
    for p in products:
        status = get_stock_status(p.stock)
        print(f"  {p.name}  {format_currency(p.price, settings.currency)}  x{p.stock} [{status}]")
        print(f"    id: {p.id}  category: {p.category}  barcode: {p.barcode or '-'}")


async def cmd_add_product(app: ShopApp, args):
    product = await app.catalog.add({
        "name": args.name,
        "category": args.category,
        "price": args.price,
        "stock": args.stock,
        "barcode": args.barcode,
        "description": args.description,
    })
    print(f"Added {product.name} ({product.id})")


async def cmd_stock(app: ShopApp, args):
    """Inventory summary and products needing restock"""
    settings = await app.settings.get()
    summary = await app.catalog.inventory_summary()
    print("=== Inventory ===\n")
    print(f"  Products:      {summary['totalProducts']}")
    print(f"  Units:         {summary['totalUnits']}")
    print(f"  Stock value:   {format_currency(summary['totalValue'], settings.currency)}")
    print(f"  Low stock:     {summary['lowStockCount']}")
    print(f"  Out of stock:  {summary['outOfStockCount']}")

    attention = await app.check_low_stock()
    if attention:
        print("\n【Needs restock】")
        for p in attention:
            print(f"  {p.name} x{p.stock} [{get_stock_status(p.stock)}]  id: {p.id}")


async def cmd_adjust_stock(app: ShopApp, args):
    new_stock = await app.catalog.adjust_stock(args.product_id, args.delta)
    if new_stock is None:
        print(f"Product not found: {args.product_id}", file=sys.stderr)
        sys.exit(1)
    print(f"New stock: {new_stock}")


async def cmd_restock(app: ShopApp, args):
    new_stock = await app.catalog.restock(args.product_id, args.amount)
    if new_stock is None:
        print(f"Product not found: {args.product_id}", file=sys.stderr)
        sys.exit(1)
    print(f"Added {args.amount} units. New stock: {new_stock}")


async def cmd_customers(app: ShopApp, args):
    customers = await app.customers.search(args.search or "")
    if not customers:
        print("No customers found.")
        return

    settings = await app.settings.get()
    print(f"=== Customers ({len(customers)}) ===\n")
    for c in sorted(customers, key=lambda c: c.total_spent, reverse=True):
        spent = format_currency(c.total_spent, settings.currency)
        print(f"  {c.name}  purchases: {c.total_purchases}  spent: {spent}")
        contact = "  ".join(v for v in (c.email, c.phone) if v)
        print(f"    id: {c.id}  {contact}")


async def cmd_add_customer(app: ShopApp, args):
    customer = await app.customers.add({
        "name": args.name,
        "email": args.email,
        "phone": args.phone,
        "address": args.address,
    })
    print(f"Customer {customer.name} added ({customer.id})")


def _parse_item(spec: str) -> tuple[str, int]:
    product_id, _, qty = spec.partition(":")
    try:
        return product_id, int(qty) if qty else 1
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid item: {spec}")


async def cmd_sell(app: ShopApp, args):
    """Build a cart from --item options and check out"""
    from shoppos.receipt import receipt_lines

    cart = app.new_cart()
    for product_id, qty in args.item:
        product = await app.catalog.get_by_id(product_id)
        if product is None:
            print(f"Product not found: {product_id}", file=sys.stderr)
            sys.exit(1)
        for _ in range(qty):
            cart.add_product(product)

    sale = await app.checkout.checkout(
        cart,
        args.payment,
        tendered=args.tendered,
        customer_id=args.customer,
    )
    settings = await app.settings.get()
    for line in receipt_lines(sale, settings):
        print(line.lstrip("*"))
    print(f"\nSale id: {sale.id}")


async def cmd_refund(app: ShopApp, args):
    sale = await app.checkout.refund(args.sale_id)
    if sale is None:
        print(f"Sale not found: {args.sale_id}", file=sys.stderr)
        sys.exit(1)
    settings = await app.settings.get()
    print(f"Refunded {sale.receipt_number} ({format_currency(sale.total, settings.currency)}).")
    print("Stock restored for all items.")


def _parse_day(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (YYYY-MM-DD): {value}")


async def cmd_report(app: ShopApp, args):
    """Sales report for a date range (default: last 30 days)"""
    end = args.to_date + timedelta(days=1, microseconds=-1) if args.to_date else None
    view = app.reporting(start=args.from_date, end=end)
    settings = await app.settings.get()
    money = settings.currency

    report = await view.report()
    summary = report["summary"]
    print(f"=== Sales {report['period']['start']} ~ {report['period']['end']} ===\n")
    print(f"  Revenue:       {format_currency(summary['totalSales'], money)}")
    print(f"  Transactions:  {summary['totalTransactions']}")
    print(f"  Average sale:  {format_currency(summary['averageSale'], money)}")
    print(f"  Today:         {format_currency(await view.today_total(), money)}")

    if report["paymentMethods"]:
        print("\n【Payment methods】")
        for method, entry in sorted(report["paymentMethods"].items()):
            print(f"  {method}: {entry['count']} sale(s), {format_currency(entry['total'], money)}")

    if report["topProducts"]:
        print("\n【Top products】")
        for entry in report["topProducts"]:
            print(f"  {entry['name']} x{entry['quantity']}  {format_currency(entry['revenue'], money)}")

    if args.csv:
        path = Path(args.csv)
        if path.is_dir():
            path = path / view.default_filename()
        path.write_text(await view.export_csv(money), encoding="utf-8")
        print(f"\nCSV written: {path}")


async def cmd_export(app: ShopApp, args):
    path = await app.backup.write_backup(args.dir)
    print(f"Data exported: {path}")


async def cmd_import(app: ShopApp, args):
    await app.backup.read_backup(args.file)
    print("Data imported successfully.")


async def cmd_receipt(app: ShopApp, args, receipt_dir: Path):
    from shoppos.receipt import save_receipt_image

    if args.sale_id:
        sale = await app.checkout.get_sale(args.sale_id)
    else:
        sale = await app.checkout.last_sale()
    if sale is None:
        print("No sale to print.", file=sys.stderr)
        sys.exit(1)

    customer = await app.customers.get_by_id(sale.customer_id) if sale.customer_id else None
    path = save_receipt_image(sale, await app.settings.get(), str(receipt_dir), customer=customer)
    print(f"Receipt saved: {path}")


async def cmd_settings(app: ShopApp, args):
    changes = {
        attr: getattr(args, attr)
        for attr in ("shop_name", "shop_address", "shop_phone", "tax_rate", "currency", "theme")
        if getattr(args, attr) is not None
    }
    if args.qr is not None:
        changes["enable_qr_payment"] = args.qr == "on"
    if args.reset:
        settings = await app.settings.reset()
    elif changes:
        settings = await app.settings.update(**changes)
    else:
        settings = await app.settings.get()

    for key, value in settings.to_dict().items():
        print(f"  {key}: {value}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shoppos", description="Shop point of sale")
    subparsers = parser.add_subparsers(dest="command")

    p_init = subparsers.add_parser("init", help="Create the shop data file")
    p_init.add_argument("--demo", action="store_true", help="Add demo products")

    p_products = subparsers.add_parser("products", help="List products")
    p_products.add_argument("--search", help="Name, category or barcode")
    p_products.add_argument("--category", help="Only this category")

    p_add = subparsers.add_parser("add-product", help="Add a product")
    p_add.add_argument("--name", required=True)
    p_add.add_argument("--category", required=True)
    p_add.add_argument("--price", type=float, required=True)
    p_add.add_argument("--stock", type=int, default=0)
    p_add.add_argument("--barcode")
    p_add.add_argument("--description")

    subparsers.add_parser("stock", help="Inventory summary")

    p_adjust = subparsers.add_parser("adjust-stock", help="Change stock by a signed amount")
    p_adjust.add_argument("product_id")
    p_adjust.add_argument("delta", type=int)

    p_restock = subparsers.add_parser("restock", help="Add units to stock")
    p_restock.add_argument("product_id")
    p_restock.add_argument("amount", type=int)

    p_customers = subparsers.add_parser("customers", help="List customers")
    p_customers.add_argument("--search")

    p_add_customer = subparsers.add_parser("add-customer", help="Add a customer")
    p_add_customer.add_argument("--name", required=True)
    p_add_customer.add_argument("--email")
    p_add_customer.add_argument("--phone")
    p_add_customer.add_argument("--address")

    p_sell = subparsers.add_parser("sell", help="Check out a sale")
    p_sell.add_argument("--item", type=_parse_item, action="append", required=True,
                        help="PRODUCT_ID[:QTY], repeatable")
    p_sell.add_argument("--payment", choices=["cash", "card", "qr"], default="cash")
    p_sell.add_argument("--tendered", type=float, help="Cash received")
    p_sell.add_argument("--customer", help="Customer id")

    p_refund = subparsers.add_parser("refund", help="Refund a sale")
    p_refund.add_argument("sale_id")

    p_report = subparsers.add_parser("report", help="Sales report")
    p_report.add_argument("--from", dest="from_date", type=_parse_day, help="Start date (YYYY-MM-DD)")
    p_report.add_argument("--to", dest="to_date", type=_parse_day, help="End date (YYYY-MM-DD)")
    p_report.add_argument("--csv", help="Write the sales CSV to this file or directory")

    p_export = subparsers.add_parser("export", help="Write a full JSON backup")
    p_export.add_argument("--dir", default=".", help="Output directory (default: .)")

    p_import = subparsers.add_parser("import", help="Restore a JSON backup")
    p_import.add_argument("file")

    p_receipt = subparsers.add_parser("receipt", help="Save a receipt image")
    p_receipt.add_argument("sale_id", nargs="?", help="Sale id (default: last sale)")

    p_settings = subparsers.add_parser("settings", help="Show or change settings")
    p_settings.add_argument("--shop-name")
    p_settings.add_argument("--shop-address")
    p_settings.add_argument("--shop-phone")
    p_settings.add_argument("--tax-rate", type=float, help="Fraction, e.g. 0.08")
    p_settings.add_argument("--currency")
    p_settings.add_argument("--theme")
    p_settings.add_argument("--qr", choices=["on", "off"], help="QR payment")
    p_settings.add_argument("--reset", action="store_true", help="Restore defaults")

    return parser


COMMANDS = {
    "init": cmd_init,
    "products": cmd_products,
    "add-product": cmd_add_product,
    "stock": cmd_stock,
    "adjust-stock": cmd_adjust_stock,
    "restock": cmd_restock,
    "customers": cmd_customers,
    "add-customer": cmd_add_customer,
    "sell": cmd_sell,
    "refund": cmd_refund,
    "report": cmd_report,
    "export": cmd_export,
    "import": cmd_import,
    "settings": cmd_settings,
}


async def run(args, config) -> None:
    app = ShopApp.open(config.db_path)
    try:
        if args.command == "receipt":
            await cmd_receipt(app, args, config.receipt_dir)
        else:
            await COMMANDS[args.command](app, args)
    finally:
        app.close()


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(run(args, config))
    except ShopPOSError as e:
        print(f"Error: {e.message or e.code}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(1)


if __name__ == "__main__":
    main()
