"""
Shared fixtures: a fresh shop backed by a temporary SQLite file.
"""

import asyncio
import sqlite3

import pytest

from shoppos.app import ShopApp


@pytest.fixture
def run():
    """Run a coroutine to completion on a new event loop."""
    return asyncio.run


@pytest.fixture
def app(tmp_path):
    shop = ShopApp.open(tmp_path / "shop.db")
    yield shop
    shop.close()


@pytest.fixture
def product_factory(app, run):
    """Add a product with sensible defaults."""

    def make(name="Coffee Beans", category="food", price=10.0, stock=20, **extra):
        data = {"name": name, "category": category, "price": price, "stock": stock}
        data.update(extra)
        return run(app.catalog.add(data))

    return make


class FailingConnection:
    """Stands in for a sqlite3 connection whose every call fails."""

    def execute(self, *args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    executemany = execute
    executescript = execute

    def commit(self):
        raise sqlite3.OperationalError("disk I/O error")

    def rollback(self):
        pass

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def failing_store(app):
    """Break the store's connection; returns a function restoring it."""
    original = app.store._conn
    app.store._conn = FailingConnection()

    def restore():
        app.store._conn = original

    yield restore
    app.store._conn = original
