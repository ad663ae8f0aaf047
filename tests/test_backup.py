"""
Tests for full-data export/import, clearing, and the settings service.
"""

import json

import pytest

from shoppos.app import ShopApp
from shoppos.checkout import Cart
from shoppos.errors import ValidationError
from shoppos.events import DATA_RESTORED, SETTINGS_UPDATED
from shoppos.store import CUSTOMERS_KEY, PRODUCTS_KEY, SALES_KEY, SETTINGS_KEY


@pytest.fixture
def populated(app, run, product_factory):
    run(app.settings.update(shop_name="Corner Shop", tax_rate=0.05))
    product = product_factory(name="Coffee Beans", price=12.99, stock=40)
    customer = run(app.customers.add({"name": "Ada", "email": "ada@example.com"}))
    cart = Cart()
    cart.add_product(product)
    run(app.checkout.checkout(cart, "cash", tendered=20, customer_id=customer.id))
    return app


class TestExportImport:
    """Round trip and all-or-nothing import."""

    def test_export_shape(self, populated, run):
        data = run(populated.backup.export_data())
        assert set(data) == {
            PRODUCTS_KEY, SALES_KEY, CUSTOMERS_KEY, SETTINGS_KEY, "exportDate", "version",
        }
        assert data["version"] == "1.0.0"
        assert data[SETTINGS_KEY]["shopName"] == "Corner Shop"
        assert len(data[SALES_KEY]) == 1

    def test_round_trip_into_empty_store(self, populated, run, tmp_path):
        exported = run(populated.backup.export_json())

        fresh = ShopApp.open(tmp_path / "fresh.db")
        try:
            assert run(fresh.backup.import_data(exported)) is True
            original = json.loads(exported)
            for key in (PRODUCTS_KEY, SALES_KEY, CUSTOMERS_KEY, SETTINGS_KEY):
                assert json.dumps(run(fresh.store.get(key))) == json.dumps(original[key])

            again = json.loads(run(fresh.backup.export_json()))
            for key in (PRODUCTS_KEY, SALES_KEY, CUSTOMERS_KEY, SETTINGS_KEY):
                assert again[key] == original[key]
        finally:
            fresh.close()

    def test_import_rejects_missing_key(self, populated, run):
        data = run(populated.backup.export_data())
        before = run(populated.store.get(PRODUCTS_KEY))
        del data[CUSTOMERS_KEY]
        data[PRODUCTS_KEY] = []

        with pytest.raises(ValidationError) as exc:
            run(populated.backup.import_data(data))
        assert exc.value.errors == ["Missing 'customers' in backup"]
        assert run(populated.store.get(PRODUCTS_KEY)) == before

    def test_import_rejects_unreadable_collections(self, populated, run):
        before = run(populated.backup.export_data())
        data = {
            PRODUCTS_KEY: "oops",
            SALES_KEY: [{"id": "s1"}],
            CUSTOMERS_KEY: {},
            SETTINGS_KEY: {"taxRate": "0.1"},
        }

        with pytest.raises(ValidationError) as exc:
            run(populated.backup.import_data(data))
        assert exc.value.errors == [
            "'products' must be a list",
            "sales[0] has an invalid date",
            "'customers' must be a list",
            "Tax rate must be between 0% and 100%",
        ]
        populated.store.clear_cache()
        for key in (PRODUCTS_KEY, SALES_KEY, CUSTOMERS_KEY):
            assert run(populated.store.get(key)) == before[key]
        assert len(run(populated.catalog.list())) == 1

    @pytest.mark.parametrize("key, record, message", [
        (PRODUCTS_KEY, "not a record", "products[0] has no id"),
        (CUSTOMERS_KEY, {"name": "No Id"}, "customers[0] has no id"),
        (SALES_KEY, {"id": "s1", "date": ""}, "sales[0] has an invalid date"),
        (SALES_KEY, {"id": "s1", "date": "yesterday"}, "sales[0] has an invalid date"),
    ])
    def test_import_rejects_bad_records(self, populated, run, key, record, message):
        data = run(populated.backup.export_data())
        data[key] = [record]
        with pytest.raises(ValidationError) as exc:
            run(populated.backup.import_data(data))
        assert exc.value.errors == [message]
        assert run(populated.store.get(key)) != [record]

    def test_import_rejects_bad_settings(self, populated, run):
        data = run(populated.backup.export_data())
        data[SETTINGS_KEY] = ["not", "an", "object"]
        with pytest.raises(ValidationError) as exc:
            run(populated.backup.import_data(data))
        assert exc.value.errors == ["'settings' must be an object"]

        data[SETTINGS_KEY] = {"shopName": "", "taxRate": 2}
        with pytest.raises(ValidationError) as exc:
            run(populated.backup.import_data(data))
        assert exc.value.errors == [
            "Shop name is required",
            "Tax rate must be between 0% and 100%",
        ]
        assert run(populated.settings.get()).shop_name == "Corner Shop"

    def test_import_rejects_bad_json(self, app, run):
        with pytest.raises(ValidationError):
            run(app.backup.import_data("{not json"))

    def test_import_drops_stale_cache_and_notifies(self, populated, run):
        seen = []
        populated.events.subscribe(DATA_RESTORED, seen.append)
        data = run(populated.backup.export_data())
        data[PRODUCTS_KEY] = []
        run(populated.backup.import_data(data))
        assert run(populated.catalog.list()) == []
        assert seen == [None]

    def test_write_and_read_backup_file(self, populated, run, tmp_path):
        path = run(populated.backup.write_backup(tmp_path / "backups"))
        assert path.name.startswith("shop-data-backup-")
        assert path.suffix == ".json"

        run(populated.backup.clear_all())
        assert run(populated.catalog.list()) == []
        run(populated.backup.read_backup(path))
        assert [p.name for p in run(populated.catalog.list())] == ["Coffee Beans"]


class TestClearing:
    """Clearing single collections or everything."""

    def test_clear_collections(self, populated, run):
        run(populated.backup.clear_sales())
        assert run(populated.checkout.list_sales()) == []
        assert len(run(populated.catalog.list())) == 1

        run(populated.backup.clear_products())
        run(populated.backup.clear_customers())
        assert run(populated.catalog.list()) == []
        assert run(populated.customers.list()) == []

    def test_clear_all_resets_settings(self, populated, run):
        run(populated.backup.clear_all())
        assert (run(populated.settings.get())).shop_name == "My Shop"


class TestSettings:
    """Settings defaults, validation, reset and export."""

    def test_defaults(self, app, run):
        settings = run(app.settings.get())
        assert settings.shop_name == "My Shop"
        assert settings.tax_rate == 0
        assert settings.enable_qr_payment is True
        assert settings.currency == "USD"

    def test_update_persists_and_notifies(self, app, run):
        seen = []
        app.events.subscribe(SETTINGS_UPDATED, seen.append)
        run(app.settings.update(tax_rate=0.08, shop_phone="555-0100"))
        stored = run(app.store.get(SETTINGS_KEY))
        assert stored["taxRate"] == 0.08
        assert stored["shopPhone"] == "555-0100"
        assert len(seen) == 1

    @pytest.mark.parametrize("rate", [-0.1, 1.5])
    def test_tax_rate_bounds(self, app, run, rate):
        with pytest.raises(ValidationError):
            run(app.settings.update(tax_rate=rate))
        assert run(app.settings.get()).tax_rate == 0

    def test_shop_name_required(self, app, run):
        with pytest.raises(ValidationError):
            run(app.settings.update(shop_name="  "))

    def test_unknown_setting(self, app, run):
        with pytest.raises(ValidationError):
            run(app.settings.update(colour="red"))

    def test_reset(self, app, run):
        run(app.settings.update(shop_name="Corner Shop"))
        assert run(app.settings.reset()).shop_name == "My Shop"

    def test_export_import_settings(self, app, run):
        run(app.settings.update(shop_name="Corner Shop", theme="dark"))
        exported = run(app.settings.export_json())
        run(app.settings.reset())

        restored = run(app.settings.import_json(exported))
        assert restored.shop_name == "Corner Shop"
        assert restored.theme == "dark"
        assert json.loads(exported)["version"] == "1.0.0"

    def test_import_settings_rejects_garbage(self, app, run):
        with pytest.raises(ValidationError):
            run(app.settings.import_json('{"nothing": 1}'))
