"""Wires one store and one instance of each service together"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .backup import BackupService
from .catalog import CatalogService
from .checkout import Cart, CheckoutPipeline
from .customers import CustomerService
from .events import EventBus
from .models import Product
from .reporting import ReportingView
from .settings import SettingsService
from .store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class ShopApp:
    store: RecordStore
    events: EventBus
    catalog: CatalogService
    customers: CustomerService
    settings: SettingsService
    checkout: CheckoutPipeline
    backup: BackupService

    @classmethod
    def open(cls, db_path: Optional[Path] = None) -> "ShopApp":
        store = RecordStore(db_path)
        events = EventBus()
        catalog = CatalogService(store, events)
        customers = CustomerService(store, events)
        settings = SettingsService(store, events)
        return cls(
            store=store,
            events=events,
            catalog=catalog,
            customers=customers,
            settings=settings,
            checkout=CheckoutPipeline(store, catalog, customers, settings, events),
            backup=BackupService(store, settings, events),
        )

    def close(self):
        self.store.close()

    def new_cart(self) -> Cart:
        return Cart()

    def reporting(self, **kwargs) -> ReportingView:
        return ReportingView(self.store, **kwargs)

    async def check_low_stock(self) -> list[Product]:
        """Products at or below the low-stock threshold, out of stock included"""
        low = await self.catalog.low_stock()
        out = await self.catalog.out_of_stock()
        if low or out:
            logger.warning("%d product(s) low on stock, %d out of stock", len(low), len(out))
        return out + low
