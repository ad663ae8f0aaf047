"""Full-data export, import and clearing"""

import copy
import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional, Union

from .errors import PersistenceFailure, ValidationError
from .events import DATA_RESTORED, PRODUCTS_UPDATED, EventBus
from .models import Settings
from .settings import SettingsService, validate_settings
from .store import (
    CUSTOMERS_KEY,
    DATASET_KEYS,
    PRODUCTS_KEY,
    SALES_KEY,
    SETTINGS_KEY,
    RecordStore,
)
from .utils import now_iso, parse_iso

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0.0"


def _valid_date(value) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parse_iso(value)
    except ValueError:
        return False
    return True


def validate_backup(payload: dict) -> list[str]:
    """Problems that would leave the restored data unreadable, in key order."""
    errors = [f"Missing '{key}' in backup" for key in DATASET_KEYS if payload.get(key) is None]
    if errors:
        return errors

    for key in (PRODUCTS_KEY, SALES_KEY, CUSTOMERS_KEY):
        records = payload[key]
        if not isinstance(records, list):
            errors.append(f"'{key}' must be a list")
            continue
        for i, record in enumerate(records):
            if not isinstance(record, dict) or not record.get("id"):
                errors.append(f"{key}[{i}] has no id")
            elif key == SALES_KEY and not _valid_date(record.get("date")):
                errors.append(f"{key}[{i}] has an invalid date")

    settings = payload[SETTINGS_KEY]
    if not isinstance(settings, dict):
        errors.append(f"'{SETTINGS_KEY}' must be an object")
    else:
        errors.extend(validate_settings(Settings.from_dict(settings)))
    return errors


class BackupService:
    def __init__(
        self,
        store: RecordStore,
        settings: SettingsService,
        events: Optional[EventBus] = None,
    ):
        self.store = store
        self.settings = settings
        self.events = events or EventBus()

    # ── export ──

    async def export_data(self) -> dict:
        """Snapshot of every collection plus an export stamp"""
        settings = await self.settings.get()
        return {
            PRODUCTS_KEY: copy.deepcopy(await self.store.get(PRODUCTS_KEY, [])),
            SALES_KEY: copy.deepcopy(await self.store.get(SALES_KEY, [])),
            CUSTOMERS_KEY: copy.deepcopy(await self.store.get(CUSTOMERS_KEY, [])),
            SETTINGS_KEY: settings.to_dict(),
            "exportDate": now_iso(),
            "version": BACKUP_VERSION,
        }

    async def export_json(self, indent: int = 2) -> str:
        return json.dumps(await self.export_data(), indent=indent, ensure_ascii=False)

    async def write_backup(self, directory: Union[str, Path] = ".") -> Path:
        """Write shop-data-backup-YYYY-MM-DD.json into ``directory``"""
        out = Path(directory)
        out.mkdir(parents=True, exist_ok=True)
        filepath = out / f"shop-data-backup-{date.today().isoformat()}.json"
        filepath.write_text(await self.export_json(), encoding="utf-8")
        logger.info("Backup written to %s", filepath)
        return filepath

    # ── import ──

    async def import_data(self, payload: Union[str, bytes, dict]) -> bool:
        """Replace all four collections from an export.

        Nothing is written unless ``products``, ``sales``, ``customers`` and
        ``settings`` are all present and readable (see ``validate_backup``).

        Raises:
            ValidationError: malformed document or a missing key
            PersistenceFailure: the store rejected the write
        """
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid backup file: {e}") from e
        if not isinstance(payload, dict):
            raise ValidationError("Invalid backup file format")

        errors = validate_backup(payload)
        if errors:
            raise ValidationError(errors, message="Invalid backup file format")

        if not await self.store.set_many({key: payload[key] for key in DATASET_KEYS}):
            raise PersistenceFailure(", ".join(DATASET_KEYS), "Failed to restore backup")

        logger.info("Data restored from backup dated %s", payload.get("exportDate", "?"))
        await self.events.emit(DATA_RESTORED, None)
        return True

    async def read_backup(self, filepath: Union[str, Path]) -> bool:
        return await self.import_data(Path(filepath).read_text(encoding="utf-8"))

    # ── clearing ──

    async def _reset(self, key: str):
        if not await self.store.set(key, []):
            raise PersistenceFailure(key)
        logger.info("Cleared %s", key)

    async def clear_products(self):
        await self._reset(PRODUCTS_KEY)
        await self.events.emit(PRODUCTS_UPDATED, None)

    async def clear_sales(self):
        await self._reset(SALES_KEY)
        await self.events.emit(DATA_RESTORED, None)

    async def clear_customers(self):
        await self._reset(CUSTOMERS_KEY)
        await self.events.emit(DATA_RESTORED, None)

    async def clear_all(self):
        """Drop every record, settings included"""
        if not await self.store.clear():
            raise PersistenceFailure("*", "Failed to clear storage")
        await self.events.emit(DATA_RESTORED, None)
