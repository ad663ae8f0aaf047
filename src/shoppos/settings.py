"""Shop settings singleton"""

import json
import logging
from dataclasses import replace
from typing import Optional, Union

from .errors import PersistenceFailure, ValidationError
from .events import SETTINGS_UPDATED, EventBus
from .models import Settings
from .store import SETTINGS_KEY, RecordStore
from .utils import now_iso

logger = logging.getLogger(__name__)

SETTINGS_VERSION = "1.0.0"


def validate_settings(settings: Settings) -> list[str]:
    errors = []
    if not isinstance(settings.shop_name, str) or not settings.shop_name.strip():
        errors.append("Shop name is required")
    rate = settings.tax_rate
    if not isinstance(rate, (int, float)) or isinstance(rate, bool) or not 0 <= rate <= 1:
        errors.append("Tax rate must be between 0% and 100%")
    return errors


class SettingsService:
    def __init__(self, store: RecordStore, events: Optional[EventBus] = None):
        self.store = store
        self.events = events or EventBus()

    async def get(self) -> Settings:
        """Stored settings merged over the defaults"""
        data = await self.store.get(SETTINGS_KEY, None)
        return Settings.from_dict(data or {})

    async def _save(self, settings: Settings) -> Settings:
        errors = validate_settings(settings)
        if errors:
            raise ValidationError(errors)
        if not await self.store.set(SETTINGS_KEY, settings.to_dict()):
            raise PersistenceFailure(SETTINGS_KEY)
        await self.events.emit(SETTINGS_UPDATED, settings)
        return settings

    async def update(self, **changes) -> Settings:
        """Change individual settings, e.g. ``update(tax_rate=0.08)``"""
        current = await self.get()
        try:
            updated = replace(current, **changes)
        except TypeError as e:
            raise ValidationError(str(e)) from e
        return await self._save(updated)

    async def reset(self) -> Settings:
        logger.info("Resetting settings to defaults")
        return await self._save(Settings())

    async def export_json(self) -> str:
        settings = await self.get()
        return json.dumps({
            "settings": settings.to_dict(),
            "exportDate": now_iso(),
            "version": SETTINGS_VERSION,
        }, indent=2, ensure_ascii=False)

    async def import_json(self, payload: Union[str, dict]) -> Settings:
        """Load settings exported by :meth:`export_json`"""
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid settings file: {e}") from e
        if not isinstance(payload, dict) or not isinstance(payload.get("settings"), dict):
            raise ValidationError("Invalid settings file format")
        return await self._save(Settings.from_dict(payload["settings"]))
