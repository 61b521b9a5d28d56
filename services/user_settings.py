from __future__ import annotations

from pathlib import Path

from db.engine import SETTINGS_FILE, lock_for, quarantine, read_json_document, resolve_data_dir, write_json_document
from schemas.domain import AppSettings, SettingsPatch, Theme
from services.logs import get_logger

logger = get_logger(__name__)

THEMES = tuple(t.value for t in Theme)


class SettingsStore:
    def __init__(self, base_path: str | Path | None = None):
        self.base_path = resolve_data_dir(base_path)
        self.path = self.base_path / SETTINGS_FILE
        self.lock = lock_for(self.path)
        self._settings = AppSettings()

    def initialize(self) -> AppSettings:
        with self.lock:
            self.base_path.mkdir(parents=True, exist_ok=True)
            if self.path.exists():
                try:
                    stored = read_json_document(self.path)
                    self._settings = AppSettings.model_validate({**AppSettings().to_document(), **stored})
                    return self.get()
                except (OSError, ValueError) as exc:
                    moved = quarantine(self.path)
                    logger.error("document_quarantined", path=str(self.path), moved_to=str(moved), error=str(exc))
            self._save(AppSettings())
            return self.get()

    def get(self) -> AppSettings:
        with self.lock:
            return self._settings.model_copy()

    def update(self, changes: SettingsPatch | dict) -> AppSettings:
        if not isinstance(changes, SettingsPatch):
            changes = SettingsPatch.model_validate(changes)

        with self.lock:
            settings = self._settings.model_copy()
            if changes.currency is not None:
                settings.currency = changes.currency.strip().upper() or "USD"
            if changes.currency_locale is not None:
                settings.currency_locale = changes.currency_locale.strip() or "en-US"
            if changes.theme is not None:
                theme = changes.theme.strip().lower()
                settings.theme = Theme(theme) if theme in THEMES else Theme.DARK
            if changes.is_first_run is not None:
                settings.is_first_run = bool(changes.is_first_run)
            self._save(settings)
            return self.get()

    def _save(self, settings: AppSettings) -> None:
        write_json_document(self.path, settings.to_document())
        self._settings = settings
