from __future__ import annotations

import json
import os
from typing import Any

from PySide6.QtGui import QColor

from .logger import get_logger
from .models import MaskShape

_logger = get_logger("settings")

KNOWN_KEYS = ("borderRadius", "frameWidth", "frameColor", "isCircle", "remember")


class StyleSettings:
    """Last-used style options, stored as JSON.

    Read once at construction; written only when the settings carry `remember`.
    """

    DEFAULTS: dict[str, Any] = {
        "borderRadius": 0,
        "frameWidth": 0,
        "frameColor": "#000000",
        "isCircle": False,
        "remember": False,
    }

    def __init__(self, settings_path: str):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = {k: v for k, v in data.items() if k in KNOWN_KEYS}
                        _logger.debug("settings loaded: %s", self.settings_path)
                        return
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = {}

    def save(self, settings: dict[str, Any]) -> bool:
        """Persist `settings` if they ask to be remembered. Returns True when written."""
        if not settings.get("remember"):
            return False
        data = {k: v for k, v in settings.items() if k in KNOWN_KEYS}
        try:
            parent = os.path.dirname(self.settings_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except OSError as e:
            _logger.error("settings save failed: %s", e)
            return False
        self._settings = data
        return True

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    @property
    def data(self) -> dict[str, Any]:
        return self._settings

    @property
    def border_radius(self) -> int:
        try:
            return int(self.get("borderRadius", 0))
        except (TypeError, ValueError):
            return 0

    @property
    def is_circle(self) -> bool:
        return bool(self.get("isCircle", False))

    def default_mask(self) -> MaskShape:
        return MaskShape.from_style(self.is_circle, self.border_radius)

    def frame_color(self) -> QColor:
        hexcol = self.get("frameColor")
        if isinstance(hexcol, str):
            color = QColor(hexcol)
            if color.isValid():
                return color
            _logger.warning("saved frameColor invalid: %s", hexcol)
        return QColor(0, 0, 0)
