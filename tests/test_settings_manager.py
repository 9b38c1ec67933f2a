from __future__ import annotations

import json
from pathlib import Path

from webp_studio.models import MaskKind, MaskShape
from webp_studio.settings_manager import StyleSettings


def test_missing_file_loads_defaults(tmp_path: Path) -> None:
    settings = StyleSettings(str(tmp_path / "settings.json"))

    assert settings.data == {}
    assert settings.border_radius == 0
    assert settings.is_circle is False
    assert settings.default_mask() == MaskShape.none()


def test_save_without_remember_writes_nothing(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    settings = StyleSettings(str(path))

    assert settings.save({"borderRadius": 24, "remember": False}) is False
    assert not path.exists()


def test_saved_style_seeds_next_session(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    StyleSettings(str(path)).save({"borderRadius": 24, "isCircle": False, "remember": True, "junk": 1})

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert stored == {"borderRadius": 24, "isCircle": False, "remember": True}

    reloaded = StyleSettings(str(path))
    assert reloaded.default_mask() == MaskShape.rounded(24)


def test_circle_flag_wins(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"borderRadius": 30, "isCircle": True}), encoding="utf-8")

    assert StyleSettings(str(path)).default_mask().kind is MaskKind.CIRCLE


def test_corrupt_file_loads_empty(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    settings = StyleSettings(str(path))

    assert settings.data == {}
    assert settings.default_mask() == MaskShape.none()


def test_frame_color_falls_back_to_black(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"frameColor": "not-a-color"}), encoding="utf-8")
    assert StyleSettings(str(path)).frame_color().name() == "#000000"

    path.write_text(json.dumps({"frameColor": "#ff8800"}), encoding="utf-8")
    assert StyleSettings(str(path)).frame_color().name() == "#ff8800"
