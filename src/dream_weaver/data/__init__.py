"""内置数据 - 预设角色与画风"""

import json
from functools import lru_cache
from pathlib import Path

DATA_DIR = Path(__file__).parent


@lru_cache
def load_character_library() -> dict[str, str]:
    """预设角色名 -> 角色外观描述"""
    return json.loads((DATA_DIR / "characters.json").read_text(encoding="utf-8"))


@lru_cache
def load_style_presets() -> tuple[str, ...]:
    return tuple(json.loads((DATA_DIR / "styles.json").read_text(encoding="utf-8")))
