from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .errors import ConfigError
from .models import AppConfig


def _resolve_database_path(data: dict[str, Any], base_dir: Path) -> None:
    database = data.get("database")
    if not isinstance(database, dict):
        return
    raw_path = database.get("path")
    if not isinstance(raw_path, str) or raw_path == "":
        return
    path = Path(raw_path)
    if not path.is_absolute():
        database["path"] = str(base_dir / path)


def load_config(path: Path) -> AppConfig:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        msg = f"config not found: {path}"
        raise ConfigError(msg) from exc
    except tomllib.TOMLDecodeError as exc:
        msg = "toml parse error"
        raise ConfigError(msg) from exc

    _resolve_database_path(data, path.parent)

    try:
        return AppConfig.from_raw(data)
    except ValidationError as exc:
        msg = f"invalid config: {path}"
        raise ConfigError(msg) from exc
