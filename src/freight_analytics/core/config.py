"""Engine configuration management helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

SHORT_TTL_SECONDS = 5 * 60
LONG_TTL_SECONDS = 60 * 60


def _str_to_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value: {value}") from exc


def _str_to_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration object loaded from env or files."""

    base_url: str = "https://api.linbis.com"
    short_ttl_seconds: float = SHORT_TTL_SECONDS
    long_ttl_seconds: float = LONG_TTL_SECONDS
    page_size: int = 50
    max_pages: int = 100
    max_workers: int = 8
    timeout_seconds: float = 30.0
    cache_path: Optional[str] = None

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def from_env(cls) -> "EngineConfig":
        defaults = cls()
        return cls(
            base_url=os.getenv("FREIGHT_BASE_URL", defaults.base_url),
            short_ttl_seconds=_str_to_float(
                os.getenv("FREIGHT_SHORT_TTL_SECONDS"), defaults.short_ttl_seconds
            ),
            long_ttl_seconds=_str_to_float(
                os.getenv("FREIGHT_LONG_TTL_SECONDS"), defaults.long_ttl_seconds
            ),
            page_size=_str_to_int(os.getenv("FREIGHT_PAGE_SIZE"), defaults.page_size),
            max_pages=_str_to_int(os.getenv("FREIGHT_MAX_PAGES"), defaults.max_pages),
            max_workers=_str_to_int(
                os.getenv("FREIGHT_MAX_WORKERS"), defaults.max_workers
            ),
            timeout_seconds=_str_to_float(
                os.getenv("FREIGHT_TIMEOUT_SECONDS"), defaults.timeout_seconds
            ),
            cache_path=os.getenv("FREIGHT_CACHE_PATH") or defaults.cache_path,
        )

    @classmethod
    def from_file(cls, path: str) -> "EngineConfig":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        raw = file_path.read_text()
        data: Dict[str, Any]
        suffix = file_path.suffix.lower()
        if suffix == ".json":
            data = json.loads(raw)
        elif suffix in {".yaml", ".yml"}:
            data = cls._load_yaml(raw)
        else:
            raise ValueError("Unsupported config format. Use JSON or YAML.")
        return cls(**cls._merge_with_defaults(data))

    def validate(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must be provided")
        if self.short_ttl_seconds <= 0 or self.long_ttl_seconds <= 0:
            raise ValueError("TTL values must be greater than zero")
        if self.short_ttl_seconds > self.long_ttl_seconds:
            raise ValueError("short_ttl_seconds must not exceed long_ttl_seconds")
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        if self.max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than zero")

    @classmethod
    def _merge_with_defaults(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        defaults = cls()
        return {
            item.name: data.get(item.name, getattr(defaults, item.name))
            for item in fields(cls)
        }

    @staticmethod
    def _load_yaml(raw: str) -> Dict[str, Any]:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to parse YAML config files") from exc
        return yaml.safe_load(raw) or {}
