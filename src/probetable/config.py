"""Typed configuration loader for probetable tables and the CLI."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .contracts.error import BadInputError
from .core.hashing import HASHERS, resolve_hasher
from .core.maps import (
    DEFAULT_INITIAL_CAPACITY,
    DEFAULT_LARGE_TABLE_WARN,
    REHASH_LOAD_FACTOR,
    LinearProbingMap,
)
from .core.storage import DEFAULT_SCHEDULE


@dataclass
class TablePolicy:
    initial_capacity: int = DEFAULT_INITIAL_CAPACITY
    max_load_factor: float = REHASH_LOAD_FACTOR
    hasher: str = "builtin"
    large_table_warn_threshold: int = DEFAULT_LARGE_TABLE_WARN

    def validate(self) -> None:
        for name, expected in (
            ("initial_capacity", (int,)),
            ("max_load_factor", (int, float)),
            ("hasher", (str,)),
            ("large_table_warn_threshold", (int,)),
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, expected):
                kind = " or ".join(t.__name__ for t in expected)
                raise BadInputError(f"table.{name} must be {kind}, got {type(value).__name__}")
        if self.initial_capacity <= 0:
            raise BadInputError("table.initial_capacity must be > 0")
        if self.initial_capacity > DEFAULT_SCHEDULE.capacity_at(DEFAULT_SCHEDULE.max_index):
            raise BadInputError("table.initial_capacity exceeds the largest scheduled prime")
        if not 0.0 < self.max_load_factor < 1.0:
            raise BadInputError("table.max_load_factor must be in (0, 1)")
        if self.hasher not in HASHERS:
            choices = ", ".join(sorted(HASHERS))
            raise BadInputError(f"table.hasher must be one of: {choices}")
        if self.large_table_warn_threshold < 0:
            raise BadInputError("table.large_table_warn_threshold must be >= 0")

    def build_table(self) -> LinearProbingMap:
        return LinearProbingMap(
            resolve_hasher(self.hasher),
            self.initial_capacity,
            max_load_factor=self.max_load_factor,
            large_table_warn_threshold=self.large_table_warn_threshold,
        )


@dataclass
class AppConfig:
    table: TablePolicy = field(default_factory=TablePolicy)

    @classmethod
    def load(cls, path: Path | None) -> AppConfig:
        if path is None:
            cfg = cls()
        else:
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError as exc:
                raise BadInputError(f"Config file not found: {path}") from exc
            except tomllib.TOMLDecodeError as exc:
                raise BadInputError(f"Invalid TOML: {exc}") from exc
            cfg = cls.from_dict(data)
        cfg.apply_env_overrides(os.environ)
        cfg.validate()
        return cfg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        table_data = data.get("table", {})
        if not isinstance(table_data, dict):
            raise BadInputError("[table] section must be a table")
        try:
            table = TablePolicy(**table_data)
        except TypeError as exc:
            raise BadInputError(f"Unknown [table] option: {exc}") from exc
        return cls(table=table)

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        table_mapping: dict[str, tuple[str, Callable[[str], Any]]] = {
            "PROBETABLE_INITIAL_CAPACITY": ("initial_capacity", int),
            "PROBETABLE_MAX_LOAD_FACTOR": ("max_load_factor", float),
            "PROBETABLE_HASHER": ("hasher", str),
            "PROBETABLE_LARGE_WARN_THRESHOLD": ("large_table_warn_threshold", int),
        }
        for key, (attr, caster) in table_mapping.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = caster(raw_value.strip())
            except ValueError as exc:
                raise BadInputError(f"Invalid env override {key}={raw_value!r}") from exc
            setattr(self.table, attr, value)

    def validate(self) -> None:
        self.table.validate()


def _format_float(value: float) -> str:
    text = repr(float(value))
    return text if "." in text or "e" in text else f"{text}.0"


def format_app_config_to_toml(cfg: AppConfig) -> str:
    table = cfg.table
    lines = [
        "[table]",
        f"initial_capacity = {table.initial_capacity}",
        f"max_load_factor = {_format_float(table.max_load_factor)}",
        f'hasher = "{table.hasher}"',
        f"large_table_warn_threshold = {table.large_table_warn_threshold}",
        "",
    ]
    return "\n".join(lines)


def load_app_config(path: str | None) -> AppConfig:
    config_path = Path(path) if path else None
    return AppConfig.load(config_path)


__all__ = [
    "AppConfig",
    "TablePolicy",
    "format_app_config_to_toml",
    "load_app_config",
]
