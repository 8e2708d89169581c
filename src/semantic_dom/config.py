# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Parser configuration: defaults, optional YAML file, environment overrides.

Precedence (lowest → highest): defaults, YAML file, ``SEMANTIC_DOM_*`` env vars.
CLI flags are applied on top by the caller via ``dataclasses.replace``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .security import DEFAULT_MAX_INPUT_SIZE

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 50
DEFAULT_EXCLUDE_TAGS = frozenset({"script", "style", "noscript", "template"})

ENV_MAX_INPUT_SIZE = "SEMANTIC_DOM_MAX_INPUT_SIZE"
ENV_MAX_DEPTH = "SEMANTIC_DOM_MAX_DEPTH"


@dataclass(frozen=True, slots=True)
class ParserConfig:
    """Options for one parse call."""

    max_input_size: int = DEFAULT_MAX_INPUT_SIZE  # bytes
    max_depth: int = DEFAULT_MAX_DEPTH  # root is depth 0
    exclude_tags: frozenset[str] = DEFAULT_EXCLUDE_TAGS  # skipped with their subtree
    include_state_graph: bool = True
    validate: bool = True  # run certification
    include_selectors: bool = False  # emit sel: lines in compact output

    def __post_init__(self) -> None:
        if self.max_input_size <= 0:
            raise ConfigError(f"max_input_size must be positive (got {self.max_input_size})")
        if self.max_depth < 0:
            raise ConfigError(f"max_depth must be >= 0 (got {self.max_depth})")


_FIELD_NAMES = frozenset(f.name for f in fields(ParserConfig))


def _coerce(name: str, value: Any) -> Any:
    if name in ("max_input_size", "max_depth"):
        if isinstance(value, bool) or not isinstance(value, int):
            try:
                return int(str(value).strip())
            except ValueError:
                raise ConfigError(f"{name} must be an integer (got {value!r})") from None
        return value
    if name == "exclude_tags":
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ConfigError(f"exclude_tags must be a list of tag names (got {value!r})")
        return frozenset(str(tag).strip().lower() for tag in value if str(tag).strip())
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false (got {value!r})")
    return value


def config_from_mapping(data: dict[str, Any]) -> ParserConfig:
    """Build a ParserConfig from a plain mapping (e.g. parsed YAML)."""
    unknown = set(data) - _FIELD_NAMES
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(sorted(unknown))}")
    return ParserConfig(**{name: _coerce(name, value) for name, value in data.items()})


def load_config(path: str | Path | None = None, *, env: dict[str, str] | None = None) -> ParserConfig:
    """Load configuration from an optional YAML file plus environment overrides."""
    data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        try:
            with open(config_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError("Config file must contain a mapping at the top level")
        data.update(loaded)
        logger.debug("Loaded config file %s (%d keys)", config_path, len(loaded))

    environ = os.environ if env is None else env
    if ENV_MAX_INPUT_SIZE in environ:
        data["max_input_size"] = environ[ENV_MAX_INPUT_SIZE]
    if ENV_MAX_DEPTH in environ:
        data["max_depth"] = environ[ENV_MAX_DEPTH]

    return config_from_mapping(data)
