# Tweaq Change Engine
# Copyright (C) 2025 Phoenix Link (Pty) Ltd. All Rights Reserved.
#
# This file is part of Tweaq Change Engine.
#
# Tweaq Change Engine is dual-licensed:
#
# 1. Open Source: GNU Affero General Public License v3.0 (AGPL-3.0)
#    You may use, modify, and distribute this file under AGPL-3.0.
#    See LICENSE for the full text.
#
# 2. Commercial: Available from Phoenix Link (Pty) Ltd
#    For proprietary use, SaaS deployment, or enterprise licensing.
#    See LICENSE-ENTERPRISE.md or contact info@phoenixlink.co.za
#
# Contributions require a signed CLA. See COPYRIGHT.md and CLA.md.
"""
Tweaq Change Engine -- Engine Settings

Every tunable the pipeline reads is declared once on EngineSettings and
resolved through a single ordered lookup.

PRECEDENCE (first hit wins):
    1. Explicit override passed to load_engine_settings(**overrides)
    2. Environment variable  TWEAQ_<FIELD>   (e.g. TWEAQ_MAX_ATTEMPTS=5)
    3. Settings file         <tweaq home>/engine.json
    4. Built-in default      (the dataclass default below)

<tweaq home> is $TWEAQ_HOME when set, else ~/.tweaq.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from tweaq.core.errors import ConfigError

logger = logging.getLogger("tweaq.core.config")

ENV_PREFIX = "TWEAQ_"
SETTINGS_FILENAME = "engine.json"


def tweaq_home() -> Path:
    """Root directory for settings, keys and logs."""
    override = os.environ.get("TWEAQ_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".tweaq"


@dataclass
class EngineSettings:
    """Tunables for one ChangeEngine instance."""

    # Strategy Executor
    max_attempts: int = 3
    fallback_discount: float = 0.8
    min_length_ratio: float = 0.8
    broad_scope_top_n: int = 5
    analyze_timeout: float = 30.0

    # Intent Resolver
    candidate_limit: int = 3

    # Confidence Assessor tier thresholds
    direct_threshold: float = 0.8
    guided_threshold: float = 0.6
    conservative_threshold: float = 0.35

    # Validation Gate
    scope_multiplier: float = 3.0
    minimal_line_cap: int = 5
    max_deletion_ratio: float = 0.5

    def validate(self) -> list[str]:
        errors = []
        if self.max_attempts < 1:
            errors.append("max_attempts must be at least 1")
        if not 0 < self.fallback_discount <= 1:
            errors.append("fallback_discount must be in (0, 1]")
        if not 0 < self.min_length_ratio <= 1:
            errors.append("min_length_ratio must be in (0, 1]")
        if not (
            self.direct_threshold >= self.guided_threshold >= self.conservative_threshold >= 0
        ):
            errors.append("thresholds must be ordered direct >= guided >= conservative >= 0")
        return errors

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _coerce(name: str, raw: Any, default: Any) -> Any:
    try:
        if isinstance(default, bool):
            if isinstance(raw, str):
                return raw.strip().lower() in ("1", "true", "yes", "on")
            return bool(raw)
        return type(default)(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from e


def _load_settings_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: top level is not an object", path)
        return {}
    return data


def resolve_setting(
    name: str,
    default: Any,
    overrides: dict[str, Any],
    file_values: dict[str, Any],
) -> Any:
    """Resolve one setting through the documented precedence chain."""
    if overrides.get(name) is not None:
        return _coerce(name, overrides[name], default)
    env_value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
    if env_value is not None and env_value != "":
        return _coerce(name, env_value, default)
    if name in file_values:
        return _coerce(name, file_values[name], default)
    return default


def load_engine_settings(settings_file: Path | None = None, **overrides) -> EngineSettings:
    """Build EngineSettings from overrides, environment, file and defaults."""
    unknown = set(overrides) - {f.name for f in fields(EngineSettings)}
    if unknown:
        raise ConfigError(f"Unknown engine settings: {sorted(unknown)}")

    path = settings_file or tweaq_home() / SETTINGS_FILENAME
    file_values = _load_settings_file(path)
    defaults = EngineSettings()

    values = {
        f.name: resolve_setting(f.name, getattr(defaults, f.name), overrides, file_values)
        for f in fields(EngineSettings)
    }
    settings = EngineSettings(**values)
    errors = settings.validate()
    if errors:
        raise ConfigError("; ".join(errors))
    return settings


def save_engine_settings(settings: EngineSettings, settings_file: Path | None = None) -> Path:
    """Persist settings to <tweaq home>/engine.json."""
    errors = settings.validate()
    if errors:
        raise ConfigError("; ".join(errors))
    path = settings_file or tweaq_home() / SETTINGS_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
    return path
