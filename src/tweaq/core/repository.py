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
Tweaq Change Engine -- Symbolic Repository Model

The repository indexer hands the engine a symbolic model of the target web
application: its components, the selector -> file mappings captured from the
running DOM, design tokens and the utility-class theme. The engine treats the
model as read-only.

File contents are read lazily through a FileContentAccessor and cached per
execution by ContentLoader, so a batch of concurrent executions can share
one model without sharing mutable state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from tweaq.core.errors import TweaqError
from tweaq.core.models import TargetComponent

logger = logging.getLogger("tweaq.core.repository")


@dataclass(frozen=True)
class DomMapping:
    """One selector -> source location mapping captured by the indexer."""

    selector: str
    file_path: str
    component_name: str = ""
    line: int | None = None
    confidence: float = 1.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DomMapping:
        return cls(
            selector=data["selector"],
            file_path=data.get("file_path", data.get("filePath", "")),
            component_name=data.get("component_name", data.get("componentName", "")),
            line=data.get("line"),
            confidence=float(data.get("confidence", 1.0)),
        )


@dataclass
class SymbolicRepoModel:
    components: list[TargetComponent] = field(default_factory=list)
    dom_mappings: dict[str, list[DomMapping]] = field(default_factory=dict)
    design_tokens: dict[str, dict[str, str]] = field(default_factory=dict)
    utility_theme: dict[str, dict[str, str]] = field(default_factory=dict)
    framework: str = "react"

    # -- lookups --------------------------------------------------------------

    def lookup_selector(self, selector: str) -> DomMapping | None:
        """Best (highest-confidence) mapping for an exact selector, if any."""
        mappings = self.dom_mappings.get(selector) or []
        if not mappings:
            return None
        return max(mappings, key=lambda m: m.confidence)

    def component_by_path(self, file_path: str) -> TargetComponent | None:
        for component in self.components:
            if component.file_path == file_path:
                return component
        return None

    def component_by_name(self, name: str) -> TargetComponent | None:
        lowered = name.lower()
        for component in self.components:
            if component.name.lower() == lowered:
                return component
        return None

    def dependents_of(self, component: TargetComponent) -> list[TargetComponent]:
        """Components that import or depend on the given one."""
        stem = Path(component.file_path).stem
        dependents = []
        for other in self.components:
            if other.file_path == component.file_path:
                continue
            references = list(other.imports) + list(other.dependencies)
            if any(
                ref == component.name or ref == component.file_path or ref.endswith(f"/{stem}")
                for ref in references
            ):
                dependents.append(other)
        return dependents

    @property
    def has_design_tokens(self) -> bool:
        return any(bool(group) for group in self.design_tokens.values())

    # -- loading --------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SymbolicRepoModel:
        """Load the indexer's JSON output."""
        mappings: dict[str, list[DomMapping]] = {}
        raw_mappings = data.get("dom_mappings", data.get("domMappings", {}))
        for selector, entries in raw_mappings.items():
            if isinstance(entries, dict):
                entries = [entries]
            mappings[selector] = [
                DomMapping.from_dict({"selector": selector, **entry}) for entry in entries
            ]
        return cls(
            components=[TargetComponent.from_dict(c) for c in data.get("components", [])],
            dom_mappings=mappings,
            design_tokens=data.get("design_tokens", data.get("designTokens", {})),
            utility_theme=data.get("utility_theme", {}),
            framework=data.get("framework", "react"),
        )


# =============================================================================
# FILE ACCESS
# =============================================================================


class FileContentAccessor(Protocol):
    """Reads the current text of a repository file."""

    async def read(self, file_path: str) -> str: ...


class LocalFileAccessor:
    """Reads files from a local checkout."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _resolve(self, file_path: str) -> Path:
        path = (self.root / file_path).resolve()
        if not path.is_relative_to(self.root):
            raise TweaqError(f"Path escapes repository root: {file_path}")
        return path

    async def read(self, file_path: str) -> str:
        path = self._resolve(file_path)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: path.read_text(encoding="utf-8"))


class ContentLoader:
    """Per-execution cache of component contents."""

    def __init__(self, accessor: FileContentAccessor | None = None):
        self._accessor = accessor
        self._cache: dict[str, str] = {}

    async def load(self, component: TargetComponent) -> str:
        if component.file_path in self._cache:
            return self._cache[component.file_path]
        if component.content is not None:
            content = component.content
        elif self._accessor is not None:
            logger.debug("Reading %s", component.file_path)
            content = await self._accessor.read(component.file_path)
        else:
            raise TweaqError(
                f"No content for {component.file_path}: component carries none "
                "and no file accessor is configured"
            )
        self._cache[component.file_path] = content
        return content

    def cached(self, file_path: str) -> str | None:
        return self._cache.get(file_path)
