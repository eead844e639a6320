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
Tweaq Change Engine -- Styling Idioms

Each styling approach a component can use gets one StylingIdiom. The idiom
knows two things:

    map_property()  -- how a CSS property/value pair is written in this idiom
                       (utility token, camelCase key, plain declaration)
    evidence()      -- which strings in generated code prove the change landed

Idioms are registered in a capability-tagged table keyed by StylingApproach.
The table is passed into the Impact Analyzer and the Validation Gate, never
looked up globally, so callers can extend or replace it.
"""

import re
from dataclasses import dataclass

from tweaq.core.models import StylingApproach

# =============================================================================
# UTILITY THEME DEFAULTS
# =============================================================================

DEFAULT_UTILITY_THEME: dict[str, dict[str, str]] = {
    "font-size": {
        "12px": "text-xs",
        "14px": "text-sm",
        "16px": "text-base",
        "18px": "text-lg",
        "20px": "text-xl",
        "24px": "text-2xl",
        "30px": "text-3xl",
        "36px": "text-4xl",
    },
    "color": {
        "black": "text-black",
        "white": "text-white",
        "red": "text-red-500",
        "blue": "text-blue-500",
        "green": "text-green-500",
        "gray": "text-gray-500",
        "grey": "text-gray-500",
    },
    "background-color": {
        "black": "bg-black",
        "white": "bg-white",
        "red": "bg-red-500",
        "blue": "bg-blue-500",
        "green": "bg-green-500",
        "gray": "bg-gray-500",
        "grey": "bg-gray-500",
    },
    "text-align": {"left": "text-left", "center": "text-center", "right": "text-right"},
    "font-weight": {
        "normal": "font-normal",
        "400": "font-normal",
        "500": "font-medium",
        "600": "font-semibold",
        "bold": "font-bold",
        "700": "font-bold",
    },
    "font-style": {"italic": "italic", "normal": "not-italic"},
    "text-decoration": {"underline": "underline", "none": "no-underline"},
    "display": {"flex": "flex", "block": "block", "grid": "grid", "none": "hidden", "inline": "inline"},
}

SPACING_SCALE = {
    "0px": "0",
    "0": "0",
    "4px": "1",
    "8px": "2",
    "12px": "3",
    "16px": "4",
    "20px": "5",
    "24px": "6",
    "32px": "8",
    "40px": "10",
    "48px": "12",
}

UTILITY_PREFIXES = {
    "font-size": "text",
    "color": "text",
    "background-color": "bg",
    "padding": "p",
    "padding-top": "pt",
    "padding-bottom": "pb",
    "padding-left": "pl",
    "padding-right": "pr",
    "margin": "m",
    "margin-top": "mt",
    "margin-bottom": "mb",
    "margin-left": "ml",
    "margin-right": "mr",
    "gap": "gap",
    "width": "w",
    "height": "h",
    "border-radius": "rounded",
    "line-height": "leading",
    "letter-spacing": "tracking",
}

# Properties whose utility prefix alone counts as evidence of the change
PREFIX_PROXY_PROPERTIES = {"font-size", "color", "background-color"}


def to_camel_case(prop: str) -> str:
    return re.sub(r"-([a-z])", lambda m: m.group(1).upper(), prop)


@dataclass(frozen=True)
class StyleMapping:
    """How one property change is written in a given idiom."""

    target: str
    value: str
    exact: bool = True


# =============================================================================
# IDIOMS
# =============================================================================


class StylingIdiom:
    """Base idiom: plain CSS declarations (``prop: value``)."""

    name = "plain-stylesheet"
    capabilities: frozenset[str] = frozenset({"declarations"})

    def map_property(self, prop: str, value: str, theme: dict[str, dict[str, str]] | None = None) -> StyleMapping:
        return StyleMapping(target=prop, value=value)

    def evidence(self, prop: str, value: str, mapping: StyleMapping | None = None) -> list[tuple[str, ...]]:
        """Alternatives; each is a tuple of substrings that must all be present."""
        alternatives = [(prop, value)] if value else [(prop,)]
        camel = to_camel_case(prop)
        if camel != prop:
            alternatives.append((camel, value) if value else (camel,))
        return alternatives


class PlainStylesheetIdiom(StylingIdiom):
    name = "plain-stylesheet"
    capabilities = frozenset({"declarations", "cascading"})


class ModuleStyleIdiom(StylingIdiom):
    """CSS modules: kebab-case declarations in a component-local stylesheet."""

    name = "component-module"
    capabilities = frozenset({"declarations", "component-local"})


class ScopedStyleIdiom(StylingIdiom):
    """CSS-in-JS: style objects keyed by camelCase property names."""

    name = "scoped-styles"
    capabilities = frozenset({"declarations", "component-local", "camel-case-keys"})

    def map_property(self, prop: str, value: str, theme: dict[str, dict[str, str]] | None = None) -> StyleMapping:
        return StyleMapping(target=to_camel_case(prop), value=value)


class UtilityClassIdiom(StylingIdiom):
    """Utility-first classes (``text-base``, ``p-4``, ``bg-[#123456]``)."""

    name = "utility-classes"
    capabilities = frozenset({"utility-classes", "theme-tokens"})

    def map_property(self, prop: str, value: str, theme: dict[str, dict[str, str]] | None = None) -> StyleMapping:
        merged = dict(DEFAULT_UTILITY_THEME)
        for key, tokens in (theme or {}).items():
            merged[key] = {**merged.get(key, {}), **tokens}

        normalized = value.strip().lower()
        tokens = merged.get(prop, {})
        if normalized in tokens:
            return StyleMapping(target=tokens[normalized], value=value, exact=True)

        prefix = UTILITY_PREFIXES.get(prop, prop)
        if prop in UTILITY_PREFIXES and normalized in SPACING_SCALE and prefix not in ("text", "bg"):
            return StyleMapping(target=f"{prefix}-{SPACING_SCALE[normalized]}", value=value, exact=True)

        arbitrary = normalized.replace(" ", "_")
        return StyleMapping(target=f"{prefix}-[{arbitrary}]", value=value, exact=False)

    def evidence(self, prop: str, value: str, mapping: StyleMapping | None = None) -> list[tuple[str, ...]]:
        alternatives = super().evidence(prop, value, mapping)
        token = mapping.target if mapping else self.map_property(prop, value).target
        alternatives.insert(0, (token,))
        if prop in PREFIX_PROXY_PROPERTIES:
            alternatives.append((f"{UTILITY_PREFIXES[prop]}-",))
        return alternatives


# =============================================================================
# IDIOM TABLE
# =============================================================================

IdiomTable = dict[StylingApproach, StylingIdiom]


def default_idiom_table() -> IdiomTable:
    """A fresh approach -> idiom table with the built-in idioms."""
    return {
        StylingApproach.TAILWIND: UtilityClassIdiom(),
        StylingApproach.CSS_MODULES: ModuleStyleIdiom(),
        StylingApproach.STYLED_COMPONENTS: ScopedStyleIdiom(),
        StylingApproach.CSS: PlainStylesheetIdiom(),
        StylingApproach.SCSS: PlainStylesheetIdiom(),
    }


def idiom_for(table: IdiomTable, approach: StylingApproach | None) -> StylingIdiom:
    """Look up an idiom, falling back to plain declarations."""
    if approach is not None and approach in table:
        return table[approach]
    return PlainStylesheetIdiom()


def approaches_with(table: IdiomTable, capability: str) -> list[StylingApproach]:
    return [approach for approach, idiom in table.items() if capability in idiom.capabilities]
