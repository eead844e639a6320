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
Tweaq Change Engine -- Structural Cues

Shallow, regex-level reads of a source file. No AST: these are heuristics
and are allowed to miss. They drive preservation rules, the complexity
metric, relevance scoring and the bracket sanity warning.
"""

import re

from tweaq.core.models import PreservationRule

# =============================================================================
# PRESERVATION PATTERNS
# =============================================================================

EXPORT_PATTERN = r"^\s*export\b"
IMPORT_PATTERN = r"^\s*import\s"
PROPS_PATTERN = r"\b(?:interface|type)\s+\w*Props\b"
FUNCTIONALITY_PATTERN = (
    r"\bfunction\s+\w+|\buse[A-Z]\w*\(|\bconst\s+\w+\s*=\s*(?:async\s*)?\([^)]*\)\s*=>"
)
STYLE_REFERENCE_PATTERN = r"\bclass(?:Name)?\s*="

_FLAGS = re.MULTILINE


def count_matches(pattern: str, content: str) -> int:
    return len(re.findall(pattern, content, _FLAGS))


def preservation_rules_for(content: str, has_props: bool = False) -> list[PreservationRule]:
    """Rules for every structural cue actually present in the file."""
    rules = []
    if count_matches(EXPORT_PATTERN, content):
        rules.append(
            PreservationRule(
                type="exports",
                description="Preserve all exports",
                pattern=EXPORT_PATTERN,
                critical=True,
            )
        )
    if count_matches(IMPORT_PATTERN, content):
        rules.append(
            PreservationRule(
                type="imports",
                description="Preserve all imports",
                pattern=IMPORT_PATTERN,
                critical=True,
            )
        )
    if has_props or count_matches(PROPS_PATTERN, content):
        rules.append(
            PreservationRule(
                type="props",
                description="Preserve the props interface",
                pattern=PROPS_PATTERN,
                critical=True,
            )
        )
    if count_matches(FUNCTIONALITY_PATTERN, content):
        rules.append(
            PreservationRule(
                type="functionality",
                description="Preserve existing functions and hooks",
                pattern=FUNCTIONALITY_PATTERN,
                critical=True,
            )
        )
    if count_matches(STYLE_REFERENCE_PATTERN, content):
        rules.append(
            PreservationRule(
                type="style-references",
                description="Keep class and style references in place",
                pattern=STYLE_REFERENCE_PATTERN,
                critical=False,
            )
        )
    return rules


# =============================================================================
# COMPLEXITY
# =============================================================================

_COMPLEXITY_PATTERNS = [
    r"\bfunction\b",
    r"=>",
    r"\b(if|else|for|while|switch|case)\b",
    r"<[A-Za-z][\w.]*[\s/>]",
    r"\buse[A-Z]\w*\(",
]


def complexity_score(content: str) -> int:
    """Count of functions, branches, elements and hook calls."""
    return sum(len(re.findall(p, content)) for p in _COMPLEXITY_PATTERNS)


# =============================================================================
# SANITY
# =============================================================================

_PAIRS = {")": "(", "]": "[", "}": "{"}


def brackets_balanced(content: str) -> bool:
    """Bracket balance outside string literals and comments."""
    stripped = re.sub(r"//[^\n]*|/\*.*?\*/", "", content, flags=re.DOTALL)
    stripped = re.sub(r"`(?:\\.|[^`\\])*`|'(?:\\.|[^'\\\n])*'|\"(?:\\.|[^\"\\\n])*\"", "", stripped)
    stack: list[str] = []
    for ch in stripped:
        if ch in "([{":
            stack.append(ch)
        elif ch in _PAIRS:
            if not stack or stack.pop() != _PAIRS[ch]:
                return False
    return not stack


# =============================================================================
# RELEVANCE CUES
# =============================================================================

_TEXT_NODE_PATTERN = r">\s*([^<>{}\n]*[A-Za-z][^<>{}\n]*)<"
_STYLING_MARKER_PATTERN = r"\bclass(?:Name)?\s*=|\bstyle\s*=|\bstyled\.|\bcss`|\.module\.s?css"


def text_density(content: str) -> float:
    """Visible text-node words per source line."""
    lines = content.splitlines() or [""]
    words = sum(len(m.split()) for m in re.findall(_TEXT_NODE_PATTERN, content))
    return words / len(lines)


def has_styling_markers(content: str) -> bool:
    return re.search(_STYLING_MARKER_PATTERN, content) is not None


def has_exports(content: str) -> bool:
    return count_matches(EXPORT_PATTERN, content) > 0
