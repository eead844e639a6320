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
Tweaq Change Engine -- Instruction Parser

Keyword analysis of natural-language change requests. Produces the raw
signals the Intent Resolver turns into a ChangeIntent:

    1. CHANGE TYPE   -- content / layout / styling / structure / behavior / general
    2. SCOPE HINT    -- narrow / moderate / broad from qualifier words
    3. UI REGIONS    -- header, footer, hero, nav ... mentioned in the text
    4. SPECIFICITY   -- explicit values (px, %, hex, named colors, alignment)
    5. VAGUENESS     -- "better", "nicer", "improve" ...
    6. DELTAS        -- property/value pairs the instruction spells out

No AST, no embeddings: the instruction is short and the patterns are enough.
"""

import logging
import re
from dataclasses import dataclass, field

from tweaq.core.models import ChangeType, DeltaCategory, Priority, PropertyDelta, RiskLevel, ScopeHint

logger = logging.getLogger("tweaq.understanding.instruction_parser")

# =============================================================================
# KEYWORD PATTERNS
# =============================================================================

_CONTENT_PATTERNS = [
    r"\b(copy|wording|message|label|title|heading|headline|tagline|caption|tone)\b",
    r"\b(friendly|friendlier|professional|casual|formal|welcoming|concise)\b",
    r"\b(reword|rephrase|rewrite|says?|text\s+content)\b",
]

_LAYOUT_PATTERNS = [
    r"\b(condense|compact|spacing|spread|arrange|layout|stack|align(ed)?|position|move|reorder)\b",
    r"\b(grid|columns?|rows?|center(ed)?|side\s+by\s+side|gap|padding|margin)\b",
]

_STYLING_PATTERNS = [
    r"\b(colou?r|style|look|appearance|visual|theme|font|size|bold|italic|underline)\b",
    r"\b(larger|smaller|bigger|darker|lighter|background|border|shadow|rounded)\b",
]

_STRUCTURE_PATTERNS = [
    r"\b(add|remove|delete|insert|create|component|element|section|restructure)\b",
]

_BEHAVIOR_PATTERNS = [
    r"\b(click|hover|interact|action|behavio(u)?r|function|link|submit|toggle|open|close)\b",
]

# Ordered: earlier types win ties
_TYPE_PATTERNS = [
    (ChangeType.CONTENT, _CONTENT_PATTERNS),
    (ChangeType.LAYOUT, _LAYOUT_PATTERNS),
    (ChangeType.STYLING, _STYLING_PATTERNS),
    (ChangeType.STRUCTURE, _STRUCTURE_PATTERNS),
    (ChangeType.BEHAVIOR, _BEHAVIOR_PATTERNS),
]

UI_REGION_KEYWORDS = [
    "header", "footer", "sidebar", "navigation", "navbar", "nav", "menu",
    "button", "card", "modal", "form", "input", "table", "hero", "banner",
    "gallery", "carousel",
]

_BROAD_PATTERNS = [r"\b(all|every|entire|whole|everywhere|site-?wide|throughout|global(ly)?)\b"]
_MODERATE_PATTERNS = [r"\b(section|page|area|panel|these|those)\b", r"\b\w+s\s+(on|in)\s+the\b"]

_VAGUE_WORDS = [
    "better", "nicer", "improve", "enhance", "fix", "update",
    "something", "somehow", "maybe", "sort of", "kind of",
]

NAMED_COLORS = [
    "red", "blue", "green", "yellow", "orange", "purple", "pink",
    "gray", "grey", "black", "white", "teal", "indigo",
]

_COLOR_VALUE = r"(#[0-9a-fA-F]{3,8}\b|rgba?\([^)]*\)|\b(?:" + "|".join(NAMED_COLORS) + r")\b)"
_SIZE_VALUE = r"(\d+(?:\.\d+)?(?:px|rem|em|pt|%))"

_SPECIFIC_PATTERNS = [
    r"\d+(?:\.\d+)?(?:px|rem|em|pt)\b",
    r"\d+%",
    r"#[0-9a-fA-F]{3,8}\b",
    r"\b(bold|italic|underline)\b",
    r"\b(" + "|".join(NAMED_COLORS) + r")\b",
    r"\b(center(ed)?|left|right)\b",
]

_URGENT_PATTERNS = [r"\b(urgent|asap|immediately|broken|critical)\b"]


# =============================================================================
# RESULT
# =============================================================================


@dataclass
class InstructionAnalysis:
    """Raw keyword signals for one instruction."""

    change_type: ChangeType
    scope_hint: ScopeHint
    regions: list[str] = field(default_factory=list)
    specific: bool = False
    vague: bool = False
    deltas: list[PropertyDelta] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    type_scores: dict[str, int] = field(default_factory=dict)


# =============================================================================
# PARSER
# =============================================================================


def _count_matches(text: str, patterns: list[str]) -> int:
    return sum(len(re.findall(p, text)) for p in patterns)


def _matches(text: str, patterns: list[str]) -> bool:
    return any(re.search(p, text) for p in patterns)


_STOPWORDS = {
    "the", "and", "for", "with", "make", "change", "this", "that", "into",
    "more", "less", "bit", "little", "please", "should", "look", "from",
    "all", "every", "its", "our", "your", "them", "they", "have",
}


def extract_keywords(instruction: str) -> list[str]:
    """Content words of three or more letters, in order, without duplicates."""
    seen = []
    for word in re.findall(r"[a-zA-Z][a-zA-Z-]{2,}", instruction.lower()):
        if word not in _STOPWORDS and word not in seen:
            seen.append(word)
    return seen


def extract_deltas(instruction: str) -> list[PropertyDelta]:
    """Property/value pairs the instruction states outright."""
    text = instruction.lower()
    deltas: list[PropertyDelta] = []

    def add(prop: str, value: str, category: DeltaCategory = DeltaCategory.STYLING):
        if not any(d.property == prop for d in deltas):
            deltas.append(PropertyDelta(property=prop, before="", after=value, category=category))

    m = re.search(r"(?:font[- ]?size|text\s+size)\s*(?:to|of|=|:|at)?\s*" + _SIZE_VALUE, text)
    if m:
        add("font-size", m.group(1))

    m = re.search(r"background(?:[- ]colou?r)?\s*(?:to|of|=|:)?\s*" + _COLOR_VALUE, text)
    if m:
        add("background-color", m.group(1))

    m = re.search(r"(?:text\s+)?colou?r\s*(?:to|of|=|:)?\s*" + _COLOR_VALUE, text)
    if m and "background" not in text[max(0, m.start() - 12):m.start()]:
        add("color", m.group(1))
    elif "background" not in text:
        m = re.search(r"\b(?:make|turn|change|set)\b.*?" + _COLOR_VALUE, text)
        if m:
            add("color", m.group(1))

    for prop in ("padding", "margin"):
        m = re.search(prop + r"\s*(?:to|of|=|:)?\s*" + _SIZE_VALUE, text)
        if m:
            add(prop, m.group(1), DeltaCategory.LAYOUT)

    m = re.search(r"\b(?:align(?:ed)?\s+(?:to\s+the\s+)?(center|left|right)|(center)(?:ed)?\b)", text)
    if m:
        add("text-align", m.group(1) or m.group(2), DeltaCategory.LAYOUT)

    if re.search(r"\bbold\b", text):
        add("font-weight", "bold")
    if re.search(r"\bitalic\b", text):
        add("font-style", "italic")
    if re.search(r"\bunderline(d)?\b", text):
        add("text-decoration", "underline")

    return deltas


def classify_change_type(instruction: str, deltas: list[PropertyDelta] | None = None) -> tuple[ChangeType, dict[str, int]]:
    """Score every change type; the highest wins, ties go to the earlier type."""
    text = instruction.lower()
    scores = {ct.value: _count_matches(text, patterns) for ct, patterns in _TYPE_PATTERNS}
    for delta in deltas or []:
        key = ChangeType.LAYOUT.value if delta.category == DeltaCategory.LAYOUT else ChangeType.STYLING.value
        scores[key] += 2

    best_type, best_score = ChangeType.GENERAL, 0
    for ct, _ in _TYPE_PATTERNS:
        if scores[ct.value] > best_score:
            best_type, best_score = ct, scores[ct.value]
    return best_type, scores


def infer_scope(instruction: str) -> ScopeHint:
    text = instruction.lower()
    if _matches(text, _BROAD_PATTERNS):
        return ScopeHint.BROAD
    if _matches(text, _MODERATE_PATTERNS):
        return ScopeHint.MODERATE
    return ScopeHint.NARROW


def find_regions(instruction: str) -> list[str]:
    text = instruction.lower()
    return [kw for kw in UI_REGION_KEYWORDS if re.search(rf"\b{kw}s?\b", text)]


def is_specific(instruction: str) -> bool:
    return _matches(instruction.lower(), _SPECIFIC_PATTERNS)


def is_vague(instruction: str) -> bool:
    text = instruction.lower()
    return any(re.search(rf"\b{re.escape(word)}\b", text) for word in _VAGUE_WORDS)


def analyze_instruction(instruction: str) -> InstructionAnalysis:
    """Run every keyword pass over one instruction."""
    deltas = extract_deltas(instruction)
    change_type, scores = classify_change_type(instruction, deltas)
    analysis = InstructionAnalysis(
        change_type=change_type,
        scope_hint=infer_scope(instruction),
        regions=find_regions(instruction),
        specific=is_specific(instruction),
        vague=is_vague(instruction),
        deltas=deltas,
        keywords=extract_keywords(instruction),
        type_scores=scores,
    )
    logger.debug(
        "Instruction classified as %s (scope=%s, deltas=%d)",
        change_type.value,
        analysis.scope_hint.value,
        len(deltas),
    )
    return analysis


# =============================================================================
# RISK & PRIORITY
# =============================================================================

_ESCALATE = {
    RiskLevel.LOW: RiskLevel.MEDIUM,
    RiskLevel.MEDIUM: RiskLevel.HIGH,
    RiskLevel.HIGH: RiskLevel.CRITICAL,
    RiskLevel.CRITICAL: RiskLevel.CRITICAL,
}


def assess_risk(change_type: ChangeType, complexity: str, scope_hint: ScopeHint) -> RiskLevel:
    """Risk grows with how invasive the change type is and how complex the target."""
    if change_type in (ChangeType.CONTENT, ChangeType.STYLING):
        risk = RiskLevel.MEDIUM if complexity == "complex" else RiskLevel.LOW
    elif change_type == ChangeType.LAYOUT:
        risk = RiskLevel.HIGH if complexity == "complex" else RiskLevel.MEDIUM
    elif change_type == ChangeType.STRUCTURE:
        risk = RiskLevel.MEDIUM if complexity == "simple" else RiskLevel.HIGH
    elif change_type == ChangeType.BEHAVIOR:
        risk = RiskLevel.HIGH if complexity == "simple" else RiskLevel.CRITICAL
    else:
        risk = RiskLevel.MEDIUM
    if scope_hint == ScopeHint.BROAD:
        risk = _ESCALATE[risk]
    return risk


def determine_priority(change_type: ChangeType, scope_hint: ScopeHint, instruction: str = "") -> Priority:
    if instruction and _matches(instruction.lower(), _URGENT_PATTERNS):
        return Priority.HIGH
    if change_type == ChangeType.CONTENT:
        return Priority.HIGH
    if change_type == ChangeType.STRUCTURE and scope_hint != ScopeHint.NARROW:
        return Priority.HIGH
    return Priority.MEDIUM
