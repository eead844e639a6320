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
Tweaq Change Engine -- Intent Resolver

Maps a ChangeRequest to a ChangeIntent bound (or not) to a TargetComponent.

VISUAL EDITS:
    1. Exact selector lookup in the repository's selector -> file table
       (best mapping by confidence)
    2. Otherwise score every component by tag name and shared class names
       and keep the top-N as candidates; the best becomes the target
    3. Confidence blends selector-match quality with component complexity

NATURAL-LANGUAGE EDITS:
    1. Keyword analysis (see instruction_parser)
    2. Target from the element hint, else a UI-region keyword matched
       against component names, else left unset (broad scope)
    3. Confidence: base 0.7, +0.15 target, +0.1 specific values,
       -0.2 vague wording, +0.1 extra context, clamped to [0.3, 0.9]

Resolution never raises: an unresolved target is a low-confidence intent.
"""

import logging
import re

from tweaq.core.logging import get_logger
from tweaq.core.models import (
    ChangeIntent,
    ChangeRequest,
    ChangeType,
    ComponentComplexity,
    DeltaCategory,
    ElementDescriptor,
    NaturalLanguageEdit,
    ScopeHint,
    TargetComponent,
    VisualEdit,
)
from tweaq.core.repository import SymbolicRepoModel
from tweaq.core.understanding.instruction_parser import (
    analyze_instruction,
    assess_risk,
    determine_priority,
)

logger = logging.getLogger("tweaq.understanding.intent_resolver")

UNRESOLVED_VISUAL_CONFIDENCE = 0.2
FALLBACK_MATCH_CEILING = 0.6

_COMPLEXITY_FACTOR = {
    ComponentComplexity.SIMPLE: 1.0,
    ComponentComplexity.MODERATE: 0.7,
    ComponentComplexity.COMPLEX: 0.4,
}

# Multi-delta edits take the most invasive category present
_CATEGORY_PRECEDENCE = [
    (DeltaCategory.STRUCTURE, ChangeType.STRUCTURE),
    (DeltaCategory.LAYOUT, ChangeType.LAYOUT),
    (DeltaCategory.STYLING, ChangeType.STYLING),
]

_CATEGORY_TO_TYPE = {
    DeltaCategory.STYLING: ChangeType.STYLING,
    DeltaCategory.LAYOUT: ChangeType.LAYOUT,
    DeltaCategory.STRUCTURE: ChangeType.STRUCTURE,
    DeltaCategory.CONTENT: ChangeType.CONTENT,
}


def _clamp(value: float, low: float, high: float) -> float:
    return round(max(low, min(high, value)), 3)


class IntentResolver:
    """Turns raw change requests into ChangeIntents."""

    NL_BASE_CONFIDENCE = 0.7
    NL_MIN_CONFIDENCE = 0.3
    NL_MAX_CONFIDENCE = 0.9

    def __init__(self, candidate_limit: int = 3):
        self.candidate_limit = candidate_limit

    def resolve(self, request: ChangeRequest, repo: SymbolicRepoModel) -> ChangeIntent:
        if isinstance(request, VisualEdit):
            intent = self._resolve_visual(request, repo)
        else:
            intent = self._resolve_language(request, repo)

        target = intent.target_component
        get_logger().resolution(
            request.id,
            component=target.name if target else "",
            confidence=intent.confidence,
            change_type=intent.change_type.value,
            candidates=len(intent.candidates),
        )
        return intent

    # =========================================================================
    # TARGET LOOKUP
    # =========================================================================

    def _lookup_selector(
        self, element: ElementDescriptor, repo: SymbolicRepoModel
    ) -> tuple[TargetComponent | None, float]:
        if not element.selector:
            return None, 0.0
        mapping = repo.lookup_selector(element.selector)
        if mapping is None:
            return None, 0.0
        component = repo.component_by_path(mapping.file_path)
        if component is None and mapping.component_name:
            component = repo.component_by_name(mapping.component_name)
        if component is None:
            logger.debug("Selector %s maps to unindexed file %s", element.selector, mapping.file_path)
            return None, 0.0
        return component, mapping.confidence

    def rank_candidates(
        self, element: ElementDescriptor, repo: SymbolicRepoModel
    ) -> list[tuple[int, TargetComponent]]:
        """Score components by shared class names (2 each) and tag usage (1)."""
        wanted = set(element.classes)
        tag = element.tag_name.lower()
        scored = []
        for component in repo.components:
            score = 2 * len(wanted & set(component.styling.classes))
            if tag and component.content and re.search(rf"<{re.escape(tag)}[\s>/]", component.content):
                score += 1
            if score > 0:
                scored.append((score, component))
        scored.sort(key=lambda pair: (-pair[0], pair[1].name))
        return scored[: self.candidate_limit]

    # =========================================================================
    # VISUAL EDITS
    # =========================================================================

    def _resolve_visual(self, edit: VisualEdit, repo: SymbolicRepoModel) -> ChangeIntent:
        target, quality = self._lookup_selector(edit.element, repo)
        candidates = [target] if target else []

        if target is None:
            ranked = self.rank_candidates(edit.element, repo)
            candidates = [component for _, component in ranked]
            if ranked:
                best_score, target = ranked[0]
                quality = min(FALLBACK_MATCH_CEILING, 0.2 + 0.1 * best_score)

        change_type = self.categorize(edit)
        complexity = target.complexity.value if target else "moderate"
        return ChangeIntent(
            change_type=change_type,
            description=self.describe(edit),
            request=edit,
            target_component=target,
            confidence=self._visual_confidence(edit, target, quality),
            risk_level=assess_risk(change_type, complexity, ScopeHint.NARROW),
            priority=determine_priority(change_type, ScopeHint.NARROW),
            scope_hint=ScopeHint.NARROW,
            requested_changes=list(edit.changes),
            candidates=candidates,
        )

    @staticmethod
    def categorize(edit: VisualEdit) -> ChangeType:
        if not edit.changes:
            return ChangeType.GENERAL
        if len(edit.changes) == 1:
            return _CATEGORY_TO_TYPE[edit.changes[0].category]
        categories = {c.category for c in edit.changes}
        for category, change_type in _CATEGORY_PRECEDENCE:
            if category in categories:
                return change_type
        return ChangeType.GENERAL

    @staticmethod
    def describe(edit: VisualEdit) -> str:
        if edit.description:
            return edit.description
        tag = edit.element.tag_name or "element"
        parts = ", ".join(f"{c.property}: {c.before} → {c.after}" for c in edit.changes)
        return f"Update {tag} ({parts})" if parts else f"Update {tag}"

    def _visual_confidence(
        self, edit: VisualEdit, target: TargetComponent | None, quality: float
    ) -> float:
        if target is None:
            return UNRESOLVED_VISUAL_CONFIDENCE
        confidence = 0.6 * quality + 0.4 * _COMPLEXITY_FACTOR[target.complexity]
        if edit.description:
            confidence += 0.05
        if len(edit.changes) == 1 and edit.changes[0].category == DeltaCategory.STYLING:
            confidence += 0.05
        return _clamp(confidence, 0.1, 1.0)

    # =========================================================================
    # NATURAL-LANGUAGE EDITS
    # =========================================================================

    def _resolve_language(self, edit: NaturalLanguageEdit, repo: SymbolicRepoModel) -> ChangeIntent:
        analysis = analyze_instruction(edit.instruction)

        target: TargetComponent | None = None
        candidates: list[TargetComponent] = []
        if edit.target_hint is not None:
            target, _ = self._lookup_selector(edit.target_hint, repo)
            if target is None:
                ranked = self.rank_candidates(edit.target_hint, repo)
                candidates = [component for _, component in ranked]
                target = candidates[0] if candidates else None
            else:
                candidates = [target]

        if target is None and analysis.regions:
            candidates = self._match_regions(analysis.regions, repo)
            target = candidates[0] if candidates else None

        confidence = self.NL_BASE_CONFIDENCE
        if target is not None:
            confidence += 0.15
        if analysis.specific:
            confidence += 0.1
        if analysis.vague:
            confidence -= 0.2
        if edit.current_state or edit.user_intent:
            confidence += 0.1

        complexity = target.complexity.value if target else "moderate"
        return ChangeIntent(
            change_type=analysis.change_type,
            description=edit.instruction.strip(),
            request=edit,
            target_component=target,
            confidence=_clamp(confidence, self.NL_MIN_CONFIDENCE, self.NL_MAX_CONFIDENCE),
            risk_level=assess_risk(analysis.change_type, complexity, analysis.scope_hint),
            priority=determine_priority(analysis.change_type, analysis.scope_hint, edit.instruction),
            scope_hint=analysis.scope_hint,
            requested_changes=analysis.deltas,
            candidates=candidates,
        )

    def _match_regions(self, regions: list[str], repo: SymbolicRepoModel) -> list[TargetComponent]:
        matches = []
        for region in regions:
            for component in repo.components:
                haystack = f"{component.name} {component.file_path}".lower()
                if region in haystack and component not in matches:
                    matches.append(component)
        return matches[: self.candidate_limit]

    # =========================================================================
    # SUMMARY
    # =========================================================================

    @staticmethod
    def summarize(intent: ChangeIntent) -> str:
        """Human-readable digest of a resolved intent."""
        request = intent.request
        source = (
            f'Instruction: "{request.instruction}"'
            if isinstance(request, NaturalLanguageEdit)
            else f"Element: {request.element.selector or request.element.tag_name}"
        )
        target = intent.target_component.name if intent.target_component else "Unspecified"
        return "\n".join(
            [
                "Change Intent",
                "-------------",
                source,
                f"Type: {intent.change_type.value}",
                f"Confidence: {intent.confidence * 100:.1f}%",
                f"Risk: {intent.risk_level.value}",
                f"Priority: {intent.priority.value}",
                f"Scope: {intent.scope_hint.value}",
                f"Target: {target}",
            ]
        )
