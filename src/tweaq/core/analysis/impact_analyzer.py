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
Tweaq Change Engine -- Impact Analyzer

Given a ChangeIntent and its target component, works out:

    DIRECT CHANGES      -- the edits themselves, expressed in the component's
                           styling idiom (utility token, camelCase key, ...)
    CASCADE CHANGES     -- advisory follow-ons: parent containers, design tokens
    PRESERVATION RULES  -- structural cues the rewrite must keep intact
    VALIDATION CHECKS   -- what the gate should look at
    EXPECTED SCOPE      -- how many lines / files a faithful edit touches

Analysis is deterministic: the same intent and component always produce
the same ImpactAnalysis.
"""

import logging

from tweaq.core.analysis.structure import preservation_rules_for
from tweaq.core.analysis.styling import IdiomTable, UtilityClassIdiom, default_idiom_table, idiom_for
from tweaq.core.models import (
    CascadeChange,
    ChangeIntent,
    ChangeMagnitude,
    ChangeScope,
    ComponentComplexity,
    DeltaCategory,
    DirectChange,
    ImpactAnalysis,
    RiskLevel,
    TargetComponent,
    ValidationCheck,
)
from tweaq.core.repository import SymbolicRepoModel

logger = logging.getLogger("tweaq.analysis.impact_analyzer")

SIMPLE_PROPERTIES = {
    "color", "background-color", "font-size", "font-weight", "font-style", "text-decoration",
    "margin", "margin-top", "margin-bottom", "margin-left", "margin-right",
    "padding", "padding-top", "padding-bottom", "padding-left", "padding-right",
}

LAYOUT_PROPERTIES = {
    "display", "flex-direction", "align-items", "justify-content", "text-align",
    "gap", "position", "width", "height", "grid-template-columns",
}

DESIGN_TOKEN_PROPERTIES = {
    "color", "background-color", "font-size", "gap",
    "margin", "margin-top", "margin-bottom", "margin-left", "margin-right",
    "padding", "padding-top", "padding-bottom", "padding-left", "padding-right",
}

INSTRUCTION_CHANGE_CONFIDENCE = 0.5

LINES_PER_DIRECT_CHANGE = 2
LINES_PER_REQUIRED_CASCADE = 3


def property_confidence(prop: str) -> float:
    if prop in SIMPLE_PROPERTIES:
        return 0.9
    if prop in LAYOUT_PROPERTIES:
        return 0.7
    return 0.5


def magnitude_for(expected_lines: int) -> ChangeMagnitude:
    if expected_lines <= 3:
        return ChangeMagnitude.MINIMAL
    if expected_lines <= 10:
        return ChangeMagnitude.MODERATE
    if expected_lines <= 25:
        return ChangeMagnitude.SIGNIFICANT
    return ChangeMagnitude.MAJOR


_MAGNITUDE_RISK = {
    ChangeMagnitude.MINIMAL: RiskLevel.LOW,
    ChangeMagnitude.MODERATE: RiskLevel.MEDIUM,
    ChangeMagnitude.SIGNIFICANT: RiskLevel.HIGH,
    ChangeMagnitude.MAJOR: RiskLevel.HIGH,
}


class ImpactAnalyzer:
    """Estimates what a change touches and what it must leave alone."""

    def __init__(self, idioms: IdiomTable | None = None):
        self.idioms = idioms if idioms is not None else default_idiom_table()

    def analyze(
        self,
        intent: ChangeIntent,
        component: TargetComponent | None,
        repo: SymbolicRepoModel,
        content: str | None = None,
    ) -> ImpactAnalysis:
        if content is None:
            content = component.content if component and component.content else ""

        direct = self._direct_changes(intent, component, repo)
        cascade = self._cascade_changes(intent, component, repo)
        analysis = ImpactAnalysis(
            direct_changes=direct,
            cascade_changes=cascade,
            preservation_rules=preservation_rules_for(content, has_props=bool(component and component.props)),
            validation_checks=self._validation_checks(component),
            expected_scope=self._expected_scope(direct, cascade),
        )
        logger.debug(
            "Impact for %s: %d direct, %d cascade, %d rules, %d expected lines",
            component.file_path if component else "<unresolved>",
            len(direct),
            len(cascade),
            len(analysis.preservation_rules),
            analysis.expected_scope.expected_lines,
        )
        return analysis

    # =========================================================================
    # DIRECT CHANGES
    # =========================================================================

    def _direct_changes(
        self, intent: ChangeIntent, component: TargetComponent | None, repo: SymbolicRepoModel
    ) -> list[DirectChange]:
        if not intent.requested_changes:
            return [
                DirectChange(
                    type=intent.change_type.value,
                    target=component.name if component else "repository",
                    old_value="",
                    new_value=intent.description,
                    confidence=INSTRUCTION_CHANGE_CONFIDENCE,
                )
            ]

        idiom = idiom_for(self.idioms, component.styling.approach if component else None)
        utility = isinstance(idiom, UtilityClassIdiom)
        changes = []
        for delta in intent.requested_changes:
            mapping = idiom.map_property(delta.property, delta.after, repo.utility_theme)
            old_value = delta.before
            if utility and delta.before:
                old_value = idiom.map_property(delta.property, delta.before, repo.utility_theme).target

            confidence = property_confidence(delta.property)
            if utility:
                confidence += 0.05 if mapping.exact else -0.1

            change_kind = "style" if delta.category in (DeltaCategory.STYLING, DeltaCategory.LAYOUT) else delta.category.value
            changes.append(
                DirectChange(
                    type=change_kind,
                    target=mapping.target,
                    old_value=old_value,
                    new_value=mapping.value,
                    confidence=round(confidence, 3),
                )
            )
        return changes

    # =========================================================================
    # CASCADE CHANGES
    # =========================================================================

    def _cascade_changes(
        self, intent: ChangeIntent, component: TargetComponent | None, repo: SymbolicRepoModel
    ) -> list[CascadeChange]:
        cascade = []
        if component is not None:
            dependents = repo.dependents_of(component)
            if dependents:
                cascade.append(
                    CascadeChange(
                        type="parent-container",
                        target=", ".join(sorted(d.name for d in dependents)),
                        reason="Parent container may need adjustment",
                        required=False,
                        confidence=0.3,
                    )
                )

        if repo.has_design_tokens:
            seen = set()
            for delta in intent.requested_changes:
                if delta.property in DESIGN_TOKEN_PROPERTIES and delta.property not in seen:
                    seen.add(delta.property)
                    cascade.append(
                        CascadeChange(
                            type="design-system",
                            target=f"design tokens ({delta.property})",
                            reason="Keep design-token usage consistent",
                            required=True,
                            confidence=0.8,
                        )
                    )
        return cascade

    # =========================================================================
    # CHECKS & SCOPE
    # =========================================================================

    @staticmethod
    def _validation_checks(component: TargetComponent | None) -> list[ValidationCheck]:
        checks = [
            ValidationCheck("syntax", "Generated code keeps balanced brackets", required=True),
            ValidationCheck("scope", "Changed lines stay within the expected scope", required=True),
            ValidationCheck("preservation", "Critical structures are preserved", required=True),
            ValidationCheck("intent-alignment", "The requested change is visible in the code", required=True),
        ]
        if component is not None and component.complexity != ComponentComplexity.SIMPLE:
            checks.append(ValidationCheck("build", "Component still builds", required=False))
        return checks

    @staticmethod
    def _expected_scope(direct: list[DirectChange], cascade: list[CascadeChange]) -> ChangeScope:
        required = [c for c in cascade if c.required]
        expected_lines = len(direct) * LINES_PER_DIRECT_CHANGE + len(required) * LINES_PER_REQUIRED_CASCADE
        magnitude = magnitude_for(expected_lines)
        return ChangeScope(
            expected_lines=expected_lines,
            expected_files=1 + len(required),
            change_type=magnitude,
            risk_level=_MAGNITUDE_RISK[magnitude],
        )
