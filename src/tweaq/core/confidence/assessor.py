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
Tweaq Change Engine -- Confidence Assessor

Scores how much the engine should trust itself with a change and picks the
execution tier from that score.

FACTORS (each in [0, 1], each a public method so it can be tested alone):
    visual_clarity           0.30  how well-specified the request is
    component_understanding  0.30  how well the target component is known
    change_complexity        0.25  how simple the edit is (higher = simpler)
    context_completeness     0.15  how rich the repository model is

TIERS (boundaries resolve to the higher tier):
    >= 0.80  high-confidence-direct
    >= 0.60  medium-confidence-guided
    >= 0.35  low-confidence-conservative
     < 0.35  human-review-required

An unresolved target never runs below the guided tier: the broad-scope path
only exists there and above.
"""

import logging

from tweaq.core.logging import get_logger
from tweaq.core.models import (
    APPROACH_ORDER,
    ChangeApproach,
    ChangeIntent,
    ChangeMagnitude,
    ChangeRequest,
    ComponentComplexity,
    ConfidenceAssessment,
    ConfidenceFactors,
    ImpactAnalysis,
    RiskLevel,
    StylingApproach,
    TargetComponent,
    VisualEdit,
)
from tweaq.core.repository import SymbolicRepoModel
from tweaq.core.understanding.instruction_parser import analyze_instruction

logger = logging.getLogger("tweaq.confidence.assessor")

FACTOR_WEIGHTS = {
    "visual_clarity": 0.30,
    "component_understanding": 0.30,
    "change_complexity": 0.25,
    "context_completeness": 0.15,
}

MIN_CONFIDENCE = 0.1

_MAGNITUDE_PENALTY = {
    ChangeMagnitude.MINIMAL: 0.0,
    ChangeMagnitude.MODERATE: 0.1,
    ChangeMagnitude.SIGNIFICANT: 0.3,
    ChangeMagnitude.MAJOR: 0.5,
}

_RISK_PENALTY = {
    RiskLevel.LOW: 0.0,
    RiskLevel.MEDIUM: 0.1,
    RiskLevel.HIGH: 0.2,
    RiskLevel.CRITICAL: 0.3,
}

_RAISE_RISK = {
    RiskLevel.LOW: RiskLevel.MEDIUM,
    RiskLevel.MEDIUM: RiskLevel.HIGH,
    RiskLevel.HIGH: RiskLevel.HIGH,
    RiskLevel.CRITICAL: RiskLevel.CRITICAL,
}

_LOWER_RISK = {
    RiskLevel.LOW: RiskLevel.LOW,
    RiskLevel.MEDIUM: RiskLevel.LOW,
    RiskLevel.HIGH: RiskLevel.MEDIUM,
    RiskLevel.CRITICAL: RiskLevel.CRITICAL,
}


def _bounded(value: float) -> float:
    return round(max(0.0, min(1.0, value)), 4)


class ConfidenceAssessor:
    """Four-factor confidence score and tier selection."""

    def __init__(
        self,
        direct_threshold: float = 0.8,
        guided_threshold: float = 0.6,
        conservative_threshold: float = 0.35,
    ):
        self.direct_threshold = direct_threshold
        self.guided_threshold = guided_threshold
        self.conservative_threshold = conservative_threshold

    def assess(
        self,
        request: ChangeRequest,
        intent: ChangeIntent,
        impact: ImpactAnalysis,
        repo: SymbolicRepoModel,
    ) -> ConfidenceAssessment:
        factors = ConfidenceFactors(
            visual_clarity=self.visual_clarity(request, intent),
            component_understanding=self.component_understanding(intent.target_component, impact, repo),
            change_complexity=self.change_complexity(impact),
            context_completeness=self.context_completeness(repo),
        )
        confidence = self.aggregate(factors)

        approach = self.select_approach(confidence)
        if not intent.is_resolved and APPROACH_ORDER.index(approach) > APPROACH_ORDER.index(ChangeApproach.GUIDED):
            logger.debug("Unresolved target: raising %s to guided tier", approach.value)
            approach = ChangeApproach.GUIDED

        assessment = ConfidenceAssessment(
            confidence=confidence,
            factors=factors,
            recommended_approach=approach,
            fallback_strategies=self.fallbacks_for(approach),
            risk_level=self.assess_risk(confidence, impact),
        )
        get_logger().strategy(
            approach.value,
            confidence=confidence,
            request_id=request.id,
            risk=assessment.risk_level.value,
        )
        return assessment

    # =========================================================================
    # FACTORS
    # =========================================================================

    def visual_clarity(self, request: ChangeRequest, intent: ChangeIntent) -> float:
        """Mean of how well-specified the request is and the Resolver's confidence."""
        return _bounded((self.request_clarity(request) + intent.confidence) / 2)

    @staticmethod
    def request_clarity(request: ChangeRequest) -> float:
        if isinstance(request, VisualEdit):
            clarity = 0.5
            if request.description:
                if len(request.description) > 20:
                    clarity += 0.2
                if any(word in request.description.lower() for word in ("font", "color", "size")):
                    clarity += 0.1
            if request.changes:
                clarity += 0.2
                if len(request.changes) == 1:
                    clarity += 0.1
                if all(c.before and c.after and c.before != c.after for c in request.changes):
                    clarity += 0.1
            selector = request.element.selector
            if selector:
                clarity += 0.1
                if "#" in selector or "." in selector:
                    clarity += 0.1
            return _bounded(clarity)

        analysis = analyze_instruction(request.instruction)
        clarity = 0.4
        if analysis.specific:
            clarity += 0.2
        if analysis.vague:
            clarity -= 0.2
        if len(request.instruction) > 20:
            clarity += 0.1
        if analysis.deltas:
            clarity += 0.1
        if request.target_hint is not None and request.target_hint.selector:
            clarity += 0.1
        return _bounded(clarity)

    @staticmethod
    def component_understanding(
        component: TargetComponent | None,
        impact: ImpactAnalysis,
        repo: SymbolicRepoModel,
    ) -> float:
        understanding = 0.3
        if component is not None:
            if component.complexity == ComponentComplexity.SIMPLE:
                understanding += 0.4
            elif component.complexity == ComponentComplexity.MODERATE:
                understanding += 0.2
            understanding += 0.2  # styling approach is known
            if component.styling.approach in (StylingApproach.TAILWIND, StylingApproach.CSS_MODULES):
                understanding += 0.1
            if component.props:
                understanding += 0.1
            if component.exports:
                understanding += 0.1
        if len(repo.components) > 50:
            understanding += 0.1
        understanding = min(understanding, 1.0)

        if component is not None and impact.direct_changes:
            certainty = sum(c.confidence for c in impact.direct_changes) / len(impact.direct_changes)
            understanding = (understanding + certainty) / 2
        return _bounded(understanding)

    @staticmethod
    def change_complexity(impact: ImpactAnalysis) -> float:
        """Simplicity of the change; starts at 0.8 and loses points for size and risk."""
        simplicity = 0.8
        if len(impact.direct_changes) > 3:
            simplicity -= 0.2
        elif len(impact.direct_changes) > 1:
            simplicity -= 0.1
        if impact.required_cascades:
            simplicity -= 0.3
        simplicity -= _MAGNITUDE_PENALTY[impact.expected_scope.change_type]
        simplicity -= _RISK_PENALTY[impact.expected_scope.risk_level]
        return _bounded(max(simplicity, 0.1))

    @staticmethod
    def context_completeness(repo: SymbolicRepoModel) -> float:
        completeness = 0.4
        completeness += min(len(repo.components) / 100, 1.0) * 0.3
        if len(repo.components) > 10:
            completeness += 0.1
        if repo.has_design_tokens:
            completeness += 0.1
        if repo.utility_theme:
            completeness += 0.1
        if repo.dom_mappings:
            completeness += 0.1
        return _bounded(completeness)

    # =========================================================================
    # AGGREGATE & TIERS
    # =========================================================================

    @staticmethod
    def aggregate(factors: ConfidenceFactors) -> float:
        values = factors.to_dict()
        weighted = sum(values[name] * weight for name, weight in FACTOR_WEIGHTS.items())
        return _bounded(max(weighted, MIN_CONFIDENCE))

    def select_approach(self, confidence: float) -> ChangeApproach:
        """Total, deterministic tier mapping; boundary values go to the higher tier."""
        if confidence >= self.direct_threshold:
            return ChangeApproach.DIRECT
        if confidence >= self.guided_threshold:
            return ChangeApproach.GUIDED
        if confidence >= self.conservative_threshold:
            return ChangeApproach.CONSERVATIVE
        return ChangeApproach.HUMAN_REVIEW

    @staticmethod
    def fallbacks_for(approach: ChangeApproach) -> list[ChangeApproach]:
        return APPROACH_ORDER[APPROACH_ORDER.index(approach) + 1:]

    @staticmethod
    def assess_risk(confidence: float, impact: ImpactAnalysis) -> RiskLevel:
        risk = impact.expected_scope.risk_level
        if confidence < 0.4:
            risk = _RAISE_RISK[risk]
        elif confidence > 0.8:
            risk = _LOWER_RISK[risk]
        if len(impact.required_cascades) > 2:
            risk = _RAISE_RISK[risk]
        return risk
