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
Tweaq Change Engine -- Strategy Planner

Builds the ChangeStrategy for an assessment: the tier's fixed step list,
its validation level, and the chain of nested fallbacks (each one tier
lower, its confidence discounted).
"""

from tweaq.core.models import (
    ChangeApproach,
    ChangeStep,
    ChangeStrategy,
    ConfidenceAssessment,
    StepType,
    ValidationLevel,
)

TIER_VALIDATION_LEVEL = {
    ChangeApproach.DIRECT: ValidationLevel.STANDARD,
    ChangeApproach.GUIDED: ValidationLevel.STRICT,
    ChangeApproach.CONSERVATIVE: ValidationLevel.PARANOID,
    ChangeApproach.HUMAN_REVIEW: ValidationLevel.PARANOID,
}


def steps_for(approach: ChangeApproach, analyze_timeout: float = 30.0) -> list[ChangeStep]:
    if approach == ChangeApproach.DIRECT:
        return [
            ChangeStep(StepType.ANALYZE, "Locate the change in the component"),
            ChangeStep(StepType.GENERATE, "Generate the edit in one pass"),
            ChangeStep(StepType.VALIDATE, "Validate scope, preservation and intent"),
            ChangeStep(StepType.APPLY, "Emit the file change"),
        ]
    if approach == ChangeApproach.GUIDED:
        return [
            ChangeStep(StepType.ANALYZE, "Analyze component structure and preservation rules"),
            ChangeStep(StepType.GENERATE, "Generate with preservation rules and scope limits"),
            ChangeStep(StepType.VERIFY, "Check the edit is real and proportionate"),
            ChangeStep(StepType.VALIDATE, "Strict validation"),
            ChangeStep(StepType.APPLY, "Emit the file change"),
        ]
    if approach == ChangeApproach.CONSERVATIVE:
        return [
            ChangeStep(StepType.ANALYZE, "Thorough analysis of the component", timeout=analyze_timeout),
            ChangeStep(StepType.GENERATE, "Generate the smallest possible edit"),
            ChangeStep(StepType.VERIFY, "Check the edit is real and proportionate"),
            ChangeStep(StepType.VALIDATE, "Paranoid validation"),
            ChangeStep(StepType.APPLY, "Emit the file change"),
        ]
    return [
        ChangeStep(StepType.ANALYZE, "Analyze the requested change"),
        ChangeStep(StepType.GENERATE, "Write a change proposal for human review"),
        ChangeStep(StepType.VALIDATE, "Confirm the proposal keeps the original intact"),
    ]


def build_strategy(
    assessment: ConfidenceAssessment,
    fallback_discount: float = 0.8,
    analyze_timeout: float = 30.0,
) -> ChangeStrategy:
    """Strategy for the recommended tier with every fallback nested beneath it."""
    tiers = [assessment.recommended_approach] + list(assessment.fallback_strategies)

    strategy = None
    for depth in range(len(tiers) - 1, -1, -1):
        approach = tiers[depth]
        strategy = ChangeStrategy(
            approach=approach,
            confidence=round(assessment.confidence * fallback_discount**depth, 4),
            steps=steps_for(approach, analyze_timeout),
            validation_level=TIER_VALIDATION_LEVEL[approach],
            fallback_strategy=strategy,
        )
    return strategy
