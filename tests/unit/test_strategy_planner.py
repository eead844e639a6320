"""Unit tests for the strategy planner -- tier steps and the fallback chain."""

import pytest

from tweaq.core.models import (
    ChangeApproach,
    ConfidenceAssessment,
    ConfidenceFactors,
    StepType,
    ValidationLevel,
)
from tweaq.core.strategy.planner import build_strategy, steps_for


def _assessment(approach, confidence, fallbacks):
    return ConfidenceAssessment(
        confidence=confidence,
        factors=ConfidenceFactors(confidence, confidence, confidence, confidence),
        recommended_approach=approach,
        fallback_strategies=fallbacks,
    )


class TestSteps:
    def test_direct(self):
        assert [s.type for s in steps_for(ChangeApproach.DIRECT)] == [
            StepType.ANALYZE,
            StepType.GENERATE,
            StepType.VALIDATE,
            StepType.APPLY,
        ]

    def test_guided_and_conservative_verify(self):
        for approach in (ChangeApproach.GUIDED, ChangeApproach.CONSERVATIVE):
            assert StepType.VERIFY in [s.type for s in steps_for(approach)]

    def test_only_conservative_analysis_is_timed(self):
        assert steps_for(ChangeApproach.CONSERVATIVE, analyze_timeout=12.5)[0].timeout == 12.5
        assert all(s.timeout is None for s in steps_for(ChangeApproach.GUIDED))

    def test_human_review_never_applies(self):
        assert [s.type for s in steps_for(ChangeApproach.HUMAN_REVIEW)] == [
            StepType.ANALYZE,
            StepType.GENERATE,
            StepType.VALIDATE,
        ]


class TestFallbackChain:
    def test_each_fallback_is_discounted(self):
        strategy = build_strategy(
            _assessment(
                ChangeApproach.DIRECT,
                0.9,
                [ChangeApproach.GUIDED, ChangeApproach.CONSERVATIVE, ChangeApproach.HUMAN_REVIEW],
            )
        )
        chain = list(strategy.chain())
        assert [s.approach for s in chain] == [
            ChangeApproach.DIRECT,
            ChangeApproach.GUIDED,
            ChangeApproach.CONSERVATIVE,
            ChangeApproach.HUMAN_REVIEW,
        ]
        assert [s.confidence for s in chain] == pytest.approx([0.9, 0.72, 0.576, 0.4608])
        assert [s.validation_level for s in chain] == [
            ValidationLevel.STANDARD,
            ValidationLevel.STRICT,
            ValidationLevel.PARANOID,
            ValidationLevel.PARANOID,
        ]

    def test_custom_discount(self):
        strategy = build_strategy(
            _assessment(ChangeApproach.GUIDED, 0.7, [ChangeApproach.CONSERVATIVE]), fallback_discount=0.5
        )
        assert strategy.fallback_strategy.confidence == pytest.approx(0.35)
        assert strategy.fallback_strategy.fallback_strategy is None

    def test_last_tier_has_no_fallback(self):
        strategy = build_strategy(_assessment(ChangeApproach.HUMAN_REVIEW, 0.2, []))
        assert strategy.fallback_strategy is None
