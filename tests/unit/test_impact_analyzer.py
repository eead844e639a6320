"""Unit tests for ImpactAnalyzer -- direct changes, cascades, rules and scope."""

import pytest

from tweaq.core.analysis.impact_analyzer import ImpactAnalyzer, magnitude_for, property_confidence
from tweaq.core.models import (
    ChangeIntent,
    ChangeMagnitude,
    ChangeType,
    ComponentComplexity,
    NaturalLanguageEdit,
    PropertyDelta,
    RiskLevel,
    StylingApproach,
    StylingInfo,
    TargetComponent,
)
from tweaq.core.repository import SymbolicRepoModel

STYLED_SOURCE = """import styled from "styled-components";

export const Title = styled.h1({
  fontSize: "14px",
  color: "black",
});
"""


@pytest.fixture
def analyzer():
    return ImpactAnalyzer()


@pytest.fixture
def styled_title():
    return TargetComponent(
        name="Title",
        file_path="src/components/Title.tsx",
        styling=StylingInfo(approach=StylingApproach.STYLED_COMPONENTS),
        exports=("Title",),
        complexity=ComponentComplexity.MODERATE,
        content=STYLED_SOURCE,
    )


class TestDirectChanges:
    """Requested deltas are expressed in the component's styling idiom."""

    def test_utility_class_mapping(self, hero_impact):
        (change,) = hero_impact.direct_changes
        assert change.type == "style"
        assert change.target == "text-base"
        assert change.old_value == "text-sm"
        assert change.new_value == "16px"
        assert change.confidence == 0.95

    def test_arbitrary_utility_lowers_confidence(self, analyzer, hero, repo, font_size_edit):
        intent = ChangeIntent(
            change_type=ChangeType.STYLING,
            description="odd size",
            request=font_size_edit,
            target_component=hero,
            requested_changes=[PropertyDelta("font-size", "14px", "15px")],
        )
        (change,) = analyzer.analyze(intent, hero, repo).direct_changes
        assert change.target == "text-[15px]"
        assert change.confidence == 0.8

    def test_scoped_styles_camel_case(self, analyzer, styled_title, font_size_edit):
        intent = ChangeIntent(
            change_type=ChangeType.STYLING,
            description="bigger",
            request=font_size_edit,
            target_component=styled_title,
            requested_changes=[PropertyDelta("font-size", "14px", "16px")],
        )
        (change,) = analyzer.analyze(intent, styled_title, SymbolicRepoModel()).direct_changes
        assert (change.target, change.old_value, change.confidence) == ("fontSize", "14px", 0.9)

    def test_instruction_without_deltas(self, analyzer, footer, repo):
        request = NaturalLanguageEdit("Make the footer copy friendlier")
        intent = ChangeIntent(
            change_type=ChangeType.CONTENT,
            description=request.instruction,
            request=request,
            target_component=footer,
        )
        (change,) = analyzer.analyze(intent, footer, repo).direct_changes
        assert change.type == "content"
        assert change.target == "Footer"
        assert change.new_value == "Make the footer copy friendlier"
        assert change.confidence == 0.5

    def test_property_confidence_table(self):
        assert property_confidence("color") == 0.9
        assert property_confidence("display") == 0.7
        assert property_confidence("transform") == 0.5


class TestCascadesAndScope:
    def test_minimal_scope_without_cascades(self, hero_impact):
        assert hero_impact.cascade_changes == []
        scope = hero_impact.expected_scope
        assert (scope.expected_lines, scope.expected_files) == (2, 1)
        assert scope.change_type == ChangeMagnitude.MINIMAL
        assert scope.risk_level == RiskLevel.LOW

    def test_design_tokens_add_required_cascade(self, analyzer, hero_intent, hero, repo):
        repo.design_tokens = {"fontSize": {"base": "16px"}}
        impact = analyzer.analyze(hero_intent, hero, repo)
        (cascade,) = impact.cascade_changes
        assert cascade.type == "design-system"
        assert cascade.required is True
        assert impact.expected_scope.expected_lines == 5
        assert impact.expected_scope.expected_files == 2
        assert impact.expected_scope.change_type == ChangeMagnitude.MODERATE

    def test_parent_container_is_advisory(self, analyzer, button, repo, font_size_edit):
        intent = ChangeIntent(
            change_type=ChangeType.STYLING,
            description="bigger label",
            request=font_size_edit,
            target_component=button,
            requested_changes=[PropertyDelta("font-size", "14px", "16px")],
        )
        impact = analyzer.analyze(intent, button, repo)
        (cascade,) = impact.cascade_changes
        assert cascade.type == "parent-container"
        assert cascade.target == "Hero"
        assert cascade.required is False
        assert impact.required_cascades == []

    def test_magnitude_bands(self):
        assert magnitude_for(3) == ChangeMagnitude.MINIMAL
        assert magnitude_for(4) == ChangeMagnitude.MODERATE
        assert magnitude_for(25) == ChangeMagnitude.SIGNIFICANT
        assert magnitude_for(26) == ChangeMagnitude.MAJOR


class TestRulesAndChecks:
    def test_rules_come_from_content(self, hero_impact):
        assert {r.type for r in hero_impact.critical_rules} == {"exports", "imports", "props", "functionality"}

    def test_explicit_content_overrides_component(self, analyzer, hero_intent, hero, repo):
        impact = analyzer.analyze(hero_intent, hero, repo, content="body { color: red; }\n")
        # props come from the component metadata even without source cues
        assert [r.type for r in impact.preservation_rules] == ["props"]

    def test_build_check_only_for_non_simple(self, analyzer, hero_impact, styled_title, font_size_edit):
        assert "build" not in {c.type for c in hero_impact.validation_checks}
        intent = ChangeIntent(
            change_type=ChangeType.STYLING,
            description="bigger",
            request=font_size_edit,
            target_component=styled_title,
            requested_changes=[PropertyDelta("font-size", "14px", "16px")],
        )
        impact = analyzer.analyze(intent, styled_title, SymbolicRepoModel())
        assert "build" in {c.type for c in impact.validation_checks}

    def test_analysis_is_deterministic(self, analyzer, hero_intent, hero, repo):
        assert analyzer.analyze(hero_intent, hero, repo) == analyzer.analyze(hero_intent, hero, repo)
