"""Unit tests for IntentResolver -- selector lookup, fallback ranking, NL targeting."""

import pytest

from tweaq.core.models import (
    ChangeType,
    DeltaCategory,
    ElementDescriptor,
    NaturalLanguageEdit,
    PropertyDelta,
    VisualEdit,
)
from tweaq.core.understanding.intent_resolver import IntentResolver


@pytest.fixture
def resolver():
    return IntentResolver()


class TestVisualResolution:
    """Visual edits resolve through the selector table first."""

    def test_exact_selector_match(self, resolver, font_size_edit, repo):
        intent = resolver.resolve(font_size_edit, repo)
        assert intent.target_component.name == "Hero"
        assert intent.change_type == ChangeType.STYLING
        assert intent.description == "Update h1 (font-size: 14px → 16px)"
        assert intent.confidence == 1.0
        assert [c.name for c in intent.candidates] == ["Hero"]

    def test_fallback_ranks_by_shared_classes(self, resolver, repo):
        edit = VisualEdit(
            element=ElementDescriptor(tag_name="h1", selector="div.unknown", class_name="hero-title"),
            changes=(PropertyDelta("font-size", "14px", "16px"),),
        )
        intent = resolver.resolve(edit, repo)
        assert intent.target_component.name == "Hero"
        # class overlap (2) + tag usage (1) -> match quality 0.5
        assert intent.confidence == pytest.approx(0.75)

    def test_candidates_are_capped(self, repo):
        edit = VisualEdit(element=ElementDescriptor(tag_name="p", class_name="hero footer btn"))
        intent = IntentResolver(candidate_limit=2).resolve(edit, repo)
        assert len(intent.candidates) == 2

    def test_unresolved_is_low_confidence_not_an_error(self, resolver, repo):
        edit = VisualEdit(
            element=ElementDescriptor(tag_name="video", selector="video.promo", class_name="promo"),
            changes=(PropertyDelta("width", "100px", "200px", DeltaCategory.LAYOUT),),
        )
        intent = resolver.resolve(edit, repo)
        assert intent.is_resolved is False
        assert intent.candidates == []
        assert intent.confidence == 0.2

    def test_multi_delta_takes_most_invasive_category(self):
        edit = VisualEdit(
            element=ElementDescriptor(tag_name="div"),
            changes=(
                PropertyDelta("color", "black", "red"),
                PropertyDelta("display", "block", "flex", DeltaCategory.LAYOUT),
            ),
        )
        assert IntentResolver.categorize(edit) == ChangeType.LAYOUT

    def test_user_description_wins(self):
        edit = VisualEdit(element=ElementDescriptor(tag_name="h1"), description="Bigger title")
        assert IntentResolver.describe(edit) == "Bigger title"


class TestLanguageResolution:
    def test_region_keyword_finds_component(self, resolver, repo):
        intent = resolver.resolve(NaturalLanguageEdit("Make the hero title bold"), repo)
        assert intent.target_component.name == "Hero"
        assert intent.change_type == ChangeType.STYLING
        assert [d.property for d in intent.requested_changes] == ["font-weight"]
        # 0.7 + 0.15 target + 0.1 specific, capped at 0.9
        assert intent.confidence == 0.9

    def test_vague_request_stays_unresolved(self, resolver, repo):
        intent = resolver.resolve(NaturalLanguageEdit("make it better"), repo)
        assert intent.target_component is None
        assert intent.change_type == ChangeType.GENERAL
        assert intent.requested_changes == []
        assert intent.confidence == 0.5

    def test_extra_context_raises_confidence(self, resolver, repo):
        intent = resolver.resolve(
            NaturalLanguageEdit("make it better", user_intent="landing page feels dated"), repo
        )
        assert intent.confidence == 0.6

    def test_target_hint_selector(self, resolver, repo):
        hint = ElementDescriptor(tag_name="h1", selector="section.hero > h1.hero-title")
        intent = resolver.resolve(NaturalLanguageEdit("Reword this headline", target_hint=hint), repo)
        assert intent.target_component.name == "Hero"
        assert intent.change_type == ChangeType.CONTENT

    def test_summary(self, resolver, repo):
        intent = resolver.resolve(NaturalLanguageEdit("Make the hero title bold"), repo)
        summary = IntentResolver.summarize(intent)
        assert 'Instruction: "Make the hero title bold"' in summary
        assert "Target: Hero" in summary
        assert "Confidence: 90.0%" in summary
