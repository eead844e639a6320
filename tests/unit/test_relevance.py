"""Unit tests for broad-scope relevance scoring."""

import asyncio

from tweaq.core.models import (
    ElementDescriptor,
    NaturalLanguageEdit,
    TargetComponent,
    VisualEdit,
)
from tweaq.core.repository import ContentLoader
from tweaq.core.strategy.relevance import (
    EXPORTED_SCORE,
    KEYWORD_MATCH_SCORE,
    TEXT_DENSITY_SCORE,
    is_page_component,
    rank_components,
    request_keywords,
)
from tweaq.core.understanding.intent_resolver import IntentResolver


class TestKeywords:
    def test_visual_edit_keywords_from_classes(self, repo):
        edit = VisualEdit(element=ElementDescriptor(tag_name="h1", class_name="hero-title text-sm"))
        intent = IntentResolver().resolve(edit, repo)
        assert request_keywords(intent) == ["hero", "title", "text"]

    def test_page_naming(self):
        assert is_page_component(TargetComponent("AboutPage", "src/About.tsx"))
        assert is_page_component(TargetComponent("About", "src/pages/about.tsx"))
        assert is_page_component(TargetComponent("Home", "app/page.tsx"))
        assert not is_page_component(TargetComponent("Card", "src/components/Card.tsx"))


class TestRanking:
    def test_content_request_prefers_named_text_dense_component(self, repo):
        intent = IntentResolver().resolve(NaturalLanguageEdit("Make the footer copy friendlier"), repo)
        ranked = asyncio.run(rank_components(intent, repo, ContentLoader()))

        assert [c.name for _, c in ranked] == ["Footer", "Button", "Hero"]
        assert ranked[0][0] == KEYWORD_MATCH_SCORE + TEXT_DENSITY_SCORE + EXPORTED_SCORE
        assert ranked[1][0] == EXPORTED_SCORE

    def test_top_n_and_zero_scores(self, repo):
        repo.components.append(TargetComponent("Util", "src/util.ts", content="const x = 1;\n"))
        intent = IntentResolver().resolve(NaturalLanguageEdit("make it better"), repo)

        ranked = asyncio.run(rank_components(intent, repo, ContentLoader(), top_n=5))
        assert "Util" not in [c.name for _, c in ranked]
        assert len(asyncio.run(rank_components(intent, repo, ContentLoader(), top_n=2))) == 2
