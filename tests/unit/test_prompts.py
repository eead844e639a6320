"""Unit tests for generation prompts, proposals and response extraction."""

import pytest

from tweaq.core.models import ChangeApproach, IssueType, Severity, ValidationIssue
from tweaq.core.strategy.prompts import (
    COMPLETE_FILE_RULE,
    build_conservative_prompt,
    build_direct_prompt,
    build_generation_prompt,
    build_guided_prompt,
    build_over_deletion_prompt,
    fence_language,
    render_proposal,
)
from tweaq.core.strategy.response import extract_code


class TestTierPrompts:
    """Every tier sends the whole file and asks for the whole file back."""

    def test_direct(self, hero_source, hero, hero_intent, hero_impact):
        prompt = build_direct_prompt(hero_source, hero, hero_intent, hero_impact)
        assert hero_source in prompt
        assert "- text-base: text-sm → 16px" in prompt
        assert COMPLETE_FILE_RULE in prompt
        assert "```tsx" in prompt

    def test_guided_lists_preservation_rules(self, hero_source, hero, hero_intent, hero_impact):
        prompt = build_guided_prompt(hero_source, hero, hero_intent, hero_impact)
        assert "PRESERVATION RULES:" in prompt
        assert "- Preserve all imports (CRITICAL)" in prompt
        assert "- Keep class and style references in place (important)" in prompt
        assert "Styling approach: tailwind" in prompt

    def test_conservative_limits(self, hero_source, hero, hero_intent, hero_impact):
        prompt = build_conservative_prompt(hero_source, hero, hero_intent, hero_impact)
        assert "Maximum 2 lines changed" in prompt
        assert "NO import or export changes" in prompt

    def test_feedback_is_prepended(self, hero_source, hero, hero_intent, hero_impact):
        feedback = [ValidationIssue(IssueType.PRESERVATION, Severity.ERROR, "Preserve all imports: 2 before, 1 after")]
        prompt = build_generation_prompt(
            ChangeApproach.GUIDED, hero_source, hero, hero_intent, hero_impact, feedback
        )
        assert prompt.startswith("PREVIOUS ATTEMPT WAS REJECTED:\n- Preserve all imports")

    def test_human_review_has_no_generation_prompt(self, hero_source, hero, hero_intent, hero_impact):
        with pytest.raises(ValueError):
            build_generation_prompt(ChangeApproach.HUMAN_REVIEW, hero_source, hero, hero_intent, hero_impact)

    def test_over_deletion_prompt_reports_sizes(self, hero_source, hero, hero_intent, hero_impact):
        prompt = build_over_deletion_prompt(hero_source, "short", hero, hero_intent, hero_impact)
        assert prompt.startswith("PREVIOUS ATTEMPT FAILED")
        assert f"{len(hero_source)} characters" in prompt
        assert "was 5 characters" in prompt

    def test_fence_language(self):
        assert fence_language("a/b/Card.vue") == "vue"
        assert fence_language("README") == ""


class TestProposal:
    def test_original_is_embedded_unchanged(self, hero_source, hero, hero_intent, hero_impact):
        proposal = render_proposal(hero_source, hero, hero_intent, hero_impact, risk="high")
        assert proposal.startswith("/*\n * CHANGE PROPOSAL - REQUIRES HUMAN REVIEW")
        assert proposal.endswith(hero_source)
        assert " * Risk: high" in proposal
        assert " * - Preserve all exports" in proposal

    def test_markup_files_use_html_comments(self, hero_source, hero, hero_intent, hero_impact):
        from dataclasses import replace

        vue = replace(hero, file_path="src/Hero.vue")
        proposal = render_proposal("<template></template>\n", vue, hero_intent, hero_impact)
        assert proposal.startswith("<!--")
        assert "-->\n<template>" in proposal


class TestExtractCode:
    def test_fenced_block(self):
        assert extract_code("Sure:\n```tsx\nconst a = 1;\n```\nDone.") == "const a = 1;"

    def test_longest_block_wins(self):
        response = "```\nx\n```\nand the file:\n```js\nconst a = 1;\nconst b = 2;\n```"
        assert extract_code(response) == "const a = 1;\nconst b = 2;"

    def test_tilde_fence(self):
        assert extract_code("~~~\nbody {}\n~~~") == "body {}"

    def test_unfenced_with_label(self):
        assert extract_code("Here is the updated file:\nconst a = 1;\n") == "const a = 1;"

    def test_keeps_trailing_newline_of_original(self, hero_source):
        assert extract_code(f"```tsx\n{hero_source}```", hero_source) == hero_source
