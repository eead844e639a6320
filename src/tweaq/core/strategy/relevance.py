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
Tweaq Change Engine -- Broad-Scope Relevance

When a request names no component ("make it better"), every indexed
component is scored for how likely the request is about it:

    +50  a request keyword appears in the component's name or path
    +30  content request and the component is text-dense
    +20  styling request and the component carries styling markers
    +40  layout request and the component's name is layout-like
    +15  page-level naming
    +10  exported / reusable

The top scorers each get their own generate -> validate cycle.
"""

import logging
import re
from pathlib import Path

from tweaq.core.analysis.structure import has_exports, has_styling_markers, text_density
from tweaq.core.models import ChangeIntent, ChangeType, NaturalLanguageEdit, TargetComponent, VisualEdit
from tweaq.core.repository import ContentLoader, SymbolicRepoModel
from tweaq.core.understanding.instruction_parser import extract_keywords

logger = logging.getLogger("tweaq.strategy.relevance")

KEYWORD_MATCH_SCORE = 50
TEXT_DENSITY_SCORE = 30
STYLING_MARKER_SCORE = 20
LAYOUT_NAME_SCORE = 40
PAGE_NAME_SCORE = 15
EXPORTED_SCORE = 10

TEXT_DENSITY_THRESHOLD = 0.5

LAYOUT_NAME_KEYWORDS = [
    "layout", "container", "grid", "section", "wrapper", "header", "footer",
    "sidebar", "nav", "page", "main", "hero", "row", "column", "stack",
]


def request_keywords(intent: ChangeIntent) -> list[str]:
    request = intent.request
    if isinstance(request, NaturalLanguageEdit):
        return extract_keywords(request.instruction)
    if isinstance(request, VisualEdit):
        words = [request.element.tag_name.lower()] if len(request.element.tag_name) >= 3 else []
        for cls in request.element.classes:
            words.extend(w for w in re.split(r"[-_:]", cls.lower()) if len(w) >= 3)
        return list(dict.fromkeys(words))
    return []


def is_page_component(component: TargetComponent) -> bool:
    path = component.file_path.replace("\\", "/").lower()
    stem = Path(path).stem
    return (
        component.name.endswith("Page")
        or "/pages/" in f"/{path}"
        or (stem in ("page", "index") and "/app/" in f"/{path}")
    )


def score_component(component: TargetComponent, content: str, intent: ChangeIntent, keywords: list[str]) -> int:
    score = 0
    name = component.name.lower()
    haystack = f"{name} {component.file_path.lower()}"

    if any(kw in haystack for kw in keywords):
        score += KEYWORD_MATCH_SCORE
    if intent.change_type == ChangeType.CONTENT and text_density(content) >= TEXT_DENSITY_THRESHOLD:
        score += TEXT_DENSITY_SCORE
    if intent.change_type == ChangeType.STYLING and has_styling_markers(content):
        score += STYLING_MARKER_SCORE
    if intent.change_type == ChangeType.LAYOUT and any(kw in name for kw in LAYOUT_NAME_KEYWORDS):
        score += LAYOUT_NAME_SCORE
    if is_page_component(component):
        score += PAGE_NAME_SCORE
    if component.exports or has_exports(content):
        score += EXPORTED_SCORE
    return score


async def rank_components(
    intent: ChangeIntent,
    repo: SymbolicRepoModel,
    loader: ContentLoader,
    top_n: int = 5,
) -> list[tuple[int, TargetComponent]]:
    """Top-N components with a positive relevance score, best first."""
    keywords = request_keywords(intent)
    scored = []
    for component in repo.components:
        content = await loader.load(component)
        score = score_component(component, content, intent, keywords)
        if score > 0:
            scored.append((score, component))
    scored.sort(key=lambda pair: (-pair[0], pair[1].file_path))
    logger.debug(
        "Relevance ranking: %s",
        ", ".join(f"{c.name}={s}" for s, c in scored[:top_n]) or "<none>",
    )
    return scored[:top_n]
