"""Shared fixtures for change-engine unit tests: a small tailwind/CSS-modules app."""

import pytest

from tweaq.core.analysis.impact_analyzer import ImpactAnalyzer
from tweaq.core.models import (
    ElementDescriptor,
    PropertyDelta,
    StylingApproach,
    StylingInfo,
    TargetComponent,
    VisualEdit,
)
from tweaq.core.repository import DomMapping, SymbolicRepoModel
from tweaq.core.understanding.intent_resolver import IntentResolver

HERO_SOURCE = """import React from "react";
import { Button } from "./Button";

interface HeroProps {
  title: string;
}

export function Hero({ title }: HeroProps) {
  return (
    <section className="hero bg-white p-8">
      <h1 className="hero-title text-sm font-bold">{title}</h1>
      <p className="hero-copy text-gray-500">Build faster with less code.</p>
      <Button label="Get started" />
    </section>
  );
}
"""

BUTTON_SOURCE = """import React from "react";

export function Button({ label }: { label: string }) {
  return <button className="btn rounded px-4 py-2">{label}</button>;
}
"""

FOOTER_SOURCE = """import styles from "./Footer.module.css";

export default function Footer() {
  return (
    <footer className={styles.footer}>
      <p className={styles.copy}>Made with care by the Tweaq team.</p>
    </footer>
  );
}
"""

HERO_SELECTOR = "section.hero > h1.hero-title"


class ScriptedProvider:
    """Text-generation fake: replays canned replies or asks a handler.

    A reply that is an exception instance is raised instead of returned.
    The last scripted reply repeats once the script runs out.
    """

    def __init__(self, *replies, handler=None):
        self.replies = list(replies)
        self.handler = handler
        self.prompts = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.handler is not None:
            reply = self.handler(prompt)
        elif len(self.replies) > 1:
            reply = self.replies.pop(0)
        else:
            reply = self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


def fence(content: str, lang: str = "tsx") -> str:
    return f"Here is the updated file:\n```{lang}\n{content}```\n"


@pytest.fixture
def hero_source():
    return HERO_SOURCE


@pytest.fixture
def button_source():
    return BUTTON_SOURCE


@pytest.fixture
def footer_source():
    return FOOTER_SOURCE


@pytest.fixture
def hero():
    return TargetComponent(
        name="Hero",
        file_path="src/components/Hero.tsx",
        styling=StylingInfo(
            approach=StylingApproach.TAILWIND,
            classes=("hero", "hero-title", "text-sm", "font-bold", "hero-copy"),
        ),
        exports=("Hero",),
        imports=("react", "./Button"),
        props=("title",),
        content=HERO_SOURCE,
    )


@pytest.fixture
def button():
    return TargetComponent(
        name="Button",
        file_path="src/components/Button.tsx",
        styling=StylingInfo(approach=StylingApproach.TAILWIND, classes=("btn", "rounded")),
        exports=("Button",),
        imports=("react",),
        props=("label",),
        content=BUTTON_SOURCE,
    )


@pytest.fixture
def footer():
    return TargetComponent(
        name="Footer",
        file_path="src/components/Footer.tsx",
        styling=StylingInfo(approach=StylingApproach.CSS_MODULES, classes=("footer", "copy")),
        exports=("Footer",),
        imports=("./Footer.module.css",),
        content=FOOTER_SOURCE,
    )


@pytest.fixture
def repo(hero, button, footer):
    return SymbolicRepoModel(
        components=[hero, button, footer],
        dom_mappings={
            HERO_SELECTOR: [
                DomMapping(HERO_SELECTOR, "src/components/Hero.tsx", "Hero", line=11, confidence=0.95),
            ]
        },
    )


@pytest.fixture
def font_size_edit():
    """Hero title font-size 14px -> 16px, captured on the mapped selector."""
    return VisualEdit(
        element=ElementDescriptor(
            tag_name="h1",
            selector=HERO_SELECTOR,
            class_name="hero-title text-sm font-bold",
        ),
        changes=(PropertyDelta("font-size", "14px", "16px"),),
    )


@pytest.fixture
def hero_intent(font_size_edit, repo):
    return IntentResolver().resolve(font_size_edit, repo)


@pytest.fixture
def hero_impact(hero_intent, hero, repo):
    return ImpactAnalyzer().analyze(hero_intent, hero, repo)


@pytest.fixture
def scripted():
    return ScriptedProvider


@pytest.fixture
def fenced():
    return fence
