"""Unit tests for styling idioms and the capability-tagged idiom table."""

from tweaq.core.analysis.styling import (
    ModuleStyleIdiom,
    PlainStylesheetIdiom,
    ScopedStyleIdiom,
    UtilityClassIdiom,
    approaches_with,
    default_idiom_table,
    idiom_for,
    to_camel_case,
)
from tweaq.core.models import StylingApproach


class TestUtilityClassIdiom:
    """Utility classes: theme token, spacing scale, or an arbitrary value."""

    def test_theme_token(self):
        mapping = UtilityClassIdiom().map_property("font-size", "16px")
        assert mapping.target == "text-base"
        assert mapping.exact is True

    def test_spacing_scale(self):
        assert UtilityClassIdiom().map_property("padding", "16px").target == "p-4"
        assert UtilityClassIdiom().map_property("margin-top", "8px").target == "mt-2"

    def test_arbitrary_value(self):
        mapping = UtilityClassIdiom().map_property("padding", "18px")
        assert mapping.target == "p-[18px]"
        assert mapping.exact is False
        assert UtilityClassIdiom().map_property("color", "#123456").target == "text-[#123456]"

    def test_repository_theme_overrides(self):
        theme = {"color": {"brand": "text-brand"}}
        assert UtilityClassIdiom().map_property("color", "brand", theme).target == "text-brand"

    def test_evidence_prefers_token_then_prefix_proxy(self):
        alternatives = UtilityClassIdiom().evidence("font-size", "16px")
        assert alternatives[0] == ("text-base",)
        assert ("font-size", "16px") in alternatives
        assert alternatives[-1] == ("text-",)

    def test_no_prefix_proxy_for_spacing(self):
        alternatives = UtilityClassIdiom().evidence("padding", "16px")
        assert ("p-",) not in alternatives


class TestDeclarationIdioms:
    def test_plain_declarations(self):
        mapping = PlainStylesheetIdiom().map_property("font-size", "16px")
        assert (mapping.target, mapping.value) == ("font-size", "16px")

    def test_scoped_styles_use_camel_case(self):
        assert ScopedStyleIdiom().map_property("background-color", "red").target == "backgroundColor"
        assert to_camel_case("border-top-left-radius") == "borderTopLeftRadius"

    def test_evidence_accepts_camel_case(self):
        alternatives = ModuleStyleIdiom().evidence("font-size", "16px")
        assert ("fontSize", "16px") in alternatives


class TestIdiomTable:
    def test_every_approach_has_an_idiom(self):
        table = default_idiom_table()
        assert set(table) == set(StylingApproach)

    def test_unknown_approach_falls_back_to_plain(self):
        assert isinstance(idiom_for({}, StylingApproach.TAILWIND), PlainStylesheetIdiom)
        assert isinstance(idiom_for(default_idiom_table(), None), PlainStylesheetIdiom)

    def test_capability_lookup(self):
        table = default_idiom_table()
        assert approaches_with(table, "utility-classes") == [StylingApproach.TAILWIND]
        assert approaches_with(table, "component-local") == [
            StylingApproach.CSS_MODULES,
            StylingApproach.STYLED_COMPONENTS,
        ]

    def test_tables_are_independent(self):
        table = default_idiom_table()
        table[StylingApproach.CSS] = ScopedStyleIdiom()
        assert isinstance(default_idiom_table()[StylingApproach.CSS], PlainStylesheetIdiom)
