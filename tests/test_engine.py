"""Tests for taltree.engine — directive semantics end to end."""

import logging
from dataclasses import dataclass

import pytest

from taltree.config import EngineConfig
from taltree.engine import TemplateEngine, collect_slots, diagnostic
from taltree.errors import ConfigurationError, MarkupParseError, TemplateNotFound
from taltree.modifiers import ModifierRegistry
from taltree.nodes import QName
from taltree.parsing import parse_markup
from taltree.values import Markup


@pytest.fixture
def engine() -> TemplateEngine:
    return TemplateEngine()


# ── Scenarios ────────────────────────────────────────────────────────────


class TestScenarios:
    def test_condition(self, engine: TemplateEngine) -> None:
        template = '<div><span tal:condition="show">V</span><span tal:condition="hide">H</span></div>'
        assert engine.render(template, show=True, hide=False) == "<div><span>V</span></div>"

    def test_repeat_with_content(self, engine: TemplateEngine) -> None:
        template = '<li tal:repeat="p in people" tal:content="p.name">X</li>'
        people = [{"name": "Ada"}, {"name": "Linus"}]
        assert engine.render(template, people=people) == "<li>Ada</li><li>Linus</li>"

    def test_content_with_modifier(self, engine: TemplateEngine) -> None:
        assert engine.render('<p tal:content="name|upper">x</p>', name="ada") == "<p>ADA</p>"

    def test_ternary_condition(self, engine: TemplateEngine) -> None:
        template = "<div><p tal:condition=\"active ? 'true' : ''\">x</p></div>"
        assert engine.render(template, active=False) == "<div/>"
        assert engine.render(template, active=True) == "<div><p>x</p></div>"

    def test_extends_with_slot(self) -> None:
        templates = {
            "base.html": (
                '<html><body><main tal:slot="content"><p>Default</p></main></body></html>'
            ),
        }
        engine = TemplateEngine(templates.get)
        child = '<div tal:extends="base.html"><section tal:slot="content"><p>Child</p></section></div>'
        assert engine.render(child) == "<html><body><section><p>Child</p></section></body></html>"


# ── General properties ───────────────────────────────────────────────────


class TestIdentity:
    @pytest.mark.parametrize(
        "source",
        [
            '<div class="x" id="y"><p>Hello <b>world</b></p><br/></div>',
            "<ul><li>a</li><li>b</li></ul>",
            '<svg:svg xmlns:svg="http://www.w3.org/2000/svg"><svg:rect width="1"/></svg:svg>',
            '<div :class="{open: on}" class="a">x</div>',
        ],
    )
    def test_no_directives_round_trip(self, engine: TemplateEngine, source: str) -> None:
        assert engine.render(source) == source

    def test_directive_markup_stripped(self, engine: TemplateEngine) -> None:
        template = '<div xmlns:tal="http://xml.zope.org/namespaces/tal" tal:condition="true">x</div>'
        assert engine.render(template) == "<div>x</div>"


class TestCondition:
    def test_removes_descendants(self, engine: TemplateEngine) -> None:
        template = '<div><section tal:condition="false"><p tal:content="x">.</p></section></div>'
        assert engine.render(template, x="never") == "<div/>"

    def test_root_removed(self, engine: TemplateEngine) -> None:
        assert engine.render('<p tal:condition="missing">x</p>') == ""

    def test_false_beats_repeat(self, engine: TemplateEngine) -> None:
        template = '<ul><li tal:condition="false" tal:repeat="x in items" tal:content="x">.</li></ul>'
        assert engine.render(template, items=[1, 2]) == "<ul/>"

    def test_true_with_repeat(self, engine: TemplateEngine) -> None:
        template = '<ul><li tal:condition="true" tal:repeat="x in items" tal:content="x">.</li></ul>'
        assert engine.render(template, items=[1, 2, 3]) == "<ul><li>1</li><li>2</li><li>3</li></ul>"

    @pytest.mark.parametrize(("value", "shown"), [("0", False), ("false", False), ([], True), (0, False), ("x", True)])
    def test_truthiness(self, engine: TemplateEngine, value: object, shown: bool) -> None:
        output = engine.render('<div><p tal:condition="v">x</p></div>', v=value)
        assert ("<p>" in output) is shown


class TestRepeat:
    def test_index_bound(self, engine: TemplateEngine) -> None:
        template = '<ul><li tal:repeat="x in items" tal:content="x__index">.</li></ul>'
        assert engine.render(template, items=["a", "b"]) == "<ul><li>0</li><li>1</li></ul>"

    def test_empty_list(self, engine: TemplateEngine) -> None:
        template = '<ul><li tal:repeat="x in items">.</li></ul>'
        assert engine.render(template, items=[]) == "<ul></ul>"

    def test_children_see_loop_variable(self, engine: TemplateEngine) -> None:
        template = '<ul><li tal:repeat="u in users"><b tal:content="u.name">n</b> #<i tal:content="u__index">i</i></li></ul>'
        users = [{"name": "Ada"}, {"name": "Linus"}]
        assert engine.render(template, users=users) == (
            "<ul><li><b>Ada</b> #<i>0</i></li><li><b>Linus</b> #<i>1</i></li></ul>"
        )

    def test_nested(self, engine: TemplateEngine) -> None:
        template = (
            '<table><tr tal:repeat="row in rows"><td tal:repeat="cell in row" tal:content="cell">.</td></tr></table>'
        )
        assert engine.render(template, rows=[[1, 2], [3]]) == (
            "<table><tr><td>1</td><td>2</td></tr><tr><td>3</td></tr></table>"
        )

    def test_variable_does_not_leak(self, engine: TemplateEngine) -> None:
        template = '<div><i tal:repeat="x in items" tal:content="x">.</i><b tal:content="x">.</b></div>'
        assert engine.render(template, items=["a"]) == "<div><i>a</i><b></b></div>"

    def test_condition_per_item(self, engine: TemplateEngine) -> None:
        template = '<ul><li tal:repeat="u in users"><span tal:condition="u.active" tal:content="u.name">n</span></li></ul>'
        users = [{"name": "Ada", "active": True}, {"name": "Bob", "active": False}]
        assert engine.render(template, users=users) == "<ul><li><span>Ada</span></li><li/></ul>"

    @pytest.mark.parametrize("source", ["ada", None, {"a": 1}, 5])
    def test_non_collection_is_noop(self, engine: TemplateEngine, source: object) -> None:
        template = '<p tal:repeat="x in items" tal:content="label">.</p>'
        assert engine.render(template, items=source, label="once") == "<p>once</p>"

    def test_tuples_and_generators(self, engine: TemplateEngine) -> None:
        template = '<i tal:repeat="x in items" tal:content="x">.</i>'
        assert engine.render(template, items=("a", "b")) == "<i>a</i><i>b</i>"
        assert engine.render(template, items=(n * 2 for n in range(2))) == "<i>0</i><i>2</i>"

    def test_legacy_syntax(self, engine: TemplateEngine) -> None:
        assert engine.render('<i tal:repeat="x items" tal:content="x">.</i>', items=[1]) == "<i>1</i>"

    def test_objects(self, engine: TemplateEngine) -> None:
        @dataclass
        class Post:
            title: str

        template = '<h2 tal:repeat="post in posts" tal:content="post.title">t</h2>'
        assert engine.render(template, posts=[Post("One"), Post("Two")]) == "<h2>One</h2><h2>Two</h2>"


class TestContentAndReplace:
    def test_content_skips_children(self, engine: TemplateEngine) -> None:
        template = "<p tal:content=\"'new'\"><b tal:content=\"boom.explode\">old</b></p>"
        assert engine.render(template) == "<p>new</p>"

    def test_content_keeps_attributes(self, engine: TemplateEngine) -> None:
        assert engine.render('<p class="c" tal:content="x">.</p>', x=1) == '<p class="c">1</p>'

    def test_missing_variable_renders_empty(self, engine: TemplateEngine) -> None:
        assert engine.render('<p tal:content="nope">x</p>') == "<p></p>"

    def test_replace_swaps_element(self, engine: TemplateEngine) -> None:
        template = '<div><span tal:replace="name">x</span>!</div>'
        assert engine.render(template, name="Ada") == "<div>Ada!</div>"

    def test_replace_raw(self, engine: TemplateEngine) -> None:
        template = '<div><span tal:replace="html|raw">x</span></div>'
        assert engine.render(template, html="<em>hi</em>") == "<div><em>hi</em></div>"

    def test_escaping(self, engine: TemplateEngine) -> None:
        value = '<a & "b">'
        assert engine.render('<p tal:content="v">.</p>', v=value) == "<p>&lt;a &amp; &quot;b&quot;&gt;</p>"
        assert engine.render('<p tal:content="v|raw">.</p>', v=value) == f"<p>{value}</p>"

    def test_markup_values_not_escaped(self, engine: TemplateEngine) -> None:
        assert engine.render('<p tal:content="v">.</p>', v=Markup("<i>x</i>")) == "<p><i>x</i></p>"

    def test_dates(self, engine: TemplateEngine) -> None:
        from datetime import datetime

        output = engine.render('<time tal:content="when">.</time>', when=datetime(2024, 5, 6, 7, 8, 9))
        assert output == "<time>2024-05-06T07:08:09Z</time>"


class TestAttributes:
    def test_shorthand_sets(self, engine: TemplateEngine) -> None:
        assert engine.render('<a tal:_href="url">x</a>', url="/home") == '<a href="/home">x</a>'

    def test_shorthand_replaces_in_place(self, engine: TemplateEngine) -> None:
        template = '<a href="#" class="c" tal:_href="url">x</a>'
        assert engine.render(template, url="/home") == '<a href="/home" class="c">x</a>'

    def test_shorthand_empty_removes(self, engine: TemplateEngine) -> None:
        template = '<a href="#" class="c" tal:_href="url">x</a>'
        assert engine.render(template, url="") == '<a class="c">x</a>'

    def test_shorthand_empty_kept_when_configured(self) -> None:
        engine = TemplateEngine(config=EngineConfig(drop_empty_shorthand=False))
        assert engine.render('<a tal:_href="url">x</a>', url="") == '<a href="">x</a>'

    def test_general_form(self, engine: TemplateEngine) -> None:
        template = '<a tal:attributes="href url; title t|upper">x</a>'
        assert engine.render(template, url="/", t="go") == '<a href="/" title="GO">x</a>'

    def test_general_form_always_sets(self, engine: TemplateEngine) -> None:
        template = '<a title="old" tal:attributes="title t">x</a>'
        assert engine.render(template, t="") == '<a title="">x</a>'

    def test_other_attributes_untouched(self, engine: TemplateEngine) -> None:
        template = '<img src="a.png" alt="x" tal:_alt="caption"/>'
        assert engine.render(template, caption="Cat") == '<img src="a.png" alt="Cat"/>'

    def test_several_shorthands(self, engine: TemplateEngine) -> None:
        template = '<a tal:_href="url" tal:_title="t">x</a>'
        assert engine.render(template, url="/", t="T") == '<a href="/" title="T">x</a>'

    def test_value_escaped(self, engine: TemplateEngine) -> None:
        assert engine.render('<a tal:_title="t">x</a>', t='a"b') == '<a title="a&quot;b">x</a>'

    def test_case_preserved(self, engine: TemplateEngine) -> None:
        template = '<div tal:_dataUserId="u.id">x</div>'
        assert engine.render(template, u={"id": 7}) == '<div dataUserId="7">x</div>'

    def test_per_repeat_item(self, engine: TemplateEngine) -> None:
        template = '<a tal:repeat="l in links" tal:_href="l.url" tal:content="l.label">x</a>'
        links = [{"url": "/a", "label": "A"}, {"url": "/b", "label": "B"}]
        assert engine.render(template, links=links) == '<a href="/a">A</a><a href="/b">B</a>'


class TestDefine:
    def test_binds_for_children(self, engine: TemplateEngine) -> None:
        template = "<div tal:define=\"greeting 'Hi'; who name\"><p tal:content=\"greeting\">.</p><p tal:content=\"who|upper\">.</p></div>"
        assert engine.render(template, name="ada") == "<div><p>Hi</p><p>ADA</p></div>"

    def test_scoped_to_element(self, engine: TemplateEngine) -> None:
        template = "<div><p tal:define=\"x 'inner'\" tal:content=\"x\">.</p><p tal:content=\"x\">.</p></div>"
        assert engine.render(template) == "<div><p>inner</p><p></p></div>"

    def test_shadows_context(self, engine: TemplateEngine) -> None:
        template = "<div><b tal:define=\"x 'local'\" tal:content=\"x\">.</b><i tal:content=\"x\">.</i></div>"
        assert engine.render(template, x="global") == "<div><b>local</b><i>global</i></div>"

    def test_runs_before_condition(self, engine: TemplateEngine) -> None:
        assert engine.render('<p tal:define="ok flag" tal:condition="ok">y</p>', flag=True) == "<p>y</p>"

    def test_keeps_raw_values(self, engine: TemplateEngine) -> None:
        template = '<ul tal:define="rows data.rows"><li tal:repeat="r in rows" tal:content="r">.</li></ul>'
        assert engine.render(template, data={"rows": [1, 2]}) == "<ul><li>1</li><li>2</li></ul>"

    def test_raw_modifier_survives_binding(self, engine: TemplateEngine) -> None:
        template = '<div tal:define="snippet html|raw"><p tal:content="snippet">.</p></div>'
        assert engine.render(template, html="<i>x</i>") == "<div><p><i>x</i></p></div>"

    def test_frames_balanced(self, engine: TemplateEngine) -> None:
        scope = engine.new_scope({"a": 1})
        root = parse_markup("<div tal:define=\"a 2\"><p tal:define=\"b 3\" tal:content=\"b\">.</p></div>").root
        engine.process(root, scope)
        assert scope.depth == 1
        assert scope.resolve("a") == 1


class TestSlotsWithoutInheritance:
    def test_slot_keeps_default_content(self, engine: TemplateEngine) -> None:
        assert engine.render('<div><p tal:slot="x">default</p></div>') == "<div><p>default</p></div>"

    def test_collect_slots(self) -> None:
        root = parse_markup(
            '<div><h1 tal:slot="title">T</h1><section tal:slot="body"><p tal:slot="inner">I</p></section>'
            '<h1 tal:slot="title">Later</h1></div>'
        ).root
        slots = collect_slots(root)
        assert set(slots) == {"title", "body"}
        assert slots["title"].children[0].value == "Later"
        assert slots["body"].attribute("tal:slot") is None


# ── Configuration, modifiers, errors ─────────────────────────────────────


class TestEngineOptions:
    def test_custom_namespace(self) -> None:
        engine = TemplateEngine(config=EngineConfig(namespace="t"))
        assert engine.render('<p t:content="name">x</p>', name="ada") == "<p>ada</p>"
        assert engine.render('<p tal:content="name">x</p>', name="ada") == '<p tal:content="name">x</p>'

    def test_keyword_case_insensitive(self, engine: TemplateEngine) -> None:
        assert engine.render('<p tal:Content="name">x</p>', name="ada") == "<p>ada</p>"

    def test_pretty(self) -> None:
        engine = TemplateEngine(config=EngineConfig(pretty=True))
        output = engine.render('<ul><li tal:repeat="x in items" tal:content="x">.</li></ul>', items=[1, 2])
        assert output == "<ul>\n  <li>1</li>\n  <li>2</li>\n</ul>"

    def test_context_and_keywords_merge(self, engine: TemplateEngine) -> None:
        template = '<p><b tal:content="a">.</b><i tal:content="b">.</i></p>'
        assert engine.render(template, {"a": 1, "b": 1}, b=2) == "<p><b>1</b><i>2</i></p>"

    def test_custom_modifiers(self) -> None:
        modifiers = ModifierRegistry()
        modifiers.register("truncate", lambda value: value[:3] + "...")

        @modifiers.register("bold", suppresses_escaping=True)
        def bold(value: str) -> str:
            return f"<b>{value}</b>"

        engine = TemplateEngine(modifiers=modifiers)
        template = '<p><span tal:content="text|truncate">.</span><span tal:content="name|bold">.</span></p>'
        assert engine.render(template, text="Lorem ipsum", name="Ada") == (
            "<p><span>Lor...</span><span><b>Ada</b></span></p>"
        )

    def test_engines_do_not_share_modifiers(self) -> None:
        first, second = TemplateEngine(), TemplateEngine()
        first.modifiers.register("reverse", lambda value: value[::-1])
        assert first.render('<p tal:content="s|reverse">.</p>', s="abc") == "<p>cba</p>"
        assert second.render('<p tal:content="s|reverse">.</p>', s="abc") == "<p>abc</p>"

    def test_process_returns_none_when_removed(self, engine: TemplateEngine) -> None:
        root = engine.parse('<p tal:condition="false">x</p>').root
        assert engine.process(root, engine.new_scope()) is None

    def test_process_returns_text_for_replace(self, engine: TemplateEngine) -> None:
        root = engine.parse('<p tal:replace="v">x</p>').root
        node = engine.process(root, engine.new_scope({"v": "hi"}))
        assert node.name == QName.TEXT
        assert node.value == "hi"


class TestErrors:
    def test_parse_error_propagates(self, engine: TemplateEngine) -> None:
        with pytest.raises(MarkupParseError):
            engine.render("<div></span>")

    def test_lenient_mode(self, caplog: pytest.LogCaptureFixture) -> None:
        engine = TemplateEngine(config=EngineConfig(lenient=True))
        with caplog.at_level(logging.WARNING, logger="taltree.engine"):
            output = engine.render("<div></span>")
        assert output.startswith("<!-- Markup parsing error: ")
        assert output.endswith("<!-- Raw content follows: -->\n<div></span>")
        assert "raw source" in caplog.text

    def test_lenient_mode_covers_base_templates(self) -> None:
        engine = TemplateEngine({"base.html": "<html></div>"}.get, config=EngineConfig(lenient=True))
        output = engine.render('<div tal:extends="base.html"/>')
        assert output.endswith('<div tal:extends="base.html"/>')

    def test_diagnostic_comment_is_well_formed(self) -> None:
        output = diagnostic(MarkupParseError("bad -- input", 3), "<x>")
        assert output == "<!-- Markup parsing error: line 3: bad - - input -->\n<!-- Raw content follows: -->\n<x>"

    def test_render_template_needs_resolver(self, engine: TemplateEngine) -> None:
        with pytest.raises(ConfigurationError, match="no resolver"):
            engine.render_template("page.html")

    def test_extends_needs_resolver(self, engine: TemplateEngine) -> None:
        with pytest.raises(ConfigurationError):
            engine.render('<div tal:extends="base.html"/>')

    def test_unknown_template(self) -> None:
        engine = TemplateEngine({}.get)
        with pytest.raises(TemplateNotFound) as excinfo:
            engine.render_template("page.html")
        assert excinfo.value.name == "page.html"

    def test_unknown_template_not_masked_by_lenient(self) -> None:
        engine = TemplateEngine({}.get, config=EngineConfig(lenient=True))
        with pytest.raises(TemplateNotFound):
            engine.render('<div tal:extends="base.html"/>')

    def test_async_resolver_rejected_by_sync_render(self) -> None:
        async def resolver(name: str) -> str:
            return "<p/>"

        engine = TemplateEngine(resolver)
        with pytest.raises(ConfigurationError, match="render_template_async"):
            engine.render_template("page.html")
