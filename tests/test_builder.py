# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the markup → SemanticDocument pipeline."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from semantic_dom import STANDARD, VERSION
from semantic_dom.builder import (
    SemanticTreeBuilder,
    build_document,
    find_body,
    is_semantic,
    parse_markup,
)
from semantic_dom.config import ParserConfig
from semantic_dom.errors import InputTooLargeError, MissingRootContainerError
from semantic_dom.serializer import to_json
from semantic_dom.vocabulary import InteractionState, SemanticIntent, SemanticRole


def _build(html: str, **config_kwargs):
    return build_document(html, config=ParserConfig(**config_kwargs))


class TestEndToEnd:
    def test_nav_main_button_example(self, example_doc):
        doc = example_doc
        assert doc.title == "Example"
        assert doc.language == "en"
        assert doc.url == "https://example.com"
        assert doc.version == VERSION
        assert doc.standard == STANDARD

        assert doc.root.role is SemanticRole.GENERIC
        assert doc.root.tag == "body"
        assert doc.landmarks == ("nav-main", "main-submit")
        assert doc.interactables == ("link-home", "btn-submit")
        assert doc.headings == ()

        button = doc.query("btn-submit")
        assert button is not None
        assert button.role is SemanticRole.BUTTON
        assert button.intent is SemanticIntent.SUBMIT
        assert button.label == "Submit"
        assert button.depth == 2

        link = doc.query("link-home")
        assert link.href == "/home"
        assert link.intent is None
        assert doc.tree.parent_of(link).id == "nav-main"

    def test_navigate_by_role_and_id(self, example_doc):
        assert example_doc.navigate("main").id == "main-submit"
        assert example_doc.navigate("NAVIGATION").id == "nav-main"
        assert example_doc.navigate("nav-main").id == "nav-main"
        assert example_doc.navigate("contentinfo") is None

    def test_query_unknown_id(self, example_doc):
        assert example_doc.query("btn-missing") is None

    def test_certification_and_state_graph_attached(self, example_doc):
        assert example_doc.certification is not None
        assert example_doc.state_graph is not None
        nav = example_doc.state_graph.navigation
        assert [s.id for s in nav.states] == ["initial", "state__home"]

    def test_timings_recorded_per_stage(self, example_doc):
        assert list(example_doc.timings) == ["parse", "tree", "state_graph", "certification"]
        assert all(ms >= 0 for ms in example_doc.timings.values())

    def test_generated_at_is_epoch_millis(self, example_doc):
        assert example_doc.generated_at > 1_600_000_000_000


class TestRichDocument:
    def test_metadata(self, rich_doc):
        assert rich_doc.title == "Shop Checkout"
        assert rich_doc.language == "de"

    def test_landmarks_in_document_order(self, rich_doc):
        roles = [n.role for n in rich_doc.tree.landmark_nodes()]
        assert roles == [
            SemanticRole.BANNER,
            SemanticRole.NAVIGATION,
            SemanticRole.MAIN,
            SemanticRole.FORM,
            SemanticRole.CONTENTINFO,
        ]

    def test_headings_with_levels(self, rich_doc):
        assert rich_doc.headings == ("h-checkout", "h-shipping")
        assert [h.a11y.level for h in rich_doc.tree.heading_nodes()] == [1, 2]

    def test_dangerous_link_kept_without_href(self, rich_doc):
        evil = rich_doc.query("link-evil")
        assert evil is not None
        assert evil.href is None

    def test_mailto_link_intent(self, rich_doc):
        node = rich_doc.query("link-email-us")
        assert node.intent is SemanticIntent.EMAIL
        assert node.href == "mailto:help@example.com"

    def test_native_and_agent_ids(self, rich_doc):
        assert rich_doc.query("name").role is SemanticRole.TEXTBOX
        assert rich_doc.query("name").label == "Full name"
        helper = rich_doc.query("help")
        assert helper.state is InteractionState.COLLAPSED
        assert helper.selector == '[data-agent-id="help"]'

    def test_disabled_button_not_interactable(self, rich_doc):
        cancel = rich_doc.query("btn-cancel")
        assert cancel.state is InteractionState.DISABLED
        assert cancel.intent is SemanticIntent.CLOSE
        assert "btn-cancel" not in rich_doc.interactables

    def test_checkbox_state(self, rich_doc):
        chk = rich_doc.query("chk-gift-wrap")
        assert chk.state is InteractionState.UNCHECKED
        assert chk.intent is SemanticIntent.TOGGLE

    def test_interactables_are_focusable(self, rich_doc):
        assert len(rich_doc.interactables) == 11
        assert all(n.a11y.focusable for n in rich_doc.tree.interactable_nodes())

    def test_excluded_tags_skipped(self, rich_doc):
        assert all(n.tag not in ("script", "style") for n in rich_doc.tree.walk())

    def test_index_agrees_with_tree(self, rich_doc):
        assert rich_doc.tree.verify() == []
        for node in rich_doc.tree.walk():
            assert rich_doc.query(node.id) is node


class TestIdAllocation:
    def test_identical_labels_get_suffixes(self):
        doc = _build("<html><body>" + "<button>Go</button>" * 4 + "</body></html>")
        ids = [n.id for n in doc.tree.children_of(doc.root)]
        assert ids == ["btn-go", "btn-go-2", "btn-go-3", "btn-go-4"]

    def test_counters_do_not_leak_between_calls(self):
        html = "<html><body><button>Go</button></body></html>"
        first = _build(html)
        second = _build(html)
        assert first.query("btn-go") is not None
        assert second.query("btn-go") is not None
        assert second.query("btn-go-2") is None

    def test_unlabeled_gets_unnamed(self):
        doc = _build("<html><body><button></button></body></html>")
        assert doc.tree.children_of(doc.root)[0].id == "btn-unnamed"


class TestTraversal:
    def test_hoists_through_one_transparent_level(self):
        doc = _build("<html><body><div><button>X</button></div></body></html>")
        assert doc.query("btn-x") is not None
        assert doc.query("btn-x").parent == doc.root.handle

    def test_does_not_hoist_through_two_levels(self):
        doc = _build("<html><body><div><div><button>X</button></div></div></body></html>")
        assert doc.query("btn-x") is None
        assert doc.node_count == 1

    def test_semantic_attribute_makes_div_semantic(self):
        doc = _build('<html><body><div role="dialog" aria-label="Login"></div></body></html>')
        node = doc.query("dialog-login")
        assert node.role is SemanticRole.DIALOG

    def test_max_depth_drops_deeper_nodes(self):
        html = '<html><body><nav aria-label="Main"><a href="/x">X</a></nav></body></html>'
        doc = _build(html, max_depth=1)
        assert doc.query("nav-main") is not None
        assert doc.query("link-x") is None
        assert doc.tree.verify() == []

    def test_max_depth_zero_keeps_root_only(self):
        doc = _build("<html><body><main><button>A</button></main></body></html>", max_depth=0)
        assert doc.node_count == 1

    def test_custom_exclude_tags(self):
        html = "<html><body><form aria-label='F'><button>A</button></form></body></html>"
        doc = _build(html, exclude_tags=frozenset({"form"}))
        assert doc.query("btn-a") is None

    def test_is_semantic(self):
        body = find_body(parse_markup("<html><body><div>x</div><span aria-label='s'>y</span></body></html>"))
        div, span = list(body)
        assert not is_semantic(div)
        assert is_semantic(span)

    def test_builder_usable_directly(self):
        body = find_body(parse_markup("<html><body><main></main></body></html>"))
        tree = SemanticTreeBuilder().build(body)
        assert len(tree) == 2
        assert tree.landmarks == (tree.nodes[1].id,)


class TestOptions:
    def test_state_graph_disabled(self, example_html):
        doc = _build(example_html, include_state_graph=False)
        assert doc.state_graph is None
        assert doc.certification is not None
        nav_checks = {c.id: c for c in doc.certification.checks if c.id in ("NAV-002", "NAV-003")}
        assert all(c.passed for c in nav_checks.values())

    def test_validation_disabled(self, example_html):
        doc = _build(example_html, validate=False)
        assert doc.certification is None
        assert "certification" not in doc.timings


class TestFailures:
    def test_input_too_large(self):
        with pytest.raises(InputTooLargeError) as exc_info:
            _build("<html><body>" + "x" * 100 + "</body></html>", max_input_size=50)
        assert exc_info.value.max_size == 50
        assert exc_info.value.actual_size > 50

    def test_size_measured_in_utf8_bytes(self):
        html = "<html><body>" + "é" * 20 + "</body></html>"
        limit = len(html) + 5  # fits in chars, not in bytes
        with pytest.raises(InputTooLargeError):
            _build(html, max_input_size=limit)

    @pytest.mark.parametrize("markup", ["", "   \n\t "])
    def test_empty_input_has_no_root(self, markup):
        with pytest.raises(MissingRootContainerError):
            build_document(markup)

    def test_fragment_gets_implied_body(self):
        doc = build_document("<button>Only</button>")
        assert doc.query("btn-only") is not None

    def test_bytes_input(self):
        doc = build_document(b"<html><body><main></main></body></html>")
        assert doc.node_count == 2


# ── Properties ───────────────────────────────────────────────────────

_labels = st.sampled_from(["Go", "Save", "Home", "Open menu", "", "Delete item", "Go"])
_elements = st.one_of(
    _labels.map(lambda t: f"<button>{t}</button>"),
    _labels.map(lambda t: f'<a href="/{t.replace(" ", "-")}">{t}</a>'),
    _labels.map(lambda t: f'<nav aria-label="{t}"><a href="#x">{t}</a></nav>'),
    _labels.map(lambda t: f"<div><input aria-label='{t}'></div>"),
    _labels.map(lambda t: f"<section aria-label='{t}'><h2>{t}</h2></section>"),
)
_pages = st.lists(_elements, min_size=0, max_size=25).map(lambda parts: "<html><body>" + "".join(parts) + "</body></html>")


class TestProperties:
    @given(_pages)
    @settings(max_examples=60, deadline=None)
    def test_ids_unique_and_index_consistent(self, html):
        doc = build_document(html)
        ids = [n.id for n in doc.tree.walk()]
        assert len(ids) == len(set(ids)) == doc.node_count
        assert doc.tree.verify() == []
        for node_id in (*doc.landmarks, *doc.interactables, *doc.headings):
            assert doc.query(node_id) is not None

    @given(_pages)
    @settings(max_examples=40, deadline=None)
    def test_build_is_deterministic(self, html):
        first = build_document(html)
        second = build_document(html)
        assert [n.id for n in first.tree.walk()] == [n.id for n in second.tree.walk()]
        # generated_at is the only field that can differ
        assert to_json(first).split('"root"')[1] == to_json(second).split('"root"')[1]

    @given(_pages)
    @settings(max_examples=40, deadline=None)
    def test_parent_precedes_children(self, html):
        doc = build_document(html)
        for node in doc.tree.walk():
            for child in node.children:
                assert child > node.handle
                assert doc.tree.node(child).depth == node.depth + 1


class TestNonRenderedControls:
    LOGIN_HTML = """\
<html><body><main>
  <form aria-label="Login">
    <input type="hidden" name="csrf" value="t0k3n">
    <input type="email" aria-label="Email">
    <button type="submit">Log in</button>
  </form>
  <a name="top">Top</a>
</main></body></html>
"""

    def test_hidden_input_is_not_a_node(self):
        doc = _build(self.LOGIN_HTML)
        textboxes = [n for n in doc.tree.nodes if n.role is SemanticRole.TEXTBOX]
        assert [n.id for n in textboxes] == ["input-email"]
        assert doc.interactables == ("input-email", "btn-log-in")

    def test_anchor_without_href_is_not_interactable(self):
        doc = _build(self.LOGIN_HTML)
        anchor = doc.query("link-top")
        assert anchor is not None
        assert anchor.a11y.focusable is False
        assert "link-top" not in doc.interactables

    def test_login_form_passes_name_and_label_checks(self):
        doc = _build(self.LOGIN_HTML)
        checks = {c.id: c for c in doc.certification.checks}
        assert checks["A11Y-001"].passed
        assert checks["A11Y-004"].passed

    def test_hidden_input_not_hoisted(self):
        doc = _build('<html><body><div><input type="hidden" name="csrf"></div></body></html>')
        assert doc.node_count == 1
        assert doc.interactables == ()
