# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for per-element classification and id allocation."""

from __future__ import annotations

import lxml.html
import pytest

from semantic_dom.classifiers import (
    IdAllocator,
    build_a11y,
    build_selector,
    classify_role,
    element_text,
    generate_base_id,
    heading_level,
    infer_intent,
    infer_state,
    is_hidden_input,
    resolve_accessible_name,
    resolve_label,
    sanitize_id_label,
)
from semantic_dom.vocabulary import InteractionState, SemanticIntent, SemanticRole


def el(markup: str) -> lxml.html.HtmlElement:
    return lxml.html.fragment_fromstring(markup)


class TestClassifyRole:
    @pytest.mark.parametrize(
        "markup,expected",
        [
            ("<button>x</button>", SemanticRole.BUTTON),
            ("<a href='/'>x</a>", SemanticRole.LINK),
            ("<nav></nav>", SemanticRole.NAVIGATION),
            ("<header></header>", SemanticRole.BANNER),
            ("<footer></footer>", SemanticRole.CONTENTINFO),
            ("<aside></aside>", SemanticRole.COMPLEMENTARY),
            ("<h3>x</h3>", SemanticRole.HEADING),
            ("<input>", SemanticRole.TEXTBOX),
            ("<input type='checkbox'>", SemanticRole.CHECKBOX),
            ("<input type='submit'>", SemanticRole.BUTTON),
            ("<input type='search'>", SemanticRole.SEARCHBOX),
            ("<input type='range'>", SemanticRole.SLIDER),
            ("<input type='email'>", SemanticRole.TEXTBOX),
            ("<textarea></textarea>", SemanticRole.TEXTBOX),
            ("<select></select>", SemanticRole.LISTBOX),
            ("<section></section>", SemanticRole.GENERIC),
            ("<section aria-label='News'></section>", SemanticRole.REGION),
            ("<div></div>", SemanticRole.GENERIC),
            ("<span></span>", SemanticRole.GENERIC),
        ],
    )
    def test_tag_defaults(self, markup, expected):
        assert classify_role(el(markup)) is expected

    def test_role_attribute_wins(self):
        assert classify_role(el("<div role='button'>x</div>")) is SemanticRole.BUTTON
        assert classify_role(el("<a role='tab' href='#'>x</a>")) is SemanticRole.TAB

    def test_role_attribute_over_agent_role(self):
        node = el("<div role='menu' data-agent-role='button'></div>")
        assert classify_role(node) is SemanticRole.MENU

    def test_agent_role_used_without_role(self):
        assert classify_role(el("<div data-agent-role='nav'></div>")) is SemanticRole.NAVIGATION

    def test_unrecognized_role_is_unknown(self):
        assert classify_role(el("<div role='banana'></div>")) is SemanticRole.UNKNOWN


class TestLabels:
    def test_priority_order(self):
        node = el("<button aria-label='A' data-agent-label='B' title='C'>D</button>")
        assert resolve_label(node) == "A"
        node = el("<button data-agent-label='B' title='C'>D</button>")
        assert resolve_label(node) == "B"
        node = el("<button title='C'>D</button>")
        assert resolve_label(node) == "C"
        assert resolve_label(el("<button>D</button>")) == "D"
        assert resolve_label(el("<img alt='E'>")) == "E"
        assert resolve_label(el("<input placeholder='F'>")) == "F"
        assert resolve_label(el("<div></div>")) == ""

    def test_long_text_skipped(self):
        node = el(f"<p title=''>{'word ' * 30}</p>")
        assert resolve_label(node) == ""
        node = el(f"<img alt='Short' data-x='{'y' * 5}'>")
        assert resolve_label(node) == "Short"

    def test_text_at_limit_is_used(self):
        text = "a" * 100
        assert resolve_label(el(f"<span>{text}</span>")) == text

    def test_whitespace_collapsed(self):
        assert resolve_label(el("<button>  Add \n\t to   cart </button>")) == "Add to cart"

    def test_script_text_ignored(self):
        assert element_text(el("<div>Hi<script>evil()</script> there</div>")) == "Hi there"

    def test_accessible_name(self):
        assert resolve_accessible_name(el("<button title='T'>x</button>")) == "T"
        assert resolve_accessible_name(el("<img alt='Logo'>")) == "Logo"
        assert resolve_accessible_name(el("<input alt='nope'>")) is None
        assert resolve_accessible_name(el("<a href='/'>Home</a>")) == "Home"
        assert resolve_accessible_name(el("<div></div>")) is None


class TestIntent:
    @pytest.mark.parametrize(
        "label,expected",
        [
            ("Submit form", SemanticIntent.SUBMIT),
            ("Send", SemanticIntent.SUBMIT),
            ("Cancel", SemanticIntent.CLOSE),
            ("Close dialog", SemanticIntent.CLOSE),
            ("Remove item", SemanticIntent.DELETE),
            ("Add to cart", SemanticIntent.CREATE),
            ("Save", SemanticIntent.SUBMIT),
            ("Search", SemanticIntent.SEARCH),
            ("Continue", SemanticIntent.ACTION),
        ],
    )
    def test_button_keywords(self, label, expected):
        assert infer_intent(el("<button></button>"), SemanticRole.BUTTON, label) is expected

    def test_first_keyword_group_wins(self):
        # "submit" is checked before "cancel"
        assert infer_intent(el("<button></button>"), SemanticRole.BUTTON, "Cancel or submit") is SemanticIntent.SUBMIT

    def test_explicit_agent_intent(self):
        node = el("<button data-agent-intent='download'>Get</button>")
        assert infer_intent(node, SemanticRole.BUTTON, "Get") is SemanticIntent.DOWNLOAD
        node = el("<button data-agent-intent='teleport'>Go</button>")
        assert infer_intent(node, SemanticRole.BUTTON, "Go") is SemanticIntent.UNKNOWN

    def test_links(self):
        assert infer_intent(el("<a href='mailto:a@b.c'>x</a>"), SemanticRole.LINK, "x") is SemanticIntent.EMAIL
        assert infer_intent(el("<a href='tel:+100'>x</a>"), SemanticRole.LINK, "x") is SemanticIntent.PHONE
        assert infer_intent(el("<a href='/about'>x</a>"), SemanticRole.LINK, "x") is None

    def test_toggle_and_select(self):
        assert infer_intent(el("<input type='radio'>"), SemanticRole.RADIO, "") is SemanticIntent.TOGGLE
        assert infer_intent(el("<select></select>"), SemanticRole.LISTBOX, "") is SemanticIntent.SELECT

    def test_non_interactive_has_no_intent(self):
        node = el("<nav data-agent-intent='navigate'></nav>")
        assert infer_intent(node, SemanticRole.NAVIGATION, "") is None


class TestState:
    @pytest.mark.parametrize(
        "markup,expected",
        [
            ("<button disabled aria-expanded='true'>x</button>", InteractionState.DISABLED),
            ("<button aria-disabled='true'>x</button>", InteractionState.DISABLED),
            ("<button aria-expanded='true'>x</button>", InteractionState.EXPANDED),
            ("<button aria-expanded='false'>x</button>", InteractionState.COLLAPSED),
            ("<div role='tab' aria-selected='true'></div>", InteractionState.SELECTED),
            ("<div role='checkbox' aria-checked='true'></div>", InteractionState.CHECKED),
            ("<div role='checkbox' aria-checked='false'></div>", InteractionState.UNCHECKED),
            ("<div role='checkbox' aria-checked='mixed'></div>", InteractionState.MIXED),
            ("<div aria-hidden='true'></div>", InteractionState.HIDDEN),
            ("<dialog open></dialog>", InteractionState.OPEN),
            ("<input type='checkbox'>", InteractionState.UNCHECKED),
            ("<input type='checkbox' checked>", InteractionState.CHECKED),
            ("<input type='radio'>", InteractionState.UNCHECKED),
            ("<input type='checkbox' checked aria-checked='mixed'>", InteractionState.MIXED),
            ("<button>x</button>", InteractionState.IDLE),
        ],
    )
    def test_priority(self, markup, expected):
        assert infer_state(el(markup)) is expected


class TestSelectorAndA11y:
    def test_selector_priority(self):
        assert build_selector(el("<div id='main' class='c'></div>")) == "#main"
        assert build_selector(el("<div data-agent-id='x' class='c'></div>")) == '[data-agent-id="x"]'
        assert build_selector(el("<div class='card big'></div>")) == "div.card"
        assert build_selector(el("<span></span>")) == "span"

    def test_selector_escapes(self):
        assert build_selector(el("<div id='1st'></div>")) == "#\\31 st"
        assert build_selector(el("<div data-agent-id='a\"b'></div>")) == '[data-agent-id="a\\"b"]'

    def test_focusability(self):
        assert build_a11y(el("<button>x</button>")).focusable
        assert not build_a11y(el("<button disabled>x</button>")).focusable
        assert not build_a11y(el("<div>x</div>")).focusable
        info = build_a11y(el("<div tabindex='0'>x</div>"))
        assert info.focusable and info.in_tab_order
        assert not build_a11y(el("<div tabindex='-1'>x</div>")).focusable

    def test_anchor_focusable_only_with_href(self):
        assert build_a11y(el("<a href='/'>x</a>")).focusable
        assert not build_a11y(el("<a name='top'>Top</a>")).focusable
        assert build_a11y(el("<a name='top' tabindex='0'>Top</a>")).focusable

    def test_hidden_input_not_focusable(self):
        assert not build_a11y(el("<input type='hidden' name='csrf'>")).focusable
        assert build_a11y(el("<input type='text'>")).focusable
        assert is_hidden_input(el("<input type='HIDDEN'>"))
        assert not is_hidden_input(el("<input>"))

    def test_focusable_tag_removed_from_tab_order(self):
        info = build_a11y(el("<a href='/' tabindex='-1'>x</a>"))
        assert info.focusable
        assert not info.in_tab_order

    def test_heading_level(self):
        assert heading_level(el("<h4>x</h4>")) == 4
        assert heading_level(el("<div role='heading' aria-level='3'></div>")) == 3
        assert heading_level(el("<div aria-level='zero'></div>")) is None


class TestIds:
    @pytest.mark.parametrize(
        "label,expected",
        [
            ("Add to Cart!", "add-to-cart"),
            ("  --Hello--  ", "hello"),
            ("", "unnamed"),
            ("!!!", "unnamed"),
            ("x" * 40, "x" * 32),
        ],
    )
    def test_sanitize_id_label(self, label, expected):
        assert sanitize_id_label(label) == expected

    def test_base_id_uses_role_prefix(self):
        assert generate_base_id(SemanticRole.BUTTON, "Buy now") == "btn-buy-now"
        assert generate_base_id(SemanticRole.CHECKBOX, "Agree") == "chk-agree"
        assert generate_base_id(SemanticRole.VIDEO, "Intro") == "vide-intro"

    def test_allocator_priority_and_suffixes(self):
        ids = IdAllocator()
        assert ids.allocate(el("<button data-agent-id='buy' id='b'>x</button>"), SemanticRole.BUTTON, "x") == "buy"
        assert ids.allocate(el("<button id='b'>x</button>"), SemanticRole.BUTTON, "x") == "b"
        assert ids.allocate(el("<button>x</button>"), SemanticRole.BUTTON, "x") == "btn-x"
        assert ids.allocate(el("<button>x</button>"), SemanticRole.BUTTON, "x") == "btn-x-2"
        assert "btn-x-2" in ids
        assert len(ids) == 4

    def test_claim_skips_taken_suffix(self):
        ids = IdAllocator()
        assert ids.claim("go-2") == "go-2"
        assert ids.claim("go") == "go"
        assert ids.claim("go") == "go-3"
