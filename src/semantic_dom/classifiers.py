# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-element classification: role, label, accessible name, intent, state, selector, ids.

Every function here is total over any element: unrecognized input falls
back to a fixed default instead of raising. Elements are lxml
``HtmlElement`` objects (tag name, attribute map, children, text).
"""

from __future__ import annotations

import lxml.html

from . import A11yInfo
from .security import escape_attribute_value, escape_css_identifier
from .vocabulary import (
    INTERACTIVE_ROLES,
    InteractionState,
    SemanticIntent,
    SemanticRole,
)

MAX_TEXT_LABEL_LENGTH = 100
MAX_ID_DESCRIPTOR_LENGTH = 32

# Text of these descendants never contributes to labels
_NON_TEXT_TAGS = frozenset({"script", "style", "noscript", "template"})

# Focusable without tabindex; <a> only with an href
_FOCUSABLE_TAGS = frozenset({"button", "input", "select", "textarea"})

_TOGGLE_ROLES = frozenset({SemanticRole.CHECKBOX, SemanticRole.RADIO})

_HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}

# ── Element access helpers ─────────────────────────────────────────────


def tag_name(el: lxml.html.HtmlElement) -> str:
    """Lowercased tag name, or "" for comments / processing instructions."""
    return el.tag.lower() if isinstance(el.tag, str) else ""


def get_attr(el: lxml.html.HtmlElement, name: str) -> str | None:
    """Attribute value with surrounding whitespace removed; empty counts as absent."""
    value = el.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def has_attr(el: lxml.html.HtmlElement, name: str) -> bool:
    """Presence check for boolean attributes (``disabled``, ``open``)."""
    return name in el.attrib


def is_hidden_input(el: lxml.html.HtmlElement) -> bool:
    """``<input type="hidden">``: never rendered, never a semantic node."""
    return tag_name(el) == "input" and (get_attr(el, "type") or "").lower() == "hidden"


def element_text(el: lxml.html.HtmlElement) -> str:
    """Descendant text with whitespace runs collapsed, skipping script-like content."""
    parts: list[str] = []
    _collect_text(el, parts)
    return " ".join("".join(parts).split())


def _collect_text(el: lxml.html.HtmlElement, parts: list[str]) -> None:
    if el.text:
        parts.append(el.text)
    for child in el:
        child_tag = tag_name(child)
        if child_tag and child_tag not in _NON_TEXT_TAGS:
            _collect_text(child, parts)
        if child.tail:
            parts.append(child.tail)


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


# ── RoleClassifier ─────────────────────────────────────────────────────

TAG_ROLES: dict[str, SemanticRole] = {
    "button": SemanticRole.BUTTON,
    "a": SemanticRole.LINK,
    "textarea": SemanticRole.TEXTBOX,
    "select": SemanticRole.LISTBOX,
    "nav": SemanticRole.NAVIGATION,
    "main": SemanticRole.MAIN,
    "header": SemanticRole.BANNER,
    "footer": SemanticRole.CONTENTINFO,
    "aside": SemanticRole.COMPLEMENTARY,
    "form": SemanticRole.FORM,
    "search": SemanticRole.SEARCH,
    "ul": SemanticRole.LIST,
    "ol": SemanticRole.LIST,
    "li": SemanticRole.LISTITEM,
    "table": SemanticRole.TABLE,
    "tr": SemanticRole.ROW,
    "td": SemanticRole.CELL,
    "th": SemanticRole.CELL,
    "img": SemanticRole.IMG,
    "video": SemanticRole.VIDEO,
    "audio": SemanticRole.AUDIO,
    "dialog": SemanticRole.DIALOG,
    "menu": SemanticRole.MENU,
    "article": SemanticRole.ARTICLE,
    **{h: SemanticRole.HEADING for h in _HEADING_TAGS},
}

INPUT_TYPE_ROLES: dict[str, SemanticRole] = {
    "checkbox": SemanticRole.CHECKBOX,
    "radio": SemanticRole.RADIO,
    "submit": SemanticRole.BUTTON,
    "button": SemanticRole.BUTTON,
    "reset": SemanticRole.BUTTON,
    "image": SemanticRole.BUTTON,
    "search": SemanticRole.SEARCHBOX,
    "number": SemanticRole.SPINBUTTON,
    "range": SemanticRole.SLIDER,
}


def classify_role(el: lxml.html.HtmlElement) -> SemanticRole:
    """Exactly one role per element: role attr > data-agent-role > tag table."""
    explicit = get_attr(el, "role")
    if explicit is not None:
        return SemanticRole.from_raw(explicit)
    agent_role = get_attr(el, "data-agent-role")
    if agent_role is not None:
        return SemanticRole.from_raw(agent_role)

    tag = tag_name(el)
    if tag == "input":
        input_type = (get_attr(el, "type") or "text").lower()
        return INPUT_TYPE_ROLES.get(input_type, SemanticRole.TEXTBOX)
    if tag == "section":
        return SemanticRole.REGION if get_attr(el, "aria-label") else SemanticRole.GENERIC
    return TAG_ROLES.get(tag, SemanticRole.GENERIC)


# ── LabelResolver ──────────────────────────────────────────────────────


def resolve_label(el: lxml.html.HtmlElement, text: str | None = None) -> str:
    """Human-readable label; first present source wins, "" when exhausted.

    Text content is used only when it is at most 100 characters; longer
    text is skipped in favor of the next source.
    """
    for name in ("aria-label", "data-agent-label", "title"):
        value = get_attr(el, name)
        if value is not None:
            return value
    if text is None:
        text = element_text(el)
    if text and len(text) <= MAX_TEXT_LABEL_LENGTH:
        return text
    for name in ("alt", "placeholder"):
        value = get_attr(el, name)
        if value is not None:
            return value
    return ""


def resolve_accessible_name(el: lxml.html.HtmlElement, text: str | None = None) -> str | None:
    """Accessible name: aria-label > title > alt (img only) > text content."""
    for name in ("aria-label", "title"):
        value = get_attr(el, name)
        if value is not None:
            return value
    if tag_name(el) == "img":
        alt = get_attr(el, "alt")
        if alt is not None:
            return alt
    if text is None:
        text = element_text(el)
    return text or None


# ── IntentInferrer ─────────────────────────────────────────────────────

# Scanned in order; the first group with a keyword in the label wins.
BUTTON_INTENT_KEYWORDS: tuple[tuple[tuple[str, ...], SemanticIntent], ...] = (
    (("submit", "send"), SemanticIntent.SUBMIT),
    (("cancel", "close"), SemanticIntent.CLOSE),
    (("delete", "remove"), SemanticIntent.DELETE),
    (("add", "create"), SemanticIntent.CREATE),
    (("save",), SemanticIntent.SUBMIT),
    (("search",), SemanticIntent.SEARCH),
)


def infer_intent(el: lxml.html.HtmlElement, role: SemanticRole, label: str) -> SemanticIntent | None:
    """Intent for interactive roles; None for everything else."""
    if role not in INTERACTIVE_ROLES:
        return None

    explicit = get_attr(el, "data-agent-intent")
    if explicit is not None:
        return SemanticIntent.from_raw(explicit)

    if role is SemanticRole.BUTTON:
        lowered = label.lower()
        for keywords, intent in BUTTON_INTENT_KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                return intent
        return SemanticIntent.ACTION

    if role is SemanticRole.LINK:
        href = (get_attr(el, "href") or "").lower()
        if href.startswith("mailto:"):
            return SemanticIntent.EMAIL
        if href.startswith("tel:"):
            return SemanticIntent.PHONE
        return None

    if role in (SemanticRole.CHECKBOX, SemanticRole.RADIO):
        return SemanticIntent.TOGGLE
    if role in (SemanticRole.LISTBOX, SemanticRole.COMBOBOX):
        return SemanticIntent.SELECT
    return None


# ── State, selector, a11y ──────────────────────────────────────────────

_EXPANDED_STATES = {"true": InteractionState.EXPANDED, "false": InteractionState.COLLAPSED}
_CHECKED_STATES = {
    "true": InteractionState.CHECKED,
    "false": InteractionState.UNCHECKED,
    "mixed": InteractionState.MIXED,
}


def is_disabled(el: lxml.html.HtmlElement) -> bool:
    return has_attr(el, "disabled") or (get_attr(el, "aria-disabled") or "").lower() == "true"


def infer_state(el: lxml.html.HtmlElement) -> InteractionState:
    """Current interaction state from attributes, checked in fixed priority order."""
    if is_disabled(el):
        return InteractionState.DISABLED

    expanded = _EXPANDED_STATES.get((get_attr(el, "aria-expanded") or "").lower())
    if expanded is not None:
        return expanded

    if (get_attr(el, "aria-selected") or "").lower() == "true":
        return InteractionState.SELECTED

    checked = _CHECKED_STATES.get((get_attr(el, "aria-checked") or "").lower())
    if checked is not None:
        return checked

    if (get_attr(el, "aria-hidden") or "").lower() == "true":
        return InteractionState.HIDDEN
    if has_attr(el, "open"):
        return InteractionState.OPEN

    # Native checkbox/radio without ARIA state: the checked attribute decides
    if classify_role(el) in _TOGGLE_ROLES:
        return InteractionState.CHECKED if has_attr(el, "checked") else InteractionState.UNCHECKED
    return InteractionState.IDLE


def build_selector(el: lxml.html.HtmlElement) -> str:
    """Selector for re-targeting: #id > [data-agent-id="..."] > tag.class > tag."""
    tag = tag_name(el)
    html_id = get_attr(el, "id")
    if html_id is not None:
        return "#" + escape_css_identifier(html_id)
    agent_id = get_attr(el, "data-agent-id")
    if agent_id is not None:
        return f'[data-agent-id="{escape_attribute_value(agent_id)}"]'
    classes = (get_attr(el, "class") or "").split()
    if classes:
        return f"{tag}.{escape_css_identifier(classes[0])}"
    return tag


def heading_level(el: lxml.html.HtmlElement) -> int | None:
    level = _HEADING_TAGS.get(tag_name(el))
    if level is not None:
        return level
    aria_level = _parse_int(get_attr(el, "aria-level"))
    if aria_level is not None and aria_level > 0:
        return aria_level
    return None


def is_natively_focusable(el: lxml.html.HtmlElement) -> bool:
    tag = tag_name(el)
    if tag == "a":
        return has_attr(el, "href")
    return tag in _FOCUSABLE_TAGS and not is_hidden_input(el)


def build_a11y(el: lxml.html.HtmlElement, text: str | None = None) -> A11yInfo:
    tabindex = _parse_int(get_attr(el, "tabindex"))
    focusable = (is_natively_focusable(el) and not is_disabled(el)) or (tabindex is not None and tabindex >= 0)
    return A11yInfo(
        name=resolve_accessible_name(el, text),
        focusable=focusable,
        in_tab_order=focusable and (tabindex is None or tabindex >= 0),
        level=heading_level(el),
    )


# ── IdAllocator ────────────────────────────────────────────────────────

ROLE_ID_PREFIXES: dict[SemanticRole, str] = {
    SemanticRole.BUTTON: "btn",
    SemanticRole.LINK: "link",
    SemanticRole.TEXTBOX: "input",
    SemanticRole.SEARCHBOX: "search",
    SemanticRole.NAVIGATION: "nav",
    SemanticRole.MAIN: "main",
    SemanticRole.BANNER: "header",
    SemanticRole.CONTENTINFO: "footer",
    SemanticRole.COMPLEMENTARY: "aside",
    SemanticRole.FORM: "form",
    SemanticRole.SEARCH: "search",
    SemanticRole.CHECKBOX: "chk",
    SemanticRole.RADIO: "radio",
    SemanticRole.LISTBOX: "select",
    SemanticRole.COMBOBOX: "select",
    SemanticRole.MENU: "menu",
    SemanticRole.MENUITEM: "item",
    SemanticRole.TAB: "tab",
    SemanticRole.TABPANEL: "panel",
    SemanticRole.DIALOG: "dialog",
    SemanticRole.ALERT: "alert",
    SemanticRole.IMG: "img",
    SemanticRole.HEADING: "h",
    SemanticRole.LIST: "list",
    SemanticRole.LISTITEM: "li",
    SemanticRole.TABLE: "table",
    SemanticRole.ROW: "row",
    SemanticRole.CELL: "cell",
    SemanticRole.GENERIC: "el",
}


def role_prefix(role: SemanticRole) -> str:
    return ROLE_ID_PREFIXES.get(role, role.value[:4])


def sanitize_id_label(label: str) -> str:
    """lowercase → non-alphanumerics to "-" → trim "-" → 32 chars → "unnamed" if empty."""
    lowered = label.lower()
    replaced = "".join(ch if ch.isalnum() else "-" for ch in lowered)
    descriptor = replaced.strip("-")[:MAX_ID_DESCRIPTOR_LENGTH]
    return descriptor or "unnamed"


def generate_base_id(role: SemanticRole, label: str) -> str:
    return f"{role_prefix(role)}-{sanitize_id_label(label)}"


class IdAllocator:
    """Hands out ids unique within one parse call.

    Priority: data-agent-id > native id > ``{role-prefix}-{label}``. The
    second and later uses of the same base get ``-2``, ``-3``, ... suffixes.
    Create a fresh allocator per call; counters must not outlive it.
    """

    __slots__ = ("_counters", "_used")

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}
        self._used: set[str] = set()

    def allocate(self, el: lxml.html.HtmlElement, role: SemanticRole, label: str) -> str:
        base = get_attr(el, "data-agent-id") or get_attr(el, "id") or generate_base_id(role, label)
        return self.claim(base)

    def claim(self, base: str) -> str:
        count = self._counters.get(base, 0) + 1
        candidate = base if count == 1 else f"{base}-{count}"
        while candidate in self._used:
            count += 1
            candidate = f"{base}-{count}"
        self._counters[base] = count
        self._used.add(candidate)
        return candidate

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._used

    def __len__(self) -> int:
        return len(self._used)
