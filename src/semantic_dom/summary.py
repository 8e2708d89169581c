# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Short textual summaries for agents, navigation and screen readers.

Built only from the precomputed landmark / interactable lists and the
navigation graph; nothing here re-walks the tree. Every truncation limit
is a module constant, so output is deterministic for a given document.

    to_one_liner      Example | 2L 3A | nav,main | btn:Submit,lnk:Home
    to_agent_summary  PAGE / LANDMARKS / ACTIONS / STATE / STATS lines
    to_nav_summary    NAVIGATION links + TRANSITIONS
    to_audio_summary  prose for text-to-speech
"""

from __future__ import annotations

from dataclasses import dataclass

from . import SemanticDocument
from .serializer import to_json
from .toon import estimate_tokens, serialize_document
from .vocabulary import SemanticIntent, SemanticRole

ONE_LINER_TITLE_MAX = 30
ONE_LINER_MAX_LANDMARKS = 3
ONE_LINER_MAX_ACTIONS = 3
ONE_LINER_LABEL_MAX = 10
AGENT_MAX_ACTIONS = 10
AGENT_LABEL_MAX = 20
AGENT_MAX_STATES = 5
SELECTOR_MAX = 20
NAV_MAX_LINKS = 10
NAV_MAX_TRANSITIONS = 5
AUDIO_MAX_ACTIONS = 5

ELLIPSIS = "..."
UNTITLED = "Untitled"

ROLE_ABBREV: dict[SemanticRole, str] = {
    SemanticRole.NAVIGATION: "nav",
    SemanticRole.MAIN: "main",
    SemanticRole.BANNER: "header",
    SemanticRole.CONTENTINFO: "footer",
    SemanticRole.COMPLEMENTARY: "aside",
    SemanticRole.ARTICLE: "article",
    SemanticRole.REGION: "section",
    SemanticRole.SEARCH: "search",
    SemanticRole.FORM: "form",
    SemanticRole.BUTTON: "btn",
    SemanticRole.LINK: "link",
    SemanticRole.TEXTBOX: "input",
    SemanticRole.SEARCHBOX: "input",
    SemanticRole.CHECKBOX: "check",
    SemanticRole.RADIO: "radio",
    SemanticRole.LISTBOX: "select",
    SemanticRole.COMBOBOX: "select",
    SemanticRole.HEADING: "h",
    SemanticRole.LIST: "list",
    SemanticRole.LISTITEM: "li",
    SemanticRole.TABLE: "table",
    SemanticRole.IMG: "img",
    SemanticRole.VIDEO: "video",
    SemanticRole.AUDIO: "audio",
    SemanticRole.DIALOG: "dialog",
    SemanticRole.ALERT: "alert",
    SemanticRole.MENU: "menu",
    SemanticRole.TAB: "tab",
    SemanticRole.TABPANEL: "tabpanel",
    SemanticRole.GENERIC: "div",
    SemanticRole.UNKNOWN: "?",
}

ROLE_SHORT: dict[SemanticRole, str] = {
    SemanticRole.NAVIGATION: "nav",
    SemanticRole.MAIN: "main",
    SemanticRole.BANNER: "hdr",
    SemanticRole.CONTENTINFO: "ftr",
    SemanticRole.BUTTON: "btn",
    SemanticRole.LINK: "lnk",
    SemanticRole.TEXTBOX: "inp",
    SemanticRole.SEARCHBOX: "inp",
}

INTENT_ABBREV: dict[SemanticIntent, str] = {
    SemanticIntent.NAVIGATE: "nav",
    SemanticIntent.SUBMIT: "sub",
    SemanticIntent.ACTION: "act",
    SemanticIntent.TOGGLE: "tog",
    SemanticIntent.SELECT: "sel",
    SemanticIntent.INPUT: "inp",
    SemanticIntent.SEARCH: "srch",
    SemanticIntent.PLAY: "play",
    SemanticIntent.PAUSE: "pause",
    SemanticIntent.OPEN: "open",
    SemanticIntent.CLOSE: "close",
    SemanticIntent.EXPAND: "exp",
    SemanticIntent.COLLAPSE: "col",
    SemanticIntent.DOWNLOAD: "dl",
    SemanticIntent.DELETE: "del",
    SemanticIntent.EDIT: "edit",
    SemanticIntent.CREATE: "new",
    SemanticIntent.EMAIL: "mail",
    SemanticIntent.PHONE: "tel",
    SemanticIntent.UNKNOWN: "?",
}


def truncate(text: str, max_len: int) -> str:
    """Cut to *max_len* characters, ending in "..." when shortened."""
    if len(text) <= max_len:
        return text
    return text[: max_len - len(ELLIPSIS)] + ELLIPSIS


def role_abbrev(role: SemanticRole) -> str:
    return ROLE_ABBREV.get(role, role.value[:4])


def role_short(role: SemanticRole) -> str:
    return ROLE_SHORT.get(role, "el")


def intent_abbrev(intent: SemanticIntent | None) -> str:
    return "act" if intent is None else INTENT_ABBREV[intent]


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def to_one_liner(doc: SemanticDocument) -> str:
    landmarks = [role_short(n.role) for n in doc.tree.landmark_nodes()[:ONE_LINER_MAX_LANDMARKS]]
    actions = [
        f"{role_short(n.role)}:{truncate(n.label, ONE_LINER_LABEL_MAX)}"
        for n in doc.tree.interactable_nodes()[:ONE_LINER_MAX_ACTIONS]
    ]
    return (
        f"{truncate(doc.title or UNTITLED, ONE_LINER_TITLE_MAX)} | "
        f"{len(doc.landmarks)}L {len(doc.interactables)}A | "
        f"{','.join(landmarks)} | {','.join(actions)}"
    )


def to_agent_summary(doc: SemanticDocument) -> str:
    lines: list[str] = []
    if doc.title:
        lines.append(f"PAGE: {doc.title}")

    landmarks = [f"{role_abbrev(n.role)}({truncate(n.selector, SELECTOR_MAX)})" for n in doc.tree.landmark_nodes()]
    if landmarks:
        lines.append(f"LANDMARKS: {', '.join(landmarks)}")

    actions = [
        f"[{intent_abbrev(n.intent)}]{truncate(n.label, AGENT_LABEL_MAX)}"
        for n in doc.tree.interactable_nodes()[:AGENT_MAX_ACTIONS]
    ]
    if actions:
        lines.append(f"ACTIONS: {', '.join(actions)}")

    if doc.state_graph is not None and doc.state_graph.navigation.states:
        nav = doc.state_graph.navigation
        names = [s.name for s in nav.states[:AGENT_MAX_STATES]]
        lines.append(f"STATE: {nav.initial_state or 'none'} -> {', '.join(names)}")

    lines.append(f"STATS: {len(doc.landmarks)}L {len(doc.interactables)}A {len(doc.headings)}H")
    return "\n".join(lines)


def to_nav_summary(doc: SemanticDocument) -> str:
    lines: list[str] = []
    links = [n for n in doc.tree.interactable_nodes() if n.role is SemanticRole.LINK and n.href]
    if links:
        lines.append("NAVIGATION:")
        lines.extend(f"  {n.label} -> {n.href}" for n in links[:NAV_MAX_LINKS])

    if doc.state_graph is not None and doc.state_graph.navigation.transitions:
        lines.append("TRANSITIONS:")
        lines.extend(
            f"  {t.from_state} -[{t.trigger}]-> {t.to_state}"
            for t in doc.state_graph.navigation.transitions[:NAV_MAX_TRANSITIONS]
        )
    return "\n".join(lines)


def to_audio_summary(doc: SemanticDocument) -> str:
    parts: list[str] = []
    if doc.title:
        parts.append(f"Page: {doc.title}")
    if doc.landmarks:
        parts.append(_plural(len(doc.landmarks), "landmark region"))
    if doc.interactables:
        parts.append(_plural(len(doc.interactables), "interactive element"))

    named = [
        n.label
        for n in doc.tree.interactable_nodes()
        if n.intent is not None and n.intent is not SemanticIntent.UNKNOWN and n.label
    ]
    if named:
        parts.append(f"Main actions: {', '.join(named[:AUDIO_MAX_ACTIONS])}")
    return ". ".join(parts) + "." if parts else ""


# ── token comparison ─────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class TokenComparison:
    json_tokens: int
    toon_tokens: int
    summary_tokens: int
    one_liner_tokens: int
    toon_reduction: float  # percent vs JSON, never negative
    summary_reduction: float
    one_liner_reduction: float


def _reduction(baseline: int, tokens: int) -> float:
    if baseline <= 0:
        return 0.0
    return round(max(0.0, (baseline - tokens) / baseline * 100), 1)


def compare_token_usage(doc: SemanticDocument) -> TokenComparison:
    """Estimated tokens (4 chars/token) of each rendering against JSON."""
    json_tokens = estimate_tokens(to_json(doc))
    toon_tokens = estimate_tokens(serialize_document(doc))
    summary_tokens = estimate_tokens(to_agent_summary(doc))
    one_liner_tokens = estimate_tokens(to_one_liner(doc))
    return TokenComparison(
        json_tokens=json_tokens,
        toon_tokens=toon_tokens,
        summary_tokens=summary_tokens,
        one_liner_tokens=one_liner_tokens,
        toon_reduction=_reduction(json_tokens, toon_tokens),
        summary_reduction=_reduction(json_tokens, summary_tokens),
        one_liner_reduction=_reduction(json_tokens, one_liner_tokens),
    )
