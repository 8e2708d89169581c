# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Compact line-oriented rendering ("TOON") of a SemanticDocument.

Layout::

    v:1.0.0
    std:ISO/IEC-SDOM-SSG-DRAFT-2024
    url:https://example.com
    title:Example
    lang:en
    ts:1718000000000

    cert:aa score:78

    root:
      el-body generic
        nav-main navigation "Main"
          link-home link "Home" [focused]
            a11y: focusable tab

    landmarks:
      - nav-main navigation "Main"

    interactables:
      - btn-submit button "Submit" ->submit

Output is a pure function of the document; the only non-constant line is
``ts:``, which is fixed at build time.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from . import SemanticDocument, SemanticNode, SemanticTree
from .serializer import to_json
from .vocabulary import InteractionState

INDENT = "  "
CHARS_PER_TOKEN = 4

_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"})


def escape(value: str) -> str:
    return value.translate(_ESCAPES)


def estimate_tokens(text: str) -> int:
    """Rough token count: ceil(len / 4)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _node_line(node: SemanticNode) -> str:
    parts = [node.id, " ", node.role.value]
    if node.label:
        parts.append(f' "{escape(node.label)}"')
    if node.intent is not None:
        parts.append(f" ->{node.intent.value}")
    if node.state is not InteractionState.IDLE:
        parts.append(f" [{node.state.value}]")
    return "".join(parts)


def _a11y_line(node: SemanticNode) -> str | None:
    a11y = node.a11y
    if not a11y.focusable and a11y.level is None:
        return None
    parts = ["a11y:"]
    if a11y.focusable:
        parts.append("focusable")
    if a11y.in_tab_order:
        parts.append("tab")
    if a11y.level is not None:
        parts.append(f"L{a11y.level}")
    return " ".join(parts)


def _render_subtree(
    lines: list[str], tree: SemanticTree, start: SemanticNode, base_indent: int, include_selectors: bool
) -> None:
    for node in tree.walk(start):
        pad = INDENT * (base_indent + node.depth - start.depth)
        lines.append(pad + _node_line(node))
        a11y = _a11y_line(node)
        if a11y is not None:
            lines.append(pad + INDENT + a11y)
        if include_selectors and node.selector:
            lines.append(f"{pad}{INDENT}sel:{node.selector}")


def serialize_node(tree: SemanticTree, node: SemanticNode, *, include_selectors: bool = False) -> str:
    """Render one node and its subtree, starting at indent 0."""
    lines: list[str] = []
    _render_subtree(lines, tree, node, 0, include_selectors)
    return "\n".join(lines) + "\n"


def serialize_document(doc: SemanticDocument, *, include_selectors: bool = False) -> str:
    lines = [
        f"v:{doc.version}",
        f"std:{doc.standard}",
        f"url:{doc.url}",
        f"title:{escape(doc.title)}",
        f"lang:{doc.language}",
        f"ts:{doc.generated_at}",
        "",
    ]

    if doc.certification is not None:
        lines.append(f"cert:{doc.certification.level.value} score:{doc.certification.score}")
        lines.append("")

    lines.append("root:")
    _render_subtree(lines, doc.tree, doc.root, 1, include_selectors)
    lines.append("")

    landmarks = doc.tree.landmark_nodes()
    if landmarks:
        lines.append("landmarks:")
        lines.extend(f'{INDENT}- {n.id} {n.role.value} "{escape(n.label)}"' for n in landmarks)
        lines.append("")

    interactables = doc.tree.interactable_nodes()
    if interactables:
        lines.append("interactables:")
        for n in interactables:
            intent = f" ->{n.intent.value}" if n.intent is not None else ""
            lines.append(f'{INDENT}- {n.id} {n.role.value} "{escape(n.label)}"{intent}')
        lines.append("")

    return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class TokenSavings:
    json_tokens: int
    toon_tokens: int
    savings: int
    savings_percent: int


def estimate_token_savings(doc: SemanticDocument) -> TokenSavings:
    """Compare the compact rendering against the full JSON form."""
    json_tokens = estimate_tokens(to_json(doc))
    toon_tokens = estimate_tokens(serialize_document(doc))
    savings = max(0, json_tokens - toon_tokens)
    percent = round(savings / json_tokens * 100) if json_tokens else 0
    return TokenSavings(json_tokens=json_tokens, toon_tokens=toon_tokens, savings=savings, savings_percent=percent)
