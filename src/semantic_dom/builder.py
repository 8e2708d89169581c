# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Markup → SemanticDocument pipeline.

Pipeline:
  1. Size check on the UTF-8 byte length (before any parsing)
  2. lxml parse with ``recover=True``; ``<body>`` is the root container
  3. Single pre-order pass: classify, label, allocate ids, fill the
     index and the landmark / interactable / heading lists
  4. State graph (optional)
  5. Certification (optional)

All per-call state lives in a ``BuildContext``; nothing is shared between
calls, so separate parses are safe to run from separate threads.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from types import MappingProxyType

import lxml.html
from lxml import etree

from . import SemanticDocument, SemanticNode, SemanticTree
from .certification import certify
from .classifiers import (
    IdAllocator,
    build_a11y,
    build_selector,
    classify_role,
    element_text,
    get_attr,
    infer_intent,
    infer_state,
    is_hidden_input,
    resolve_label,
    tag_name,
)
from .config import ParserConfig
from .errors import InputTooLargeError, InvalidUrlProtocolError, MissingRootContainerError
from .pipeline_timer import PipelineTimer
from .sanitizer import sanitize_text
from .security import check_input_size, validate_url
from .state_graph import build_state_graph
from .vocabulary import SemanticRole

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
MAX_TITLE_LENGTH = 256

SEMANTIC_TAGS = frozenset(
    {
        "main",
        "nav",
        "header",
        "footer",
        "aside",
        "article",
        "section",
        "search",
        "button",
        "a",
        "input",
        "select",
        "textarea",
        "form",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "ul",
        "ol",
        "li",
        "table",
        "tr",
        "td",
        "th",
        "img",
        "video",
        "audio",
        "dialog",
        "menu",
    }
)

# Any of these makes an otherwise plain element semantic
SEMANTIC_ATTRIBUTES = ("role", "data-agent-id", "data-agent-role", "aria-label")


def is_semantic(el: lxml.html.HtmlElement) -> bool:
    if tag_name(el) in SEMANTIC_TAGS:
        return True
    return any(get_attr(el, name) is not None for name in SEMANTIC_ATTRIBUTES)


@dataclass(slots=True)
class _Draft:
    """Mutable node under construction; frozen into a SemanticNode at the end."""

    node: SemanticNode
    children: list[int] = field(default_factory=list)


@dataclass(slots=True)
class BuildContext:
    """Per-call build state. Create one per parse; never reuse."""

    config: ParserConfig
    ids: IdAllocator = field(default_factory=IdAllocator)
    drafts: list[_Draft] = field(default_factory=list)
    index: dict[str, int] = field(default_factory=dict)
    landmarks: list[str] = field(default_factory=list)
    interactables: list[str] = field(default_factory=list)
    headings: list[str] = field(default_factory=list)
    rejected_urls: int = 0
    dropped_too_deep: int = 0


class SemanticTreeBuilder:
    """Converts an lxml element tree rooted at ``<body>`` into a SemanticTree."""

    __slots__ = ("_config",)

    def __init__(self, config: ParserConfig | None = None) -> None:
        self._config = config or ParserConfig()

    def build(self, body: lxml.html.HtmlElement) -> SemanticTree:
        ctx = BuildContext(config=self._config)
        self._visit(ctx, body, parent=None, depth=0)
        tree = self._freeze(ctx)
        if ctx.rejected_urls or ctx.dropped_too_deep:
            logger.debug(
                "Tree built with %d rejected link target(s), %d node(s) beyond max_depth=%d",
                ctx.rejected_urls,
                ctx.dropped_too_deep,
                self._config.max_depth,
            )
        return tree

    # ── traversal ─────────────────────────────────────────────────

    def _visit(self, ctx: BuildContext, el: lxml.html.HtmlElement, parent: int | None, depth: int) -> int:
        handle = self._add_node(ctx, el, parent, depth)
        for child in self._semantic_children(ctx, el):
            if depth + 1 > ctx.config.max_depth:
                ctx.dropped_too_deep += 1
                continue
            child_handle = self._visit(ctx, child, handle, depth + 1)
            ctx.drafts[handle].children.append(child_handle)
        return handle

    def _semantic_children(self, ctx: BuildContext, el: lxml.html.HtmlElement) -> list[lxml.html.HtmlElement]:
        """Semantic children, hoisting semantic grandchildren through one transparent level."""
        found: list[lxml.html.HtmlElement] = []
        for child in self._element_children(ctx, el):
            if is_semantic(child):
                found.append(child)
                continue
            found.extend(grandchild for grandchild in self._element_children(ctx, child) if is_semantic(grandchild))
        return found

    @staticmethod
    def _element_children(ctx: BuildContext, el: lxml.html.HtmlElement) -> list[lxml.html.HtmlElement]:
        exclude = ctx.config.exclude_tags
        children = []
        for child in el:
            tag = tag_name(child)
            if tag and tag not in exclude and not is_hidden_input(child):
                children.append(child)
        return children

    # ── node construction ─────────────────────────────────────────

    def _add_node(self, ctx: BuildContext, el: lxml.html.HtmlElement, parent: int | None, depth: int) -> int:
        text = element_text(el)
        role = classify_role(el)
        label = resolve_label(el, text)
        a11y = build_a11y(el, text)
        node_id = ctx.ids.allocate(el, role, label)
        handle = len(ctx.drafts)

        node = SemanticNode(
            handle=handle,
            id=node_id,
            tag=tag_name(el),
            role=role,
            label=label,
            intent=infer_intent(el, role, label),
            state=infer_state(el),
            a11y=a11y,
            selector=build_selector(el),
            href=self._safe_href(ctx, el, node_id),
            depth=depth,
            parent=parent,
        )
        ctx.drafts.append(_Draft(node=node))
        ctx.index[node_id] = handle

        if role.is_landmark:
            ctx.landmarks.append(node_id)
        if a11y.focusable:
            ctx.interactables.append(node_id)
        if role is SemanticRole.HEADING:
            ctx.headings.append(node_id)
        return handle

    @staticmethod
    def _safe_href(ctx: BuildContext, el: lxml.html.HtmlElement, node_id: str) -> str | None:
        raw = get_attr(el, "href")
        if raw is None:
            return None
        try:
            return validate_url(raw) or None
        except InvalidUrlProtocolError as e:
            ctx.rejected_urls += 1
            logger.info("Dropped link target on %s: %s", node_id, e)
            return None

    @staticmethod
    def _freeze(ctx: BuildContext) -> SemanticTree:
        nodes = tuple(
            _replace_children(draft.node, tuple(draft.children)) if draft.children else draft.node
            for draft in ctx.drafts
        )
        return SemanticTree(
            nodes=nodes,
            index=MappingProxyType(dict(ctx.index)),
            landmarks=tuple(ctx.landmarks),
            interactables=tuple(ctx.interactables),
            headings=tuple(ctx.headings),
        )


def _replace_children(node: SemanticNode, children: tuple[int, ...]) -> SemanticNode:
    return replace(node, children=children)


# ── Markup entry points ──────────────────────────────────────────────


def parse_markup(markup: str | bytes, *, max_input_size: int | None = None) -> lxml.html.HtmlElement:
    """Size-check and parse *markup*; return the document (``<html>``) element.

    Raises:
        InputTooLargeError: before parsing, when the byte length exceeds the bound.
        MissingRootContainerError: when the markup yields no document or no ``<body>``.
    """
    limit = max_input_size if max_input_size is not None else ParserConfig().max_input_size
    try:
        check_input_size(markup, limit)
    except InputTooLargeError as e:
        logger.warning("Rejected oversized input: %d bytes (limit %d)", e.actual_size, e.max_size)
        raise

    data = markup.encode("utf-8") if isinstance(markup, str) else markup
    if not data.strip():
        raise MissingRootContainerError("Document is empty; no <body> element to use as root")
    try:
        parser = lxml.html.HTMLParser(recover=True, encoding="utf-8")
        doc = lxml.html.document_fromstring(data, parser=parser)
    except etree.ParserError as e:
        raise MissingRootContainerError(f"Document has no usable root: {e}") from e
    return doc


def find_body(doc: lxml.html.HtmlElement) -> lxml.html.HtmlElement:
    body = doc.find("body") if tag_name(doc) == "html" else None
    if body is None:
        raise MissingRootContainerError("Document has no <body> element")
    return body


def _document_title(doc: lxml.html.HtmlElement) -> str:
    title_el = doc.find(".//title")
    if title_el is None:
        return ""
    text = " ".join((title_el.text_content() or "").split())
    return sanitize_text(text, max_len=MAX_TITLE_LENGTH)


def _document_language(doc: lxml.html.HtmlElement) -> str:
    return get_attr(doc, "lang") or DEFAULT_LANGUAGE


def build_document(
    markup: str | bytes,
    url: str = "",
    config: ParserConfig | None = None,
) -> SemanticDocument:
    """Parse *markup* into an immutable SemanticDocument.

    Raises:
        InputTooLargeError: markup exceeds ``config.max_input_size`` bytes.
        MissingRootContainerError: no ``<body>`` to root the tree at.
    """
    config = config or ParserConfig()
    timer = PipelineTimer()
    try:
        timer.stage("parse")
        doc = parse_markup(markup, max_input_size=config.max_input_size)
        body = find_body(doc)

        timer.stage("tree")
        tree = SemanticTreeBuilder(config).build(body)

        state_graph = None
        if config.include_state_graph:
            timer.stage("state_graph")
            state_graph = build_state_graph(tree)

        certification = None
        if config.validate:
            timer.stage("certification")
            certification = certify(tree, state_graph.navigation if state_graph is not None else None)
        timer.finalize()
    except Exception:
        logger.debug("Build failed: %s", timer.failure_report())
        timer.finalize()
        raise

    timings = timer.elapsed_per_stage()
    logger.debug("Built %d nodes in %s ms", len(tree), timings)
    return SemanticDocument(
        url=url,
        title=_document_title(doc),
        language=_document_language(doc),
        generated_at=time.time_ns() // 1_000_000,
        tree=tree,
        state_graph=state_graph,
        certification=certification,
        timings=timings,
    )
