# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SemanticDOM: machine-readable web semantics for AI agents.

Converts HTML into a semantically typed tree with O(1) id lookup:
- nodes: role, label, intent, interaction state, a11y info, selector
- state graph: per-element interaction FSMs + document navigation graph
- certification: weighted agent-readiness score
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .vocabulary import InteractionState, SemanticIntent, SemanticRole

if TYPE_CHECKING:
    from .certification import AgentCertification
    from .state_graph import SemanticStateGraph

VERSION = "1.0.0"
STANDARD = "ISO/IEC-SDOM-SSG-DRAFT-2024"


@dataclass(frozen=True, slots=True)
class A11yInfo:
    """Accessibility block for one node."""

    name: str | None  # accessible name
    focusable: bool
    in_tab_order: bool
    level: int | None = None  # heading level


@dataclass(frozen=True, slots=True)
class SemanticNode:
    """One node of the semantic tree, stored in the arena at ``handle``."""

    handle: int  # arena slot
    id: str  # semantic id, unique per document
    tag: str
    role: SemanticRole
    label: str
    intent: SemanticIntent | None
    state: InteractionState
    a11y: A11yInfo
    selector: str  # CSS-like selector for re-targeting
    href: str | None = None  # validated link target
    depth: int = 0
    parent: int | None = None  # non-owning back-reference (arena slot)
    children: tuple[int, ...] = ()

    @property
    def is_landmark(self) -> bool:
        return self.role.is_landmark

    @property
    def is_interactive(self) -> bool:
        return self.a11y.focusable


@dataclass(frozen=True, slots=True)
class SemanticTree:
    """Arena of nodes in pre-order plus an id -> slot index.

    Slot 0 is the root. A parent's slot is always lower than its children's.
    """

    nodes: tuple[SemanticNode, ...]
    index: Mapping[str, int]
    landmarks: tuple[str, ...] = ()
    interactables: tuple[str, ...] = ()
    headings: tuple[str, ...] = ()

    @property
    def root(self) -> SemanticNode:
        return self.nodes[0]

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, handle: int) -> SemanticNode:
        return self.nodes[handle]

    def query(self, node_id: str) -> SemanticNode | None:
        """O(1) lookup by semantic id."""
        handle = self.index.get(node_id)
        return None if handle is None else self.nodes[handle]

    def children_of(self, node: SemanticNode) -> list[SemanticNode]:
        return [self.nodes[h] for h in node.children]

    def parent_of(self, node: SemanticNode) -> SemanticNode | None:
        return None if node.parent is None else self.nodes[node.parent]

    def walk(self, start: SemanticNode | None = None) -> Iterator[SemanticNode]:
        """Yield nodes in pre-order (parent before children)."""
        if not self.nodes:
            return
        stack = [start.handle if start is not None else 0]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def navigate(self, landmark: str) -> SemanticNode | None:
        """First landmark whose role or id matches *landmark* (case-insensitive)."""
        wanted = landmark.strip().lower()
        for node in self.landmark_nodes():
            if node.role.value == wanted or node.id.lower() == wanted:
                return node
        return None

    def landmark_nodes(self) -> list[SemanticNode]:
        return [self.nodes[self.index[i]] for i in self.landmarks]

    def interactable_nodes(self) -> list[SemanticNode]:
        return [self.nodes[self.index[i]] for i in self.interactables]

    def heading_nodes(self) -> list[SemanticNode]:
        return [self.nodes[self.index[i]] for i in self.headings]

    def verify(self) -> list[str]:
        """Check index/tree agreement. Returns a list of problems (empty when consistent)."""
        problems: list[str] = []
        size = len(self.nodes)

        for node_id, handle in self.index.items():
            if not 0 <= handle < size:
                problems.append(f"index entry {node_id!r} points outside the arena ({handle})")
            elif self.nodes[handle].id != node_id:
                problems.append(f"index entry {node_id!r} resolves to node {self.nodes[handle].id!r}")

        reachable: set[int] = set()
        seen_ids: set[str] = set()
        for node in self.walk():
            if node.handle in reachable:
                problems.append(f"node {node.id!r} reached twice")
                break
            reachable.add(node.handle)
            if node.id in seen_ids:
                problems.append(f"duplicate id {node.id!r}")
            seen_ids.add(node.id)
            if self.index.get(node.id) != node.handle:
                problems.append(f"node {node.id!r} missing from index")
            for child in node.children:
                if self.nodes[child].parent != node.handle:
                    problems.append(f"node {self.nodes[child].id!r} has a stale parent reference")

        orphans = size - len(reachable)
        if orphans:
            problems.append(f"{orphans} node(s) not reachable from the root")
        if len(self.index) != len(reachable):
            problems.append(f"index has {len(self.index)} entries for {len(reachable)} reachable nodes")

        for kind, ids in (
            ("landmark", self.landmarks),
            ("interactable", self.interactables),
            ("heading", self.headings),
        ):
            for node_id in ids:
                if node_id not in self.index:
                    problems.append(f"{kind} {node_id!r} not in index")
        return problems


@dataclass(frozen=True, slots=True)
class SemanticDocument:
    """Built result of one parse call. Immutable; re-parse to change."""

    url: str
    title: str
    language: str
    generated_at: int  # epoch milliseconds
    tree: SemanticTree
    state_graph: SemanticStateGraph | None = None
    certification: AgentCertification | None = None
    version: str = VERSION
    standard: str = STANDARD
    timings: dict[str, float] = field(default_factory=dict, compare=False)  # not persisted

    @property
    def root(self) -> SemanticNode:
        return self.tree.root

    @property
    def landmarks(self) -> tuple[str, ...]:
        return self.tree.landmarks

    @property
    def interactables(self) -> tuple[str, ...]:
        return self.tree.interactables

    @property
    def headings(self) -> tuple[str, ...]:
        return self.tree.headings

    @property
    def node_count(self) -> int:
        return len(self.tree)

    def query(self, node_id: str) -> SemanticNode | None:
        return self.tree.query(node_id)

    def navigate(self, landmark: str) -> SemanticNode | None:
        return self.tree.navigate(landmark)


__all__ = [
    "STANDARD",
    "VERSION",
    "A11yInfo",
    "InteractionState",
    "SemanticDocument",
    "SemanticIntent",
    "SemanticNode",
    "SemanticRole",
    "SemanticTree",
]
