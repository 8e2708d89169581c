# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Full-fidelity JSON form of a SemanticDocument.

``to_dict`` / ``to_json`` nest the arena back into a tree and carry every
field needed to rebuild the document. ``from_json`` validates the input
against pydantic models and rebuilds the arena in pre-order, so

    to_json(from_json(to_json(doc))) == to_json(doc)

holds byte for byte. Per-stage timings are not persisted.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import A11yInfo, SemanticDocument, SemanticNode, SemanticTree
from .certification import (
    AgentCertification,
    CertificationLevel,
    CertificationStats,
    CheckCategory,
    ValidationCheck,
)
from .errors import DocumentFormatError
from .state_graph import (
    LocalTransition,
    NodeStateMachine,
    SemanticStateGraph,
    State,
    StateGraph,
    Transition,
)
from .vocabulary import InteractionState, SemanticIntent, SemanticRole

logger = logging.getLogger(__name__)


# ── dataclass → plain dict ───────────────────────────────────────────


def _node_dict(tree: SemanticTree, node: SemanticNode) -> dict[str, Any]:
    return {
        "id": node.id,
        "tag": node.tag,
        "role": node.role.value,
        "label": node.label,
        "intent": node.intent.value if node.intent is not None else None,
        "state": node.state.value,
        "a11y": {
            "name": node.a11y.name,
            "focusable": node.a11y.focusable,
            "in_tab_order": node.a11y.in_tab_order,
            "level": node.a11y.level,
        },
        "selector": node.selector,
        "href": node.href,
        "children": [_node_dict(tree, child) for child in tree.children_of(node)],
    }


def machine_to_dict(machine: NodeStateMachine) -> dict[str, Any]:
    return {
        "node_id": machine.node_id,
        "current_state": machine.current_state.value,
        "transitions": [
            {"from": t.from_state.value, "trigger": t.trigger, "to": t.to_state.value} for t in machine.transitions
        ],
    }


def state_graph_to_dict(graph: SemanticStateGraph) -> dict[str, Any]:
    nav = graph.navigation
    return {
        "machines": [machine_to_dict(m) for m in graph.machines.values()],
        "navigation": {
            "initial_state": nav.initial_state,
            "states": [
                {
                    "id": s.id,
                    "name": s.name,
                    "url_pattern": s.url_pattern,
                    "description": s.description,
                    "is_initial": s.is_initial,
                    "is_terminal": s.is_terminal,
                }
                for s in nav.states
            ],
            "transitions": [
                {"from": t.from_state, "to": t.to_state, "trigger": t.trigger, "action": t.action, "guard": t.guard}
                for t in nav.transitions
            ],
        },
    }


def certification_to_dict(cert: AgentCertification) -> dict[str, Any]:
    stats = cert.stats
    return {
        "level": cert.level.value,
        "score": cert.score,
        "checks": [
            {
                "id": c.id,
                "name": c.name,
                "category": c.category.value,
                "passed": c.passed,
                "weight": c.weight,
                "detail": c.detail,
            }
            for c in cert.checks
        ],
        "stats": {
            "total_checks": stats.total_checks,
            "passed_checks": stats.passed_checks,
            "landmark_count": stats.landmark_count,
            "interactable_count": stats.interactable_count,
            "heading_count": stats.heading_count,
            "completeness": stats.completeness,
        },
    }


def to_dict(doc: SemanticDocument) -> dict[str, Any]:
    return {
        "version": doc.version,
        "standard": doc.standard,
        "url": doc.url,
        "title": doc.title,
        "language": doc.language,
        "generated_at": doc.generated_at,
        "root": _node_dict(doc.tree, doc.root),
        "landmarks": list(doc.landmarks),
        "interactables": list(doc.interactables),
        "headings": list(doc.headings),
        "state_graph": state_graph_to_dict(doc.state_graph) if doc.state_graph is not None else None,
        "certification": certification_to_dict(doc.certification) if doc.certification is not None else None,
    }


def to_json(doc: SemanticDocument, indent: int = 2) -> str:
    """Serialize a SemanticDocument to a JSON string."""
    return json.dumps(to_dict(doc), indent=indent, ensure_ascii=False)


# ── validation models ────────────────────────────────────────────────


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class A11yModel(_Strict):
    name: str | None
    focusable: bool
    in_tab_order: bool
    level: int | None = None


class NodeModel(_Strict):
    id: str = Field(min_length=1)
    tag: str
    role: SemanticRole
    label: str
    intent: SemanticIntent | None = None
    state: InteractionState
    a11y: A11yModel
    selector: str
    href: str | None = None
    children: list[NodeModel] = Field(default_factory=list)


class LocalTransitionModel(_Strict):
    from_state: InteractionState = Field(alias="from")
    trigger: str
    to_state: InteractionState = Field(alias="to")


class MachineModel(_Strict):
    node_id: str
    current_state: InteractionState
    transitions: list[LocalTransitionModel]


class StateModel(_Strict):
    id: str
    name: str
    url_pattern: str | None = None
    description: str | None = None
    is_initial: bool = False
    is_terminal: bool = False


class TransitionModel(_Strict):
    from_state: str = Field(alias="from")
    to_state: str = Field(alias="to")
    trigger: str
    action: str | None = None
    guard: str | None = None


class NavigationModel(_Strict):
    initial_state: str | None = None
    states: list[StateModel]
    transitions: list[TransitionModel]


class StateGraphModel(_Strict):
    machines: list[MachineModel]
    navigation: NavigationModel


class CheckModel(_Strict):
    id: str
    name: str
    category: CheckCategory
    passed: bool
    weight: float
    detail: str | None = None


class StatsModel(_Strict):
    total_checks: int
    passed_checks: int
    landmark_count: int
    interactable_count: int
    heading_count: int
    completeness: float


class CertificationModel(_Strict):
    level: CertificationLevel
    score: int = Field(ge=0, le=100)
    checks: list[CheckModel]
    stats: StatsModel


class DocumentModel(_Strict):
    version: str
    standard: str
    url: str
    title: str
    language: str
    generated_at: int
    root: NodeModel
    landmarks: list[str]
    interactables: list[str]
    headings: list[str]
    state_graph: StateGraphModel | None = None
    certification: CertificationModel | None = None


NodeModel.model_rebuild()


# ── plain dict → dataclasses ─────────────────────────────────────────


@dataclass(slots=True)
class _Slot:
    node: SemanticNode
    children: list[int] = field(default_factory=list)


def _rebuild_tree(model: DocumentModel) -> SemanticTree:
    slots: list[_Slot] = []
    index: dict[str, int] = {}
    # (model, parent handle, depth); children pushed reversed for pre-order
    stack: list[tuple[NodeModel, int | None, int]] = [(model.root, None, 0)]
    while stack:
        node_model, parent, depth = stack.pop()
        if node_model.id in index:
            raise DocumentFormatError(f"Duplicate node id: {node_model.id!r}")
        handle = len(slots)
        a11y = node_model.a11y
        slots.append(
            _Slot(
                SemanticNode(
                    handle=handle,
                    id=node_model.id,
                    tag=node_model.tag,
                    role=node_model.role,
                    label=node_model.label,
                    intent=node_model.intent,
                    state=node_model.state,
                    a11y=A11yInfo(
                        name=a11y.name, focusable=a11y.focusable, in_tab_order=a11y.in_tab_order, level=a11y.level
                    ),
                    selector=node_model.selector,
                    href=node_model.href,
                    depth=depth,
                    parent=parent,
                )
            )
        )
        index[node_model.id] = handle
        if parent is not None:
            slots[parent].children.append(handle)
        stack.extend((child, handle, depth + 1) for child in reversed(node_model.children))

    for kind, ids in (("landmark", model.landmarks), ("interactable", model.interactables), ("heading", model.headings)):
        unknown = [i for i in ids if i not in index]
        if unknown:
            raise DocumentFormatError(f"Unknown {kind} id(s): {', '.join(unknown)}")

    nodes = []
    for slot in slots:
        node = slot.node
        if slot.children:
            node = replace(node, children=tuple(slot.children))
        nodes.append(node)

    tree = SemanticTree(
        nodes=tuple(nodes),
        index=MappingProxyType(index),
        landmarks=tuple(model.landmarks),
        interactables=tuple(model.interactables),
        headings=tuple(model.headings),
    )
    problems = tree.verify()
    if problems:
        raise DocumentFormatError(f"Inconsistent tree: {problems[0]}")
    return tree


def _rebuild_state_graph(model: StateGraphModel, tree: SemanticTree) -> SemanticStateGraph:
    machines: dict[str, NodeStateMachine] = {}
    for m in model.machines:
        if tree.query(m.node_id) is None:
            raise DocumentFormatError(f"State machine for unknown node: {m.node_id!r}")
        machines[m.node_id] = NodeStateMachine(
            node_id=m.node_id,
            current_state=m.current_state,
            transitions=tuple(LocalTransition(t.from_state, t.trigger, t.to_state) for t in m.transitions),
        )
    nav = model.navigation
    try:
        navigation = StateGraph(
            states=tuple(
                State(
                    id=s.id,
                    name=s.name,
                    url_pattern=s.url_pattern,
                    description=s.description,
                    is_initial=s.is_initial,
                    is_terminal=s.is_terminal,
                )
                for s in nav.states
            ),
            transitions=tuple(
                Transition(
                    from_state=t.from_state, to_state=t.to_state, trigger=t.trigger, action=t.action, guard=t.guard
                )
                for t in nav.transitions
            ),
            initial_state=nav.initial_state,
        )
    except ValueError as e:
        raise DocumentFormatError(f"Invalid navigation graph: {e}") from e
    return SemanticStateGraph(machines=MappingProxyType(machines), navigation=navigation)


def _rebuild_certification(model: CertificationModel) -> AgentCertification:
    s = model.stats
    return AgentCertification(
        level=model.level,
        score=model.score,
        checks=tuple(
            ValidationCheck(
                id=c.id, name=c.name, category=c.category, passed=c.passed, weight=c.weight, detail=c.detail
            )
            for c in model.checks
        ),
        stats=CertificationStats(
            total_checks=s.total_checks,
            passed_checks=s.passed_checks,
            landmark_count=s.landmark_count,
            interactable_count=s.interactable_count,
            heading_count=s.heading_count,
            completeness=s.completeness,
        ),
    )


def from_dict(data: Any) -> SemanticDocument:
    try:
        model = DocumentModel.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        raise DocumentFormatError(f"Invalid document structure at {where}: {first['msg']}") from e

    tree = _rebuild_tree(model)
    return SemanticDocument(
        url=model.url,
        title=model.title,
        language=model.language,
        generated_at=model.generated_at,
        tree=tree,
        state_graph=_rebuild_state_graph(model.state_graph, tree) if model.state_graph is not None else None,
        certification=_rebuild_certification(model.certification) if model.certification is not None else None,
        version=model.version,
        standard=model.standard,
    )


def from_json(text: str | bytes) -> SemanticDocument:
    """Load a document from its JSON form.

    Raises:
        DocumentFormatError: malformed JSON, schema violations, duplicate ids,
            or list/graph entries that reference unknown nodes or states.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentFormatError(f"Malformed JSON: {e}") from e
    doc = from_dict(data)
    logger.debug("Loaded document with %d nodes from JSON", doc.node_count)
    return doc
