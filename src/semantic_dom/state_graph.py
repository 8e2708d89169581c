# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Semantic State Graph (SSG).

Two related structures derived from a built tree:

1. Local machines: a fixed per-role table of (from, trigger, to) triples
   for every interactive or non-idle node.
2. Navigation graph: one ``initial`` state plus one state per internal
   link target (``/...`` or ``#...``), with a transition from ``initial``
   triggered by the link's semantic id.

Determinism and reachability are checkable properties of the navigation
graph; a non-deterministic graph is representable and reported, not rejected.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from . import SemanticNode, SemanticTree
from .security import is_internal_href
from .vocabulary import InteractionState, SemanticRole

logger = logging.getLogger(__name__)

INITIAL_STATE_ID = "initial"
NAVIGATE_ACTION = "navigate"


# ── Navigation graph ─────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class State:
    id: str
    name: str
    url_pattern: str | None = None
    description: str | None = None
    is_initial: bool = False
    is_terminal: bool = False


@dataclass(frozen=True, slots=True)
class Transition:
    from_state: str
    to_state: str
    trigger: str  # semantic id of the node that fires it
    action: str | None = None
    guard: str | None = None


@dataclass(frozen=True, slots=True)
class StateGraph:
    """Document-level FSM. Every transition endpoint must be a known state."""

    states: tuple[State, ...] = ()
    transitions: tuple[Transition, ...] = ()
    initial_state: str | None = None

    def __post_init__(self) -> None:
        known = {s.id for s in self.states}
        if len(known) != len(self.states):
            raise ValueError("StateGraph has duplicate state ids")
        if self.initial_state is not None and self.initial_state not in known:
            raise ValueError(f"Initial state {self.initial_state!r} is not a known state")
        for t in self.transitions:
            if t.from_state not in known or t.to_state not in known:
                raise ValueError(f"Transition {t.from_state!r} -> {t.to_state!r} references an unknown state")

    def state(self, state_id: str) -> State | None:
        for s in self.states:
            if s.id == state_id:
                return s
        return None

    def outgoing(self, state_id: str) -> list[Transition]:
        return [t for t in self.transitions if t.from_state == state_id]

    def nondeterministic_pairs(self) -> list[tuple[str, str]]:
        """(from, trigger) pairs that lead to more than one target, in first-seen order."""
        targets: dict[tuple[str, str], str] = {}
        conflicts: list[tuple[str, str]] = []
        for t in self.transitions:
            key = (t.from_state, t.trigger)
            seen = targets.setdefault(key, t.to_state)
            if seen != t.to_state and key not in conflicts:
                conflicts.append(key)
        return conflicts

    def is_deterministic(self) -> bool:
        """True iff no (from, trigger) pair leads to two different targets."""
        seen: dict[tuple[str, str], str] = {}
        for t in self.transitions:
            key = (t.from_state, t.trigger)
            target = seen.setdefault(key, t.to_state)
            if target != t.to_state:
                return False
        return True

    def reachable_states(self) -> tuple[State, ...]:
        """States reachable from the initial state (BFS), in declaration order."""
        if self.initial_state is None:
            return ()
        edges: dict[str, list[str]] = {}
        for t in self.transitions:
            edges.setdefault(t.from_state, []).append(t.to_state)

        visited = {self.initial_state}
        queue = deque([self.initial_state])
        while queue:
            current = queue.popleft()
            for target in edges.get(current, ()):
                if target not in visited:
                    visited.add(target)
                    queue.append(target)
        return tuple(s for s in self.states if s.id in visited)

    def unreachable_states(self) -> tuple[State, ...]:
        reachable = {s.id for s in self.reachable_states()}
        return tuple(s for s in self.states if s.id not in reachable)

    def all_reachable(self) -> bool:
        return not self.states or len(self.reachable_states()) == len(self.states)


# ── Local per-node machines ──────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class LocalTransition:
    from_state: InteractionState
    trigger: str  # DOM event name
    to_state: InteractionState


@dataclass(frozen=True, slots=True)
class NodeStateMachine:
    node_id: str
    current_state: InteractionState
    transitions: tuple[LocalTransition, ...] = ()

    def available_transitions(self) -> tuple[LocalTransition, ...]:
        return tuple(t for t in self.transitions if t.from_state == self.current_state)


_S = InteractionState

_FOCUS_PAIR = (
    LocalTransition(_S.IDLE, "focus", _S.FOCUSED),
    LocalTransition(_S.FOCUSED, "blur", _S.IDLE),
)

LOCAL_TRANSITIONS: dict[SemanticRole, tuple[LocalTransition, ...]] = {
    SemanticRole.BUTTON: (
        *_FOCUS_PAIR,
        LocalTransition(_S.FOCUSED, "mousedown", _S.PRESSED),
        LocalTransition(_S.PRESSED, "mouseup", _S.FOCUSED),
    ),
    SemanticRole.TEXTBOX: (*_FOCUS_PAIR, LocalTransition(_S.FOCUSED, "input", _S.EDITING)),
    SemanticRole.SEARCHBOX: (*_FOCUS_PAIR, LocalTransition(_S.FOCUSED, "input", _S.EDITING)),
    SemanticRole.CHECKBOX: (
        LocalTransition(_S.UNCHECKED, "click", _S.CHECKED),
        LocalTransition(_S.CHECKED, "click", _S.UNCHECKED),
    ),
    SemanticRole.RADIO: (LocalTransition(_S.UNCHECKED, "click", _S.CHECKED),),
    SemanticRole.LINK: (
        LocalTransition(_S.IDLE, "focus", _S.FOCUSED),
        LocalTransition(_S.FOCUSED, "click", _S.VISITED),
    ),
}


def local_transitions(node: SemanticNode) -> tuple[LocalTransition, ...]:
    table = LOCAL_TRANSITIONS.get(node.role)
    if table is not None:
        return table
    if node.is_interactive:
        return _FOCUS_PAIR
    return ()


# ── Combined graph + builder ─────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SemanticStateGraph:
    machines: Mapping[str, NodeStateMachine]  # node id -> machine, pre-order
    navigation: StateGraph

    def machine(self, node_id: str) -> NodeStateMachine | None:
        return self.machines.get(node_id)


def navigation_state_id(href: str) -> str:
    return "state_" + href.replace("/", "_").replace("#", "h_")


def build_navigation_graph(tree: SemanticTree) -> StateGraph:
    states: list[State] = [
        State(
            id=INITIAL_STATE_ID,
            name="Initial",
            url_pattern="/",
            description="Initial page state",
            is_initial=True,
        )
    ]
    known: set[str] = {INITIAL_STATE_ID}
    transitions: list[Transition] = []

    for node in tree.interactable_nodes():
        href = node.href
        if not href or not is_internal_href(href):
            continue
        state_id = navigation_state_id(href)
        if state_id not in known:
            known.add(state_id)
            states.append(State(id=state_id, name=node.label or href, url_pattern=href, is_terminal=True))
        transitions.append(
            Transition(
                from_state=INITIAL_STATE_ID,
                to_state=state_id,
                trigger=node.id,
                action=NAVIGATE_ACTION,
            )
        )

    return StateGraph(states=tuple(states), transitions=tuple(transitions), initial_state=INITIAL_STATE_ID)


def build_state_graph(tree: SemanticTree) -> SemanticStateGraph:
    """Derive local machines and the navigation graph from a built tree."""
    machines: dict[str, NodeStateMachine] = {}
    for node in tree.walk():
        if node.is_interactive or node.state is not InteractionState.IDLE:
            machines[node.id] = NodeStateMachine(
                node_id=node.id,
                current_state=node.state,
                transitions=local_transitions(node),
            )
    navigation = build_navigation_graph(tree)
    logger.debug(
        "State graph: %d machines, %d states, %d transitions",
        len(machines),
        len(navigation.states),
        len(navigation.transitions),
    )
    return SemanticStateGraph(machines=MappingProxyType(machines), navigation=navigation)
