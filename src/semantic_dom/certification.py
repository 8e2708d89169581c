# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Agent-readiness certification: weighted checks → score (0-100) → level.

Scoring:
  category score = passed weight / total weight
  total          = Σ category score × multiplier  +  0.1 × completeness
  score          = int(clamp(total × 100, 0, 100))

``certify`` is pure and total: it never raises, and identical input gives
identical output. Ratio checks over empty sets pass.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from . import SemanticNode, SemanticTree
from .state_graph import StateGraph
from .vocabulary import SemanticRole

RATIO_THRESHOLD = 0.8
COMPLETENESS_WEIGHT = 0.1

FORM_CONTROL_ROLES = frozenset(
    {
        SemanticRole.TEXTBOX,
        SemanticRole.SEARCHBOX,
        SemanticRole.CHECKBOX,
        SemanticRole.RADIO,
        SemanticRole.LISTBOX,
        SemanticRole.COMBOBOX,
        SemanticRole.SPINBUTTON,
        SemanticRole.SLIDER,
    }
)


class CertificationLevel(StrEnum):
    """Ordered: NONE < A < AA < AAA."""

    NONE = "none"
    A = "a"
    AA = "aa"
    AAA = "aaa"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)

    @property
    def display_name(self) -> str:
        return "Not Certified" if self is CertificationLevel.NONE else f"Level {self.value.upper()}"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, CertificationLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, CertificationLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, CertificationLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, CertificationLevel):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def for_score(cls, score: int) -> CertificationLevel:
        if score >= 90:
            return cls.AAA
        if score >= 70:
            return cls.AA
        if score >= 50:
            return cls.A
        return cls.NONE


_LEVEL_ORDER = (CertificationLevel.NONE, CertificationLevel.A, CertificationLevel.AA, CertificationLevel.AAA)


class CheckCategory(StrEnum):
    STRUCTURE = "structure"
    ACCESSIBILITY = "accessibility"
    NAVIGATION = "navigation"
    INTEROPERABILITY = "interoperability"

    @property
    def multiplier(self) -> float:
        return _CATEGORY_MULTIPLIERS[self]


_CATEGORY_MULTIPLIERS = {
    CheckCategory.STRUCTURE: 0.30,
    CheckCategory.ACCESSIBILITY: 0.30,
    CheckCategory.NAVIGATION: 0.25,
    CheckCategory.INTEROPERABILITY: 0.15,
}


@dataclass(frozen=True, slots=True)
class ValidationCheck:
    id: str
    name: str
    category: CheckCategory
    passed: bool
    weight: float
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class CertificationStats:
    total_checks: int
    passed_checks: int
    landmark_count: int
    interactable_count: int
    heading_count: int
    completeness: float  # 0.0-1.0


@dataclass(frozen=True, slots=True)
class AgentCertification:
    level: CertificationLevel
    score: int
    checks: tuple[ValidationCheck, ...]
    stats: CertificationStats

    def passed(self) -> list[ValidationCheck]:
        return [c for c in self.checks if c.passed]

    def failed(self) -> list[ValidationCheck]:
        return [c for c in self.checks if not c.passed]

    def meets(self, required: CertificationLevel) -> bool:
        return self.level >= required


# ── helpers ──────────────────────────────────────────────────────────


def _ratio(items: list[SemanticNode], predicate: Callable[[SemanticNode], bool]) -> tuple[int, int]:
    return sum(1 for n in items if predicate(n)), len(items)


def _ratio_check(
    check_id: str,
    name: str,
    category: CheckCategory,
    weight: float,
    items: list[SemanticNode],
    predicate: Callable[[SemanticNode], bool],
    noun: str,
) -> ValidationCheck:
    hits, total = _ratio(items, predicate)
    passed = total == 0 or hits / total >= RATIO_THRESHOLD
    pct = 100.0 if total == 0 else hits / total * 100
    return ValidationCheck(
        id=check_id,
        name=name,
        category=category,
        passed=passed,
        weight=weight,
        detail=f"{hits}/{total} {noun} ({pct:.0f}%)",
    )


def _has_name(node: SemanticNode) -> bool:
    return node.a11y.name is not None or bool(node.label)


def _is_descriptive(node: SemanticNode) -> bool:
    label = node.label.strip().lower()
    return bool(label) and label not in (node.tag, node.role.value)


def _has_selector(node: SemanticNode) -> bool:
    return bool(node.selector)


def _has_intent(node: SemanticNode) -> bool:
    return node.intent is not None


def _has_meaningful_label(node: SemanticNode) -> bool:
    return bool(node.label) and node.label.lower() != node.role.value


def _heading_hierarchy(headings: list[SemanticNode]) -> tuple[bool, str]:
    if not headings:
        return False, "No headings"
    levels = [h.a11y.level or 1 for h in headings]
    for previous, current in zip(levels, levels[1:], strict=False):
        if current - previous > 1:
            return False, f"Heading level jumps from h{previous} to h{current}"
    return True, f"Found {len(headings)} headings"


def _completeness(nodes: list[SemanticNode], interactables: list[SemanticNode]) -> float:
    """Mean of four coverage ratios; a ratio over an empty set counts as 0."""

    def frac(items: Iterable[SemanticNode], predicate: Callable[[SemanticNode], bool]) -> float:
        items = list(items)
        if not items:
            return 0.0
        return min(1.0, sum(1 for n in items if predicate(n)) / len(items))

    ratios = (
        frac(nodes, _has_meaningful_label),
        frac(nodes, _has_selector),
        frac(interactables, _has_intent),
        frac(nodes, lambda n: n.a11y.name is not None),
    )
    return sum(ratios) / len(ratios)


# ── engine ───────────────────────────────────────────────────────────


def run_checks(tree: SemanticTree, navigation: StateGraph | None = None) -> list[ValidationCheck]:
    nodes = list(tree.walk())
    interactables = tree.interactable_nodes()
    links = [n for n in nodes if n.role is SemanticRole.LINK]
    buttons = [n for n in nodes if n.role is SemanticRole.BUTTON]
    controls = [n for n in nodes if n.role in FORM_CONTROL_ROLES]
    hierarchy_ok, hierarchy_detail = _heading_hierarchy(tree.heading_nodes())
    problems = tree.verify()

    structure = CheckCategory.STRUCTURE
    a11y = CheckCategory.ACCESSIBILITY
    nav = CheckCategory.NAVIGATION
    interop = CheckCategory.INTEROPERABILITY

    checks = [
        ValidationCheck(
            "STRUCT-001",
            "Has landmark regions",
            structure,
            passed=bool(tree.landmarks),
            weight=1.0,
            detail=f"Found {len(tree.landmarks)} landmarks",
        ),
        ValidationCheck(
            "STRUCT-002",
            "Has main content region",
            structure,
            passed=any(n.role is SemanticRole.MAIN for n in nodes),
            weight=1.0,
        ),
        ValidationCheck("STRUCT-003", "Heading hierarchy", structure, hierarchy_ok, 0.5, hierarchy_detail),
        ValidationCheck(
            "STRUCT-004",
            "Unique element IDs",
            structure,
            passed=not problems,
            weight=0.5,
            detail="; ".join(problems[:3]) if problems else f"{len(tree.index)} unique nodes",
        ),
        _ratio_check(
            "A11Y-001", "Interactables have accessible names", a11y, 1.0, interactables, _has_name, "named"
        ),
        _ratio_check("A11Y-002", "Links have descriptive text", a11y, 0.75, links, _is_descriptive, "links"),
        _ratio_check("A11Y-003", "Buttons have descriptive text", a11y, 0.75, buttons, _is_descriptive, "buttons"),
        _ratio_check("A11Y-004", "Form inputs have labels", a11y, 0.5, controls, _has_name, "inputs"),
        ValidationCheck(
            "NAV-001",
            "Has navigation landmark",
            nav,
            passed=any(n.role is SemanticRole.NAVIGATION for n in nodes),
            weight=1.0,
        ),
    ]

    if navigation is None:
        checks.append(ValidationCheck("NAV-002", "State graph is deterministic", nav, True, 1.0, "No state graph"))
        checks.append(ValidationCheck("NAV-003", "All states reachable", nav, True, 0.75, "No state graph"))
    else:
        reachable = len(navigation.reachable_states())
        checks.append(
            ValidationCheck(
                "NAV-002",
                "State graph is deterministic",
                nav,
                passed=navigation.is_deterministic(),
                weight=1.0,
                detail=f"{len(navigation.states)} states, {len(navigation.transitions)} transitions",
            )
        )
        checks.append(
            ValidationCheck(
                "NAV-003",
                "All states reachable",
                nav,
                passed=navigation.all_reachable(),
                weight=0.75,
                detail=f"{reachable}/{len(navigation.states)} states reachable",
            )
        )

    checks.append(
        _ratio_check("INTEROP-001", "Elements have CSS selectors", interop, 1.0, nodes, _has_selector, "nodes")
    )
    checks.append(
        _ratio_check("INTEROP-002", "Interactables have intents", interop, 0.75, interactables, _has_intent, "intents")
    )
    return checks


def score_checks(checks: Iterable[ValidationCheck], completeness: float) -> int:
    totals: dict[CheckCategory, list[float]] = {}
    for check in checks:
        passed_total = totals.setdefault(check.category, [0.0, 0.0])
        passed_total[1] += check.weight
        if check.passed:
            passed_total[0] += check.weight

    total = 0.0
    for category, (passed, weight) in totals.items():
        if weight > 0:
            total += passed / weight * category.multiplier
    total += completeness * COMPLETENESS_WEIGHT
    # 0.7 * 100 lands on 69.99999...
    return int(min(100.0, max(0.0, round(total * 100, 6))))


def certify(tree: SemanticTree, navigation: StateGraph | None = None) -> AgentCertification:
    """Run all checks and compute score + level. Pure and deterministic."""
    checks = run_checks(tree, navigation)
    completeness = _completeness(list(tree.walk()), tree.interactable_nodes())
    score = score_checks(checks, completeness)
    passed = sum(1 for c in checks if c.passed)
    return AgentCertification(
        level=CertificationLevel.for_score(score),
        score=score,
        checks=tuple(checks),
        stats=CertificationStats(
            total_checks=len(checks),
            passed_checks=passed,
            landmark_count=len(tree.landmarks),
            interactable_count=len(tree.interactables),
            heading_count=len(tree.headings),
            completeness=round(completeness, 4),
        ),
    )
