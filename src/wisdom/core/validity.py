# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Evidence and validity analysis over the relation graph.

Pure functions: callers supply relations and fragment lookups, this module
does the arithmetic and the traversal. Nothing here talks to the network.

- Evidence balance: sum of SUPPORTS minus CONTRADICTS confidence toward a thesis.
- Contradictions: CONTRADICTS relations toward a fragment, with placeholders
  for sources that cannot be resolved.
- Derivation chain: depth-first walk of DERIVED_FROM edges that reports
  structural problems as data, never as exceptions.
- Context selection: relevance ranking of search results under a token budget.

The evidence score is a plain sum. Trust propagation along agent paths is
not modelled.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..gateway.types import Fragment, FragmentState, Relation, RelationType
from .response import WisdomResponse

logger = logging.getLogger(__name__)

# Verdict thresholds on the unrounded net score
SUPPORT_THRESHOLD = 0.5
CONTEST_THRESHOLD = -0.5

DEFAULT_MAX_DEPTH = 10
LOW_CONFIDENCE_THRESHOLD = 0.3

DEFAULT_TOKEN_BUDGET = 10000
DEFAULT_MIN_CONFIDENCE = 0.3
SEARCH_LIMIT = 50
CHARS_PER_TOKEN = 4
FRAGMENT_OVERHEAD_CHARS = 100

PREVIEW_LENGTH = 200
NOT_FOUND_CONTENT = "[Fragment not found]"
UNAVAILABLE_CONTENT = "[Fragment unavailable]"


def truncate(text: str, length: int = PREVIEW_LENGTH) -> str:
    return text[:length] + "..." if len(text) > length else text


def _round(value: float) -> float:
    return round(value, 2)


# =============================================================================
# EVIDENCE BALANCE
# =============================================================================


class Verdict(str, Enum):
    WELL_SUPPORTED = "well_supported"
    CONTESTED = "contested"
    NEUTRAL = "neutral"


@dataclass
class EvidenceItem:
    fragment_id: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {"fragment_id": self.fragment_id, "confidence": self.confidence}


@dataclass
class EvidenceBalance:
    """Support and contradiction weight toward one thesis fragment."""

    thesis_id: str
    supporting: list[EvidenceItem] = field(default_factory=list)
    contradicting: list[EvidenceItem] = field(default_factory=list)
    support_score: float = 0.0
    contradict_score: float = 0.0

    @property
    def net_score(self) -> float:
        return self.support_score - self.contradict_score

    @property
    def verdict(self) -> Verdict:
        # Strict comparison: a net of exactly 0.5 (e.g. 0.8 - 0.3) stays neutral
        net = self.net_score
        if net > SUPPORT_THRESHOLD:
            return Verdict.WELL_SUPPORTED
        if net < CONTEST_THRESHOLD:
            return Verdict.CONTESTED
        return Verdict.NEUTRAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "thesis_id": self.thesis_id,
            "supporting": [e.to_dict() for e in self.supporting],
            "contradicting": [e.to_dict() for e in self.contradicting],
            "support_score": _round(self.support_score),
            "contradict_score": _round(self.contradict_score),
            "net_score": _round(self.net_score),
            "verdict": self.verdict.value,
        }


def compute_evidence_balance(thesis_id: str, relations: Iterable[Relation]) -> EvidenceBalance:
    """Sum SUPPORTS and CONTRADICTS confidence on relations pointing at ``thesis_id``."""
    thesis_id = thesis_id.lower()
    balance = EvidenceBalance(thesis_id=thesis_id)
    for relation in relations:
        if relation.target.entity != thesis_id:
            continue
        item = EvidenceItem(fragment_id=relation.source.entity, confidence=relation.confidence)
        if relation.type is RelationType.SUPPORTS:
            balance.supporting.append(item)
            balance.support_score += relation.confidence
        elif relation.type is RelationType.CONTRADICTS:
            balance.contradicting.append(item)
            balance.contradict_score += relation.confidence
    return balance


# =============================================================================
# CONTRADICTIONS
# =============================================================================


def contradicting_relations(fragment_id: str, relations: Iterable[Relation]) -> list[Relation]:
    fragment_id = fragment_id.lower()
    return [r for r in relations if r.target.entity == fragment_id and r.type is RelationType.CONTRADICTS]


def contradiction_entry(relation: Relation, lookup: WisdomResponse) -> dict[str, Any]:
    """Describe the source of a CONTRADICTS relation.

    ``lookup`` is the result of fetching the source fragment. A failed
    lookup yields a placeholder instead of failing the whole analysis.
    """
    if lookup.success:
        fragment: Fragment = lookup.data
        return {
            "uuid": fragment.uuid,
            "content": truncate(fragment.content),
            "confidence": fragment.confidence,
            "relation_confidence": relation.confidence,
            "creator": fragment.creator.to_string(),
        }

    source_id = relation.source.entity
    if lookup.not_found:
        logger.info(f"Contradicting fragment {source_id} not found, using placeholder")
        content = NOT_FOUND_CONTENT
    else:
        logger.warning(f"Could not load contradicting fragment {source_id}: {lookup.error}")
        content = UNAVAILABLE_CONTENT

    entry: dict[str, Any] = {
        "uuid": source_id,
        "content": content,
        "confidence": 0,
        "relation_confidence": relation.confidence,
        "creator": "unknown",
    }
    if not lookup.not_found:
        entry["error"] = lookup.error
    return entry


# =============================================================================
# DERIVATION CHAIN
# =============================================================================


class ChainValidity(str, Enum):
    VALID = "valid"
    CONDITIONAL = "conditional"
    CONTESTED = "contested"
    BROKEN = "broken"


class IssueType(str, Enum):
    MISSING_REFERENCE = "missing_reference"
    CONTESTED_PREMISE = "contested_premise"
    LOW_CONFIDENCE = "low_confidence"
    UNVERIFIED_SOURCE = "unverified_source"
    CIRCULAR_DEPENDENCY = "circular_dependency"


ISSUE_SEVERITY = {
    IssueType.MISSING_REFERENCE: 1.0,
    IssueType.CIRCULAR_DEPENDENCY: 1.0,
    IssueType.CONTESTED_PREMISE: 0.7,
    IssueType.UNVERIFIED_SOURCE: 0.5,
    IssueType.LOW_CONFIDENCE: 0.3,
}

_BREAKING = {IssueType.MISSING_REFERENCE, IssueType.CIRCULAR_DEPENDENCY}
_CONTESTING = {IssueType.CONTESTED_PREMISE}
_CONDITIONAL = {IssueType.UNVERIFIED_SOURCE, IssueType.LOW_CONFIDENCE}


@dataclass
class ValidityIssue:
    fragment_id: str
    issue_type: IssueType
    description: str

    @property
    def severity(self) -> float:
        return ISSUE_SEVERITY[self.issue_type]

    def to_dict(self) -> dict[str, Any]:
        return {
            "fragment_id": self.fragment_id,
            "issue_type": self.issue_type.value,
            "description": self.description,
            "severity": self.severity,
        }


@dataclass
class ChainLink:
    fragment_id: str
    depth: int
    derives_from: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"fragment_id": self.fragment_id, "depth": self.depth, "derives_from": self.derives_from}


@dataclass
class DerivationReport:
    fragment_id: str
    chain: list[ChainLink] = field(default_factory=list)
    issues: list[ValidityIssue] = field(default_factory=list)

    @property
    def validity(self) -> ChainValidity:
        kinds = {issue.issue_type for issue in self.issues}
        if kinds & _BREAKING:
            return ChainValidity.BROKEN
        if kinds & _CONTESTING:
            return ChainValidity.CONTESTED
        if kinds & _CONDITIONAL:
            return ChainValidity.CONDITIONAL
        return ChainValidity.VALID

    def has_issue(self, issue_type: IssueType, fragment_id: str | None = None) -> bool:
        return any(
            i.issue_type is issue_type and (fragment_id is None or i.fragment_id == fragment_id) for i in self.issues
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fragment_id": self.fragment_id,
            "validity": self.validity.value,
            "chain_depth": len(self.chain),
            "derivation_chain": [link.to_dict() for link in self.chain],
            "issues": [issue.to_dict() for issue in self.issues],
        }


_ENTER = "enter"
_EXIT = "exit"


def check_derivation_chain(
    fragment_id: str,
    relations_of: Callable[[str], Iterable[Relation]],
    fetch_fragment: Callable[[str], WisdomResponse],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> DerivationReport:
    """Walk DERIVED_FROM edges outward from ``fragment_id``.

    Args:
        fragment_id: Root of the chain
        relations_of: Returns the relations whose source is the given fragment
        fetch_fragment: Looks a fragment up; a ``not_found`` failure means the
            reference is dangling, any other failure means it is unverified
        max_depth: Nodes deeper than this are not expanded

    The walk uses an explicit stack. A source that is still on the current
    path is a circular dependency; a source reached again along a different
    path (a diamond) is only expanded once. Only sources that were found
    are descended into.
    """
    root = fragment_id.lower()
    report = DerivationReport(fragment_id=root)
    on_path: set[str] = set()
    expanded: set[str] = set()
    stack: list[tuple[str, str, int]] = [(_ENTER, root, 0)]

    while stack:
        action, current, depth = stack.pop()

        if action == _EXIT:
            on_path.discard(current)
            continue

        if current in on_path:
            report.issues.append(
                ValidityIssue(
                    fragment_id=current,
                    issue_type=IssueType.CIRCULAR_DEPENDENCY,
                    description=f"Circular dependency detected at fragment {current}",
                )
            )
            continue
        if depth > max_depth or current in expanded:
            continue

        on_path.add(current)
        expanded.add(current)
        stack.append((_EXIT, current, depth))

        derives_from = [
            r.target.entity
            for r in relations_of(current)
            if r.type is RelationType.DERIVED_FROM and r.source.entity == current
        ]
        report.chain.append(ChainLink(fragment_id=current, depth=depth, derives_from=derives_from))

        descend = []
        for source_id in derives_from:
            if _check_source(report, current, source_id, fetch_fragment(source_id)):
                descend.append(source_id)

        # Reversed so the first source is expanded first
        for source_id in reversed(descend):
            stack.append((_ENTER, source_id, depth + 1))

    return report


def _check_source(report: DerivationReport, current: str, source_id: str, lookup: WisdomResponse) -> bool:
    """Record issues for one claimed source. Returns True when it should be descended into."""
    if lookup.not_found:
        report.issues.append(
            ValidityIssue(
                fragment_id=current,
                issue_type=IssueType.MISSING_REFERENCE,
                description=f"Fragment {current} derives from non-existent fragment {source_id}",
            )
        )
        return False
    if not lookup.success:
        logger.warning(f"Could not verify source {source_id} of {current}: {lookup.error}")
        report.issues.append(
            ValidityIssue(
                fragment_id=current,
                issue_type=IssueType.UNVERIFIED_SOURCE,
                description=f"Source fragment {source_id} of {current} could not be checked: {lookup.error}",
            )
        )
        return False

    source: Fragment = lookup.data
    if source.state is FragmentState.CONTESTED:
        report.issues.append(
            ValidityIssue(
                fragment_id=source_id,
                issue_type=IssueType.CONTESTED_PREMISE,
                description=f"Fragment {current} derives from contested fragment {source_id}",
            )
        )
    if source.confidence < LOW_CONFIDENCE_THRESHOLD:
        report.issues.append(
            ValidityIssue(
                fragment_id=source_id,
                issue_type=IssueType.LOW_CONFIDENCE,
                description=f"Fragment {current} derives from low-confidence fragment {source_id} "
                f"(confidence {source.confidence})",
            )
        )
    return True


# =============================================================================
# CONTEXT SELECTION
# =============================================================================


def relevance_score(fragment: Fragment) -> float:
    """Trust score rescaled from [-1, 1] to [0, 1], weighted by confidence."""
    return (fragment.trust_summary.score + 1) / 2 * fragment.confidence


def fragment_cost(fragment: Fragment) -> int:
    """Approximate size in characters, including metadata overhead."""
    return len(fragment.content) + FRAGMENT_OVERHEAD_CHARS


@dataclass
class ContextSelection:
    task: str
    token_budget: int
    fragments_found: int
    selected: list[tuple[Fragment, float]] = field(default_factory=list)
    total_chars: int = 0

    @property
    def estimated_tokens(self) -> int:
        return math.ceil(self.total_chars / CHARS_PER_TOKEN)

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task,
            "token_budget": self.token_budget,
            "estimated_tokens": self.estimated_tokens,
            "fragments_found": self.fragments_found,
            "fragments_returned": len(self.selected),
            "fragments": [
                {
                    "uuid": f.uuid,
                    "content": f.content,
                    "confidence": f.confidence,
                    "evidence_type": f.evidence_type.value,
                    "trust_score": f.trust_summary.score,
                    "relevance_score": _round(score),
                }
                for f, score in self.selected
            ],
        }


def select_context(
    task: str,
    fragments: list[Fragment],
    token_budget: int = DEFAULT_TOKEN_BUDGET,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> ContextSelection:
    """Greedy selection of the most relevant fragments within a token budget.

    Fragments below ``min_confidence`` are dropped, the rest are ranked by
    relevance (stable, so ties keep search order) and accepted until the
    next one would exceed ``token_budget * 4`` characters.
    """
    selection = ContextSelection(task=task, token_budget=token_budget, fragments_found=len(fragments))
    candidates = [(f, relevance_score(f)) for f in fragments if f.confidence >= min_confidence]
    candidates.sort(key=lambda pair: pair[1], reverse=True)

    budget_chars = token_budget * CHARS_PER_TOKEN
    for fragment, score in candidates:
        cost = fragment_cost(fragment)
        if selection.total_chars + cost > budget_chars:
            break
        selection.total_chars += cost
        selection.selected.append((fragment, score))

    logger.debug(
        f"Selected {len(selection.selected)}/{len(fragments)} fragments, "
        f"~{selection.estimated_tokens} of {token_budget} tokens"
    )
    return selection
