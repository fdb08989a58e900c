"""
Causal status propagation and rollup.

Each causal node with incoming links derives its status from its upstream
nodes:
- every link contributes status_value(upstream) * signed weight
- the score is the sum of contributions over the sum of |weight|
- score > 0.2 is "positive", < -0.2 is "negative", otherwise "neutral"
- confidence is |score| clamped to [0, 1]

Nodes are visited once in document order, so a node upstream in the list
already carries its freshly derived status when its children are visited.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Optional

from .models import NodeEvidence, Polarity, utcnow
from .utils.logging import get_logger

if TYPE_CHECKING:
    from .models import Board, CausalLink, CausalNode

logger = get_logger(__name__)

POSITIVE_THRESHOLD = 0.2
CONFIDENCE_EPSILON = 1e-4

_POSITIVE_STATUSES = {"positive", "up", "good", "ok"}
_NEGATIVE_STATUSES = {"negative", "down", "bad"}


def status_value(status: Optional[str]) -> float:
    """Numeric value of a free-text status: +1, -1 or 0."""
    value = (status or "").lower()
    if value in _POSITIVE_STATUSES:
        return 1.0
    if value in _NEGATIVE_STATUSES:
        return -1.0
    return 0.0


def link_weight(link: "CausalLink") -> float:
    """Signed weight of a link; a zero weight counts as 1."""
    weight = link.weight or 1.0
    if link.polarity == Polarity.NEGATIVE:
        weight = -weight
    return weight


def derive_status(score: float) -> str:
    if score > POSITIVE_THRESHOLD:
        return "positive"
    if score < -POSITIVE_THRESHOLD:
        return "negative"
    return "neutral"


def _incoming_links(links: Iterable["CausalLink"]) -> dict[str, list["CausalLink"]]:
    incoming: dict[str, list["CausalLink"]] = {}
    for link in links:
        incoming.setdefault(link.target, []).append(link)
    return incoming


def gather_evidence(
    links: list["CausalLink"],
    nodes: dict[str, "CausalNode"],
) -> list[NodeEvidence]:
    """Evidence for one node from its incoming links; unknown sources are skipped."""
    evidence = []
    for link in links:
        src = nodes.get(link.source)
        if src is None:
            continue
        evidence.append(NodeEvidence(
            source_id=src.id,
            source_label=src.label,
            status=src.status,
            confidence=src.confidence,
            polarity=link.polarity,
            weight=link.weight,
            contribution=status_value(src.status) * link_weight(link),
        ))
    return evidence


def propagate(board: "Board", now: Optional[datetime] = None) -> "Board":
    """
    Recompute derived status for every node with upstream evidence, in-place.

    statusUpdatedAt only moves when the status changes or the confidence
    differs by more than CONFIDENCE_EPSILON.

    Args:
        board: Board whose causal nodes are updated
        now: Timestamp for changed nodes; defaults to the current UTC time

    Returns:
        The same board, for chaining
    """
    now = now or utcnow()
    nodes = {n.id: n for n in board.causal_nodes}
    incoming = _incoming_links(board.causal_links)
    changed = 0

    for node in board.causal_nodes:
        evidence = gather_evidence(incoming.get(node.id, []), nodes)
        if not evidence:
            continue
        weight_sum = sum(abs(ev.weight) for ev in evidence)
        if weight_sum == 0:
            continue

        score = sum(ev.contribution for ev in evidence) / weight_sum
        status = derive_status(score)
        confidence = min(max(abs(score), 0.0), 1.0)
        if status != node.status or abs(confidence - (node.confidence or 0.0)) > CONFIDENCE_EPSILON:
            node.status = status
            node.confidence = confidence
            node.status_updated_at = now
            changed += 1
        node.evidence = evidence

    if changed:
        logger.debug("causal status propagated", board_id=board.id, changed=changed)
    return board


# --- Rollup ---

@dataclass
class EvidenceSummary:
    """Counts of upstream nodes by status."""
    positive: int = 0
    negative: int = 0
    neutral: int = 0

    def to_dict(self) -> dict:
        return {"positive": self.positive, "negative": self.negative, "neutral": self.neutral}


@dataclass
class NodeRollup:
    """What a node's status is built from, for display next to the node."""
    node_id: str
    status: Optional[str]
    confidence: Optional[float]
    evidence: list[NodeEvidence] = field(default_factory=list)
    summary: EvidenceSummary = field(default_factory=EvidenceSummary)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "nodeId": self.node_id,
            "status": self.status,
            "confidence": self.confidence,
            "evidence": [ev.model_dump(by_alias=True, mode="json") for ev in self.evidence],
            "summary": self.summary.to_dict(),
        }


def status_rollup(board: "Board") -> dict[str, NodeRollup]:
    """
    Per-node evidence and summary counts, without changing the board.

    Upstream statuses other than "positive" and "negative" (including
    missing ones) count as neutral.
    """
    nodes = {n.id: n for n in board.causal_nodes}
    incoming = _incoming_links(board.causal_links)
    rollup: dict[str, NodeRollup] = {}

    for node in board.causal_nodes:
        evidence = gather_evidence(incoming.get(node.id, []), nodes)
        summary = EvidenceSummary()
        for ev in evidence:
            if ev.status == "positive":
                summary.positive += 1
            elif ev.status == "negative":
                summary.negative += 1
            else:
                summary.neutral += 1
        rollup[node.id] = NodeRollup(
            node_id=node.id,
            status=node.status,
            confidence=node.confidence,
            evidence=evidence,
            summary=summary,
        )
    return rollup


# --- Group tags ---

def known_groups(nodes: Iterable["CausalNode"]) -> list[str]:
    """Sorted distinct non-empty group tags."""
    return sorted({n.group for n in nodes if n.group})


def assign_group(nodes: Iterable["CausalNode"], tag: Optional[str]) -> int:
    """
    Set (or clear, for an empty tag) the group of every node given.

    Returns:
        Number of nodes whose group actually changed
    """
    value = (tag or "").strip() or None
    changed = 0
    for node in nodes:
        if node.group != value:
            node.group = value
            changed += 1
    return changed
