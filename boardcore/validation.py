"""
Board validation - Check boards for structural issues.

Used by the API, the CLI and the tests to check document integrity before
it is trusted by layout or rendering.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .document import MIN_STROKE_POINTS, bound_shape_ids
from .layout import compute_levels

if TYPE_CHECKING:
    from .models import Board


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a board."""
    severity: IssueSeverity
    message: str
    entity_id: Optional[str] = None
    ref_id: Optional[str] = None  # The id the entity points at, when relevant

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message,
        }
        if self.entity_id:
            result["entity_id"] = self.entity_id
        if self.ref_id:
            result["ref_id"] = self.ref_id
        return result


def validate_board(board: "Board") -> list[ValidationIssue]:
    """
    Validate a board and return a list of issues.

    Checks for:
    - Connectors bound to shapes that don't exist - ERROR
    - Causal links whose endpoints don't exist - ERROR
    - Self-referencing causal links - ERROR
    - Duplicate causal links (same from->to) - WARNING
    - Cycles in the causal graph - WARNING
    - Strokes with fewer than two points - WARNING
    - Empty board - INFO

    Args:
        board: The board to validate

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    entity_count = sum(
        len(getattr(board, attr)) for attr in (
            "shapes", "strokes", "texts", "notes", "connectors",
            "comments", "causal_nodes", "causal_links",
        )
    )
    if entity_count == 0:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Board is empty",
        ))
        return issues

    shape_ids = {s.id for s in board.shapes}
    node_ids = {n.id for n in board.causal_nodes}

    for connector in board.connectors:
        for shape_id in sorted(bound_shape_ids(connector) - shape_ids):
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Connector is bound to non-existent shape: {shape_id}",
                entity_id=connector.id,
                ref_id=shape_id,
            ))

    for link in board.causal_links:
        if link.source not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Causal link references non-existent source node: {link.source}",
                entity_id=link.id,
                ref_id=link.source,
            ))
        if link.target not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Causal link references non-existent target node: {link.target}",
                entity_id=link.id,
                ref_id=link.target,
            ))
        if link.source == link.target:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message="Causal link connects a node to itself",
                entity_id=link.id,
                ref_id=link.source,
            ))

    seen_pairs: set[tuple[str, str]] = set()
    for link in board.causal_links:
        pair = (link.source, link.target)
        if pair in seen_pairs:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Duplicate causal link from {link.source} to {link.target}",
                entity_id=link.id,
            ))
        else:
            seen_pairs.add(pair)

    _, cyclic = compute_levels(board.causal_nodes, board.causal_links)
    if cyclic:
        issues.append(ValidationIssue(
            severity=IssueSeverity.WARNING,
            message=f"Causal graph has a cycle through: {', '.join(cyclic)}",
        ))

    for stroke in board.strokes:
        if len(stroke.points) < MIN_STROKE_POINTS:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Stroke has fewer than {MIN_STROKE_POINTS} points",
                entity_id=stroke.id,
            ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    errors = len([i for i in issues if i.severity == IssueSeverity.ERROR])
    return {
        "total": len(issues),
        "errors": errors,
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": errors == 0,
    }
