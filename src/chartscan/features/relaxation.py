"""
Multi-stage tolerance relaxation.

A recognizer scans once per stage. The first (strict) stage keeps every
match. Only when it finds nothing are the relaxed stages tried in order,
and the first relaxed stage that matches contributes a single candidate.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .candidates import PatternCandidate

RELAXED_PENALTY = 0.95


@dataclass(frozen=True)
class RelaxationStage:
    """One tolerance level of a relaxation schedule."""
    tolerance_multiplier: float = 1.0
    confidence_penalty: float = 1.0
    tag: Optional[str] = None
    secondary_multiplier: Optional[float] = None

    @property
    def is_strict(self) -> bool:
        return self.tag is None


STRICT = RelaxationStage()

DOUBLE_STAGES = (
    STRICT,
    RelaxationStage(1.5, RELAXED_PENALTY, "relaxed_double_x1.5"),
    RelaxationStage(2.0, RELAXED_PENALTY, "relaxed_double_x2.0"),
)

# Shoulder tolerance multiplier, head margin multiplier; tags get a per-side prefix
HEAD_SHOULDERS_STAGES = (
    STRICT,
    RelaxationStage(1.6, RELAXED_PENALTY, "x1.6_0.6", secondary_multiplier=0.6),
    RelaxationStage(2.0, RELAXED_PENALTY, "x2.0_0.4", secondary_multiplier=0.4),
)

TRIPLE_STAGES = (
    STRICT,
    RelaxationStage(1.25, RELAXED_PENALTY, "relaxed_triple_x1.25"),
    RelaxationStage(2.0, RELAXED_PENALTY, "relaxed_triple_x2.0"),
)


def run_relaxation(
    stages: Sequence[RelaxationStage],
    scan: Callable[[RelaxationStage], list[PatternCandidate]],
) -> list[PatternCandidate]:
    """
    Run a scan over a relaxation schedule.

    Args:
        stages: Strict stage first, then relaxed stages in order
        scan: Recognizer pass for one stage

    Returns:
        All strict matches, or the first match of the first relaxed stage
        that finds one
    """
    if not stages:
        return []

    strict, *relaxed = stages
    found = scan(strict)
    if found:
        return found

    for stage in relaxed:
        found = scan(stage)
        if found:
            return found[:1]
    return []
