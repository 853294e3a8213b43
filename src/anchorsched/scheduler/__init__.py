"""Scheduler package - planned date resolution over anchor graphs.

Main entry points:
- resolve: Wave-based date resolution for a group of schedule items
- validate: Structural checks (self-reference, dangling refs, cycles) before saving
- ensure_valid: validate() that raises instead of returning problems
- ensure_anchors_valid: ensure_valid() limited to references and cycles
"""

from .core import CIRCULAR_DEPENDENCY_ERROR, ResolutionSummary, resolve, summarize
from .validator import ensure_anchors_valid, ensure_valid, validate

__all__ = [
    "CIRCULAR_DEPENDENCY_ERROR",
    "ResolutionSummary",
    "resolve",
    "summarize",
    "validate",
    "ensure_valid",
    "ensure_anchors_valid",
]
