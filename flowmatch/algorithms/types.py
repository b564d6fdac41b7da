"""Types and data structures for solver state and analytics.

Defines immutable snapshot and summary containers returned by the solver.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Hashable, List, Mapping, Set, Tuple

# Arc identifier tuple: (origin_node, destination_node)
Arc = Tuple[Hashable, Hashable]


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class SolverState:
    """Snapshot of push-relabel progress.

    Each mapping is a private copy wrapped read-only, so later solver work
    never shows through a snapshot and a snapshot cannot be edited.

    Attributes:
        flows: Flow per arc, indexed by ``(origin, destination)``.
        excess: Excess per node (inflow minus outflow).
        heights: Height label per node.
        pinned: Flow per arc that the solver may not cancel.
    """

    flows: Mapping[Arc, int]
    excess: Mapping[Hashable, int]
    heights: Mapping[Hashable, int]
    pinned: Mapping[Arc, int]

    @classmethod
    def capture(
        cls,
        flows: Mapping[Arc, int],
        excess: Mapping[Hashable, int],
        heights: Mapping[Hashable, int],
        pinned: Mapping[Arc, int],
    ) -> SolverState:
        """Build a state from live mappings, copying each one."""
        return cls(_frozen(flows), _frozen(excess), _frozen(heights), _frozen(pinned))


@dataclass(frozen=True)
class FlowSummary:
    """Summary of max-flow computation results.

    Captures arc flows, residual capacities, reachable set, and min-cut.

    Attributes:
        total_flow: Flow value delivered to the sink.
        edge_flow: Flow amount per arc, indexed by ``(origin, destination)``.
        residual_cap: Remaining capacity per arc after placement.
        reachable: Nodes reachable from source in the residual graph.
        min_cut: Saturated arcs crossing the reachable/unreachable cut.
    """

    total_flow: int
    edge_flow: Dict[Arc, int]
    residual_cap: Dict[Arc, int]
    reachable: Set[Hashable]
    min_cut: List[Arc]
