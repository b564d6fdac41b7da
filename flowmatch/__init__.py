"""flowmatch: bipartite assignment via push-relabel maximum flow.

flowmatch assigns values of a set U to values of a set V (each V value with a
quantity) wherever a caller-supplied predicate allows, maximizing the number
of assignments.

Primary API:
    Matching - Build, solve, pin, extend and roll back an assignment
    FlowNetwork - Capacitated directed graph (a networkx.DiGraph)
    PushRelabelMaxFlow - Preflow-push maximum-flow solver with snapshots

Example:
    from flowmatch import Matching

    matching = Matching.new_matching(
        lambda person, role: role in skills[person],
        {"ann", "bob", "cid"},
        {"backend": 2, "frontend": 1},
    )
    matching.find_matching()
    matching.get_matches()  # {("ann", "backend"): 1, ...}
"""

from __future__ import annotations

from flowmatch import logging
from flowmatch.algorithms.push_relabel import PushRelabelMaxFlow
from flowmatch.algorithms.types import FlowSummary, SolverState
from flowmatch.config import SOLVER_CONFIG, SolverConfig
from flowmatch.exceptions import (
    AlreadyMatchedError,
    CapacityViolationError,
    InvalidArgumentError,
    MatchingError,
    NoCompatiblePathError,
    UnknownEntityError,
)
from flowmatch.graph.flow_network import FlowNetwork
from flowmatch.graph.nodes import SINK, SOURCE, Side, Terminal, ValueNode, node
from flowmatch.matching import Matching, MatchingState
from flowmatch.types.base import NodeSelection

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Matching
    "Matching",
    "MatchingState",
    # Flow network and solver
    "FlowNetwork",
    "PushRelabelMaxFlow",
    "SolverState",
    "FlowSummary",
    # Nodes
    "SOURCE",
    "SINK",
    "Side",
    "Terminal",
    "ValueNode",
    "node",
    # Configuration
    "SolverConfig",
    "SOLVER_CONFIG",
    "NodeSelection",
    # Errors
    "MatchingError",
    "InvalidArgumentError",
    "UnknownEntityError",
    "AlreadyMatchedError",
    "NoCompatiblePathError",
    "CapacityViolationError",
    # Utilities
    "logging",
]
