"""Bipartite assignment on top of the push-relabel solver.

`Matching` turns a U set, a V set (optionally with a quantity per V value) and
a compatibility predicate into a flow network:

    Source --1--> u --1--> v --quantity(v)--> Sink

for every ``u`` in U and every ``v`` in V with ``predicate(u, v)``. The maximum
flow of this network is a maximum-cardinality assignment that respects the V
quantities. Pairs can be pinned by hand, U capacities raised, and the whole
state captured and rolled back.

Example:
    >>> compatible = {("ann", "day"), ("bob", "day"), ("bob", "night")}
    >>> m = Matching.new_matching(
    ...     lambda u, v: (u, v) in compatible, {"ann", "bob"}, {"day", "night"}
    ... )
    >>> m.find_matching()
    2
    >>> sorted(m.get_matches().items())
    [(('ann', 'day'), 1), (('bob', 'night'), 1)]
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from flowmatch.algorithms.push_relabel import PushRelabelMaxFlow
from flowmatch.algorithms.types import Arc, SolverState
from flowmatch.config import SOLVER_CONFIG, SolverConfig
from flowmatch.exceptions import (
    AlreadyMatchedError,
    InvalidArgumentError,
    NoCompatiblePathError,
    UnknownEntityError,
)
from flowmatch.graph.flow_network import CAPACITY_ATTR, FLOW_ATTR, FlowNetwork
from flowmatch.graph.nodes import SINK, SOURCE, ValueNode, u_node, v_node
from flowmatch.logging import get_logger

LOGGER = get_logger(__name__)

U = TypeVar("U")
V = TypeVar("V")


@dataclass(frozen=True)
class MatchingState:
    """Snapshot of a `Matching`.

    Attributes:
        solver: Flows, excesses, heights and pins of the solver.
        capacities: Capacity of every arc when the snapshot was taken.
    """

    solver: SolverState
    capacities: Mapping[Arc, int]


def _require(value: Any, name: str) -> None:
    if value is None:
        raise InvalidArgumentError(f"{name} must not be None.")


def _require_positive_int(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgumentError(f"{name} must be a positive integer, got {value!r}.")


class Matching(Generic[U, V]):
    """Maximum bipartite assignment with pinning, capacity increases and rollback.

    Build instances with `new_matching`. The matching owns its network and
    solver; it is not safe for concurrent use.
    """

    def __init__(
        self, network: FlowNetwork, config: Optional[SolverConfig] = None
    ) -> None:
        _require(network, "Network")
        self._network = network
        self._solver = PushRelabelMaxFlow(network, config)

    @classmethod
    def new_matching(
        cls,
        predicate: Callable[[U, V], bool],
        u_set: Iterable[U],
        v_set: Any,
        config: Optional[SolverConfig] = None,
    ) -> Matching[U, V]:
        """Build the assignment network.

        Every ``u`` gets an arc from Source with capacity 1, every ``v`` an arc
        to Sink with its quantity, and every compatible pair an arc ``u -> v``
        with capacity 1. The predicate is called exactly once per pair.

        Args:
            predicate: ``predicate(u, v)`` returns truthy when ``u`` may be
                assigned to ``v``.
            u_set: The U values.
            v_set: Either a mapping ``{v: quantity}`` or an iterable of V values,
                each getting ``config.default_quantity``.
            config: Solver configuration; defaults to ``SOLVER_CONFIG``.

        Returns:
            Matching: A matching with no flow placed yet.

        Raises:
            InvalidArgumentError: If an argument is None, the predicate is not
                callable, a value is not hashable or a quantity is not a
                positive integer.
        """
        _require(predicate, "Match predicate")
        _require(u_set, "U set")
        _require(v_set, "V set")
        if not callable(predicate):
            raise InvalidArgumentError(
                f"Match predicate must be callable, got {type(predicate).__name__}."
            )
        config = config if config is not None else SOLVER_CONFIG

        quantities: Dict[V, int] = {}
        if isinstance(v_set, Mapping):
            quantities.update(v_set)
        else:
            for v in v_set:
                v_node(v)
                quantities[v] = config.default_quantity
        for v, quantity in quantities.items():
            _require(v, "V value")
            _require_positive_int(quantity, f"Quantity of {v!r}")

        us: List[U] = []
        for u in u_set:
            _require(u, "U value")
            u_node(u)
            us.append(u)
        us = list(dict.fromkeys(us))

        network = FlowNetwork(SOURCE, SINK)
        for v, quantity in quantities.items():
            network.set_arc_capacity(quantity, v_node(v), SINK)

        pairs = 0
        for u in us:
            u_n = u_node(u)
            network.set_arc_capacity(1, SOURCE, u_n)
            for v in quantities:
                if predicate(u, v):
                    network.set_arc_capacity(1, u_n, v_node(v))
                    pairs += 1

        LOGGER.debug(
            f"Built matching network: {len(us)} U values, {len(quantities)} V values, "
            f"{pairs} compatible pairs"
        )
        return cls(network, config)

    @property
    def network(self) -> FlowNetwork:
        return self._network

    @property
    def solver(self) -> PushRelabelMaxFlow:
        return self._solver

    @property
    def match_count(self) -> int:
        """Total number of assigned units."""
        return self._solver.flow_value

    def find_matching(self) -> int:
        """Extend the current assignment to a maximum one.

        Pinned pairs are kept.

        Returns:
            int: Total number of assigned units.
        """
        return self._solver.preflow_push()

    def get_matches(self) -> Dict[Tuple[U, V], int]:
        """Return ``{(u, v): units}`` for every pair carrying flow."""
        matches: Dict[Tuple[U, V], int] = {}
        sink_adjacent = set(self._network.pred[SINK])
        for u_n in self._network.succ[SOURCE]:
            for v_n, attrs in self._network.succ[u_n].items():
                if v_n in sink_adjacent and attrs[FLOW_ATTR] > 0:
                    matches[(u_n.value, v_n.value)] = attrs[FLOW_ATTR]
        return matches

    def increase_u_count(self, u: U, increase: int) -> None:
        """Let ``u`` be assigned ``increase`` more times.

        Raises the capacity of arc (Source, u) and of every compatible arc
        (u, v) by ``increase``.

        Args:
            u: A U value of this matching.
            increase: Positive integer increment.

        Raises:
            InvalidArgumentError: If ``u`` is None or ``increase`` is not a
                positive integer.
            UnknownEntityError: If ``u`` is not part of this matching.
        """
        _require(u, "U value")
        _require_positive_int(increase, "Increase")
        u_n = self._known_u(u)

        current = self._network.get_arc_capacity(SOURCE, u_n)
        self._network.set_arc_capacity(current + increase, SOURCE, u_n)
        for v_n, attrs in list(self._network.succ[u_n].items()):
            if attrs[CAPACITY_ATTR] > 0:
                self._network.set_arc_capacity(
                    attrs[CAPACITY_ATTR] + increase, u_n, v_n
                )
        LOGGER.debug(f"Raised count of {u!r} from {current} to {current + increase}")

    def set_match(self, u: U, v: V) -> None:
        """Pin one unit of assignment between ``u`` and ``v``.

        Does nothing if the pair already carries flow. Pinned pairs survive
        later `find_matching` calls.

        Raises:
            InvalidArgumentError: If ``u`` or ``v`` is None.
            AlreadyMatchedError: If ``u`` or ``v`` has no capacity left.
            UnknownEntityError: If ``u`` or ``v`` is not part of this matching.
            NoCompatiblePathError: If the predicate rejected the pair.
        """
        _require(u, "U value")
        _require(v, "V value")
        network = self._network
        u_n = u_node(u)
        v_n = v_node(v)

        if network.get_arc_flow(u_n, v_n) > 0:
            LOGGER.debug(f"{u!r} and {v!r} are already matched")
            return
        if network.residual_capacity(SOURCE, u_n) <= 0:
            if network.has_edge(SOURCE, u_n):
                raise AlreadyMatchedError(f"{u!r} has already been matched.")
            raise UnknownEntityError(f"{u!r} is not part of this matching.")
        if network.residual_capacity(v_n, SINK) <= 0:
            if network.has_edge(v_n, SINK):
                raise AlreadyMatchedError(f"{v!r} has already been matched.")
            raise UnknownEntityError(f"{v!r} is not part of this matching.")
        if network.get_arc_capacity(u_n, v_n) <= 0:
            raise NoCompatiblePathError(f"There is no path between {u!r} and {v!r}.")

        self._solver.push_flow(1, SOURCE, u_n, pin=True)
        self._solver.push_flow(1, u_n, v_n, pin=True)
        self._solver.push_flow(1, v_n, SINK, pin=True)

    def u_values(self) -> List[U]:
        return [n.value for n in self._network.succ[SOURCE]]

    def v_values(self) -> List[V]:
        return [n.value for n in self._network.pred[SINK]]

    def unmatched_u(self) -> List[U]:
        """Return U values that can still be assigned."""
        return [
            n.value
            for n in self._network.succ[SOURCE]
            if self._network.residual_capacity(SOURCE, n) > 0
        ]

    def unmatched_v(self) -> List[V]:
        """Return V values with open quantity."""
        return [
            n.value
            for n in self._network.pred[SINK]
            if self._network.residual_capacity(n, SINK) > 0
        ]

    def get_state(self) -> MatchingState:
        """Capture the assignment, solver progress and capacities."""
        capacities = {
            (origin, destination): capacity
            for origin, destination, capacity, _flow in self._network.arcs()
        }
        return MatchingState(self._solver.get_state(), MappingProxyType(capacities))

    def restore(self, state: MatchingState) -> None:
        """Roll back to ``state``, discarding everything done since.

        Raises:
            InvalidArgumentError: If ``state`` is not a `MatchingState` of this
                matching.
        """
        if not isinstance(state, MatchingState):
            raise InvalidArgumentError(
                f"Expected a MatchingState, got {type(state).__name__}."
            )
        if not isinstance(state.solver, SolverState):
            raise InvalidArgumentError(
                f"Expected a SolverState, got {type(state.solver).__name__}."
            )
        snapshot_arcs = (
            set(state.capacities) | set(state.solver.flows) | set(state.solver.pinned)
        )
        for arc in snapshot_arcs:
            if not self._network.has_edge(*arc):
                raise InvalidArgumentError(
                    f"Arc '{arc[0]}' -> '{arc[1]}' does not belong to this matching."
                )
        for arc, capacity in state.capacities.items():
            if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0:
                raise InvalidArgumentError(
                    f"Snapshot capacity {capacity!r} on arc '{arc[0]}' -> '{arc[1]}' "
                    f"is not a non-negative integer."
                )
        for arc, flow in state.solver.flows.items():
            capacity = state.capacities.get(arc, self._network.get_arc_capacity(*arc))
            if not 0 <= flow <= capacity:
                raise InvalidArgumentError(
                    f"Snapshot flow {flow} on arc '{arc[0]}' -> '{arc[1]}' is outside "
                    f"[0, {capacity}]."
                )

        # Clear flows first so capacities can drop back below them
        self._network.reset_flows()
        for (origin, destination), capacity in state.capacities.items():
            self._network.set_arc_capacity(capacity, origin, destination)
        self._solver.restore(state.solver)

    def _known_u(self, u: U) -> ValueNode:
        u_n = u_node(u)
        if not self._network.has_edge(SOURCE, u_n):
            raise UnknownEntityError(f"{u!r} is not part of this matching.")
        return u_n
