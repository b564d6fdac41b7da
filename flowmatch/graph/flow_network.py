"""Directed flow network with per-arc capacity and flow.

`FlowNetwork` extends `networkx.DiGraph`. Every arc stores two integer
attributes, ``capacity`` and ``flow``, with ``0 <= flow <= capacity``. Arcs are
created lazily by `set_arc_capacity` and never removed. Adjacency queries
(`get_successors`, `get_predecessors`) describe the residual graph: an arc
with spare capacity, or a reverse pseudo-arc backed by existing flow that can
be cancelled.
"""

from __future__ import annotations

from pickle import dumps, loads
from typing import Any, Dict, Hashable, Iterator, Mapping, Set, Tuple

import networkx as nx

from flowmatch.exceptions import CapacityViolationError, InvalidArgumentError
from flowmatch.graph.nodes import SINK, SOURCE

NodeID = Hashable
Arc = Tuple[NodeID, NodeID]
ArcTuple = Tuple[NodeID, NodeID, int, int]

CAPACITY_ATTR = "capacity"
FLOW_ATTR = "flow"


class FlowNetwork(nx.DiGraph):
    """A directed graph carrying integer capacities and flows.

    This class enforces:
      - Capacities are non-negative integers and never drop below the
        current flow of their arc.
      - Flow only changes through `add_arc_flow` (or bulk `set_flows`), which
        cancels reverse flow before using forward capacity.
      - Unknown arcs read as capacity 0 and flow 0 instead of failing.

    Inherits from:
        networkx.DiGraph
    """

    def __init__(
        self, source: NodeID = SOURCE, sink: NodeID = SINK, **attr: Any
    ) -> None:
        """Initialize a network containing only its two terminals.

        Args:
            source: Node used as the flow source.
            sink: Node used as the flow sink.
            **attr: Graph attributes forwarded to ``networkx.DiGraph``.

        Raises:
            InvalidArgumentError: If source and sink are the same node.
        """
        if source == sink:
            raise InvalidArgumentError(
                f"Source and sink must differ, got '{source}' for both."
            )
        super().__init__(**attr)
        self._source = source
        self._sink = sink
        super().add_node(source)
        super().add_node(sink)

    @property
    def source(self) -> NodeID:
        return self._source

    @property
    def sink(self) -> NodeID:
        return self._sink

    def copy(self, as_view: bool = False, pickle: bool = True) -> FlowNetwork:
        """Create a copy of this network.

        By default, use pickle-based deep copying. If ``pickle=False``,
        call the parent class's copy, which supports views.

        Args:
            as_view: If True, return a view instead of a full copy; only used
                if ``pickle=False``.
            pickle: If True, perform a pickle-based deep copy.

        Returns:
            FlowNetwork: A new instance (or view) of the network.
        """
        if not pickle:
            return super().copy(as_view=as_view)  # type: ignore[return-value]
        return loads(dumps(self))

    #
    # Capacity management
    #
    def set_arc_capacity(
        self, capacity: int, origin: NodeID, destination: NodeID
    ) -> None:
        """Create the arc ``origin -> destination`` or overwrite its capacity.

        Missing nodes are added. A new arc starts with zero flow.

        Args:
            capacity: New non-negative integer capacity.
            origin: Tail of the arc.
            destination: Head of the arc.

        Raises:
            InvalidArgumentError: If capacity is not a non-negative integer, is
                below the arc's current flow, or the arc is a self-loop.
        """
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise InvalidArgumentError(
                f"Capacity must be an integer, got {capacity!r}."
            )
        if capacity < 0:
            raise InvalidArgumentError(
                f"Capacity must be non-negative, got {capacity} for arc "
                f"'{origin}' -> '{destination}'."
            )
        if origin == destination:
            raise InvalidArgumentError(f"Self-loop arcs are not allowed: '{origin}'.")

        if self.has_edge(origin, destination):
            attrs = self[origin][destination]
            if capacity < attrs[FLOW_ATTR]:
                raise InvalidArgumentError(
                    f"Capacity {capacity} is below the current flow "
                    f"{attrs[FLOW_ATTR]} of arc '{origin}' -> '{destination}'."
                )
            attrs[CAPACITY_ATTR] = capacity
        else:
            self.add_edge(
                origin, destination, **{CAPACITY_ATTR: capacity, FLOW_ATTR: 0}
            )

    def get_arc_capacity(self, origin: NodeID, destination: NodeID) -> int:
        """Return the capacity of an arc, or 0 if the arc does not exist."""
        if not self.has_edge(origin, destination):
            return 0
        return self[origin][destination][CAPACITY_ATTR]

    def get_arc_flow(self, origin: NodeID, destination: NodeID) -> int:
        """Return the flow on an arc, or 0 if the arc does not exist."""
        if not self.has_edge(origin, destination):
            return 0
        return self[origin][destination][FLOW_ATTR]

    def residual_capacity(self, origin: NodeID, destination: NodeID) -> int:
        """Return how much more flow can move from origin to destination.

        Counts spare capacity on the forward arc plus flow on the reverse
        arc, which can be cancelled.
        """
        residual = 0
        if self.has_edge(origin, destination):
            attrs = self[origin][destination]
            residual += attrs[CAPACITY_ATTR] - attrs[FLOW_ATTR]
        if self.has_edge(destination, origin):
            residual += self[destination][origin][FLOW_ATTR]
        return residual

    #
    # Residual adjacency
    #
    def get_successors(self, n: NodeID) -> Set[NodeID]:
        """Return nodes reachable from ``n`` over one residual arc.

        Args:
            n: The node to inspect. Unknown nodes have no successors.

        Returns:
            Set[NodeID]: Heads of forward arcs with spare capacity and tails
                of arcs carrying flow into ``n``.
        """
        if n not in self:
            return set()
        found = {
            dst
            for dst, attrs in self.succ[n].items()
            if attrs[CAPACITY_ATTR] > attrs[FLOW_ATTR]
        }
        found.update(src for src, attrs in self.pred[n].items() if attrs[FLOW_ATTR] > 0)
        return found

    def get_predecessors(self, n: NodeID) -> Set[NodeID]:
        """Return nodes that reach ``n`` over one residual arc.

        Args:
            n: The node to inspect. Unknown nodes have no predecessors.

        Returns:
            Set[NodeID]: Tails of arcs into ``n`` with spare capacity and heads
                of arcs carrying flow out of ``n``.
        """
        if n not in self:
            return set()
        found = {
            src
            for src, attrs in self.pred[n].items()
            if attrs[CAPACITY_ATTR] > attrs[FLOW_ATTR]
        }
        found.update(dst for dst, attrs in self.succ[n].items() if attrs[FLOW_ATTR] > 0)
        return found

    def residual_neighbors(self, n: NodeID) -> Iterator[Tuple[NodeID, int]]:
        """Yield ``(neighbor, residual_capacity)`` for every residual arc out of ``n``.

        Neighbors come in arc insertion order: heads of outgoing arcs first,
        then tails of incoming arcs that are not also heads.
        """
        if n not in self:
            return
        for other in self.succ[n]:
            residual = self.residual_capacity(n, other)
            if residual > 0:
                yield other, residual
        for other, attrs in self.pred[n].items():
            if other not in self.succ[n] and attrs[FLOW_ATTR] > 0:
                yield other, attrs[FLOW_ATTR]

    #
    # Flow bookkeeping
    #
    def add_arc_flow(
        self, amount: int, origin: NodeID, destination: NodeID, locked: int = 0
    ) -> None:
        """Move ``amount`` units of flow from origin to destination.

        Flow on the reverse arc ``destination -> origin`` is cancelled first;
        the remainder is added to the forward arc.

        Args:
            amount: Positive integer amount of flow.
            origin: Node the flow leaves.
            destination: Node the flow enters.
            locked: Part of the reverse arc's flow that must not be cancelled.

        Raises:
            InvalidArgumentError: If amount is not a positive integer.
            CapacityViolationError: If amount exceeds the residual capacity.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidArgumentError(
                f"Flow amount must be a positive integer, got {amount!r}."
            )
        cancellable = max(self.get_arc_flow(destination, origin) - locked, 0)
        residual = (
            self.get_arc_capacity(origin, destination)
            - self.get_arc_flow(origin, destination)
            + cancellable
        )
        if amount > residual:
            raise CapacityViolationError(
                f"Cannot push {amount} from '{origin}' to '{destination}': "
                f"residual capacity is {residual}."
            )

        remaining = amount
        if cancellable:
            reverse = self[destination][origin]
            cancelled = min(remaining, cancellable)
            reverse[FLOW_ATTR] -= cancelled
            remaining -= cancelled
        if remaining:
            self[origin][destination][FLOW_ATTR] += remaining

    def excess(self, n: NodeID) -> int:
        """Return total inflow minus total outflow at ``n``."""
        if n not in self:
            return 0
        inflow = sum(attrs[FLOW_ATTR] for attrs in self.pred[n].values())
        outflow = sum(attrs[FLOW_ATTR] for attrs in self.succ[n].values())
        return inflow - outflow

    def arcs(self) -> Iterator[ArcTuple]:
        """Yield ``(origin, destination, capacity, flow)`` for every arc."""
        for origin, destination, attrs in self.edges(data=True):
            yield origin, destination, attrs[CAPACITY_ATTR], attrs[FLOW_ATTR]

    def get_flows(self) -> Dict[Arc, int]:
        """Return a new dictionary of flow per arc."""
        return {
            (origin, destination): attrs[FLOW_ATTR]
            for origin, destination, attrs in self.edges(data=True)
        }

    def set_flows(self, flows: Mapping[Arc, int]) -> None:
        """Overwrite all arc flows; arcs missing from ``flows`` get zero flow.

        Args:
            flows: Mapping of ``(origin, destination)`` to flow.

        Raises:
            InvalidArgumentError: If an arc is unknown or a flow falls outside
                ``[0, capacity]``. Nothing is written in that case.
        """
        for (origin, destination), value in flows.items():
            if not self.has_edge(origin, destination):
                raise InvalidArgumentError(
                    f"Arc '{origin}' -> '{destination}' does not exist."
                )
            capacity = self[origin][destination][CAPACITY_ATTR]
            if not 0 <= value <= capacity:
                raise InvalidArgumentError(
                    f"Flow {value} on arc '{origin}' -> '{destination}' is outside "
                    f"[0, {capacity}]."
                )
        for origin, destination, attrs in self.edges(data=True):
            attrs[FLOW_ATTR] = flows.get((origin, destination), 0)

    def reset_flows(self) -> None:
        """Set the flow of every arc to zero."""
        for _origin, _destination, attrs in self.edges(data=True):
            attrs[FLOW_ATTR] = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert the network to a node-link dictionary suitable for JSON.

        Returns:
            Dict[str, Any]: Dictionary containing 'graph', 'nodes', and 'links' keys.
        """
        # Import here to avoid circular import
        from flowmatch.graph.io import graph_to_node_link

        return graph_to_node_link(self)
