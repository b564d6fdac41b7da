"""Maximum-flow computation via the preflow-push (push-relabel) method.

`PushRelabelMaxFlow` works in place on a `FlowNetwork`. Each node carries a
height label and an excess; nodes other than the terminals with positive
excess are active and get discharged by pushing along admissible residual
arcs (``height(a) == height(b) + 1``) or by relabeling.

Beyond the textbook algorithm the solver supports:
  - Manual pushes (`push_flow`) that bypass admissibility, optionally pinning
    the pushed flow so later runs never cancel it.
  - Re-entry: `preflow_push` may be called again after manual pushes,
    capacity increases or a `restore`. If the stored heights no longer form a
    valid labeling they are recomputed from residual distances first.
  - Snapshots (`get_state` / `restore`) of flows, excesses, heights and pins.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, Dict, Hashable, Iterator, List, Optional, Tuple

from flowmatch.algorithms.types import Arc, FlowSummary, SolverState
from flowmatch.config import SOLVER_CONFIG, SolverConfig
from flowmatch.exceptions import InvalidArgumentError, MatchingError
from flowmatch.graph.flow_network import FlowNetwork
from flowmatch.logging import get_logger
from flowmatch.types.base import NodeSelection

LOGGER = get_logger(__name__)

NodeID = Hashable


class PushRelabelMaxFlow:
    """Push-relabel maximum-flow solver bound to one `FlowNetwork`.

    The network owns capacities and flows; the solver owns heights, excesses
    and pins. Both are mutated in place.

    Example:
        >>> net = FlowNetwork(source="s", sink="t")
        >>> net.set_arc_capacity(3, "s", "a")
        >>> net.set_arc_capacity(2, "a", "t")
        >>> PushRelabelMaxFlow(net).preflow_push()
        2
    """

    def __init__(
        self, network: FlowNetwork, config: Optional[SolverConfig] = None
    ) -> None:
        """Bind the solver to ``network``.

        Args:
            network: The network to solve. Existing flow is kept; excesses
                are derived from it.
            config: Solver configuration; defaults to ``SOLVER_CONFIG``.
        """
        if network is None:
            raise InvalidArgumentError("Network must not be None.")
        self._network = network
        self._config = config if config is not None else SOLVER_CONFIG
        self._heights: Dict[NodeID, int] = {}
        self._excess: Dict[NodeID, int] = {
            n: network.excess(n) for n in network.nodes if network.excess(n)
        }
        self._pinned: Dict[Arc, int] = {}

    @property
    def network(self) -> FlowNetwork:
        return self._network

    @property
    def config(self) -> SolverConfig:
        return self._config

    @property
    def flow_value(self) -> int:
        """Net flow currently delivered to the sink."""
        return self._network.excess(self._network.sink)

    def get_height(self, n: NodeID) -> int:
        return self._heights.get(n, 0)

    def get_excess(self, n: NodeID) -> int:
        return self._excess.get(n, 0)

    def get_pinned(self, origin: NodeID, destination: NodeID) -> int:
        return self._pinned.get((origin, destination), 0)

    def active_nodes(self) -> List[NodeID]:
        """Return non-terminal nodes with positive excess, in network order."""
        return [n for n in self._network.nodes if self._is_active(n)]

    #
    # Algorithm
    #
    def preflow_push(self) -> int:
        """Run push-relabel until no active node remains.

        Source arcs whose heads sit too low for a valid labeling are
        saturated first; every resulting active node is then discharged in
        the order chosen by ``config.selection``. Calling this again at a
        maximum flow changes nothing.

        Returns:
            int: Flow value delivered to the sink.
        """
        network = self._network
        source = network.source
        node_count = network.number_of_nodes()
        self._heights[source] = node_count

        if not self._labels_valid():
            LOGGER.debug("Height labels are stale; recomputing from residual distances")
            self._global_relabel()

        saturated = 0
        for head, residual in list(self._residual_neighbors(source)):
            if self.get_height(head) < node_count - 1:
                self._push(residual, source, head)
                saturated += residual
        LOGGER.debug(
            f"Preflow initialized: {saturated} units pushed out of source, "
            f"{len(self.active_nodes())} active nodes"
        )

        if self._config.selection == NodeSelection.HIGHEST_LABEL:
            relabels = self._run_highest_label()
        else:
            relabels = self._run_fifo()

        LOGGER.debug(
            f"Push-relabel finished after {relabels} relabels; flow value is "
            f"{self.flow_value}"
        )
        return self.flow_value

    def push_flow(
        self, amount: int, origin: NodeID, destination: NodeID, pin: bool = False
    ) -> None:
        """Force ``amount`` units of flow from origin to destination.

        The push is not gated by admissibility. Excesses are updated the way
        a regular push updates them; a later `preflow_push` picks up any node
        left active.

        Args:
            amount: Positive integer amount of flow.
            origin: Node the flow leaves.
            destination: Node the flow enters.
            pin: If True, the flow must travel on the forward arc and is
                recorded as pinned, so `preflow_push` never cancels it. Pins
                should form complete source-to-sink paths.

        Raises:
            InvalidArgumentError: If amount is not a positive integer.
            CapacityViolationError: If amount exceeds the residual capacity
                (the forward residual capacity when pinning).
        """
        if pin:
            locked = self._network.get_arc_flow(destination, origin)
        else:
            locked = self.get_pinned(destination, origin)
        self._network.add_arc_flow(amount, origin, destination, locked=locked)
        self._account(amount, origin, destination)
        if pin:
            key = (origin, destination)
            self._pinned[key] = self._pinned.get(key, 0) + amount
        LOGGER.debug(
            f"Manual push of {amount} from '{origin}' to '{destination}'"
            + (" (pinned)" if pin else "")
        )

    def reset(self) -> None:
        """Drop all flow, heights, excesses and pins."""
        self._network.reset_flows()
        self._heights.clear()
        self._excess.clear()
        self._pinned.clear()

    #
    # Snapshots
    #
    def get_state(self) -> SolverState:
        """Capture an independent, read-only snapshot of the solver progress."""
        return SolverState.capture(
            self._network.get_flows(), self._excess, self._heights, self._pinned
        )

    def restore(self, state: SolverState) -> None:
        """Overwrite flows, excesses, heights and pins with ``state``.

        Arc capacities are left as they are.

        Args:
            state: A snapshot returned by `get_state`.

        Raises:
            InvalidArgumentError: If ``state`` is not a `SolverState` or its
                flows do not fit the network's arcs.
        """
        if not isinstance(state, SolverState):
            raise InvalidArgumentError(
                f"Expected a SolverState, got {type(state).__name__}."
            )
        self._network.set_flows(state.flows)
        self._excess = dict(state.excess)
        self._heights = dict(state.heights)
        self._pinned = dict(state.pinned)

    def summary(self) -> FlowSummary:
        """Return flows, residual capacities and the min cut of the current flow."""
        network = self._network
        reachable = {network.source}
        queue: Deque[NodeID] = deque([network.source])
        while queue:
            current = queue.popleft()
            for neighbor, _residual in self._residual_neighbors(current):
                if neighbor not in reachable:
                    reachable.add(neighbor)
                    queue.append(neighbor)

        edge_flow: Dict[Arc, int] = {}
        residual_cap: Dict[Arc, int] = {}
        min_cut: List[Arc] = []
        for origin, destination, capacity, flow in network.arcs():
            edge_flow[(origin, destination)] = flow
            residual_cap[(origin, destination)] = capacity - flow
            if capacity > 0 and origin in reachable and destination not in reachable:
                min_cut.append((origin, destination))

        return FlowSummary(
            total_flow=self.flow_value,
            edge_flow=edge_flow,
            residual_cap=residual_cap,
            reachable=reachable,
            min_cut=min_cut,
        )

    #
    # Internals
    #
    def _is_active(self, n: NodeID) -> bool:
        if n == self._network.source or n == self._network.sink:
            return False
        return self._excess.get(n, 0) > 0

    def _residual_neighbors(self, n: NodeID) -> Iterator[Tuple[NodeID, int]]:
        for other, residual in self._network.residual_neighbors(n):
            residual -= self.get_pinned(other, n)
            if residual > 0:
                yield other, residual

    def _account(self, amount: int, origin: NodeID, destination: NodeID) -> None:
        self._excess[origin] = self._excess.get(origin, 0) - amount
        self._excess[destination] = self._excess.get(destination, 0) + amount

    def _push(self, amount: int, origin: NodeID, destination: NodeID) -> None:
        self._network.add_arc_flow(
            amount, origin, destination, locked=self.get_pinned(destination, origin)
        )
        self._account(amount, origin, destination)

    def _labels_valid(self) -> bool:
        """Check ``height(a) <= height(b) + 1`` on every residual arc.

        Arcs out of the source are skipped; `preflow_push` saturates those.
        """
        source = self._network.source
        for tail in self._network.nodes:
            if tail == source:
                continue
            tail_height = self.get_height(tail)
            for head, _residual in self._residual_neighbors(tail):
                if tail_height > self.get_height(head) + 1:
                    return False
        return True

    def _global_relabel(self) -> None:
        """Set heights to residual distances: to the sink, else ``n`` + distance to the source."""
        network = self._network
        source, sink = network.source, network.sink
        node_count = network.number_of_nodes()

        heights: Dict[NodeID, int] = {source: node_count, sink: 0}
        # Sink first so nodes that can reach it never get a source-based label
        for root in (sink, source):
            queue: Deque[NodeID] = deque([root])
            while queue:
                current = queue.popleft()
                for tail in network.get_predecessors(current):
                    if tail in heights:
                        continue
                    residual = network.residual_capacity(tail, current)
                    if residual - self.get_pinned(current, tail) <= 0:
                        continue
                    heights[tail] = heights[current] + 1
                    queue.append(tail)

        for n in network.nodes:
            heights.setdefault(n, 2 * node_count)
        self._heights = heights

    def _discharge(self, n: NodeID, on_activate: Callable[[NodeID], None]) -> int:
        """Push or relabel ``n`` until its excess is gone; return the relabel count."""
        relabels = 0
        while self._excess.get(n, 0) > 0:
            height = self.get_height(n)
            for neighbor, residual in list(self._residual_neighbors(n)):
                if height != self.get_height(neighbor) + 1:
                    continue
                amount = min(self._excess[n], residual)
                was_active = self._is_active(neighbor)
                self._push(amount, n, neighbor)
                if not was_active and self._is_active(neighbor):
                    on_activate(neighbor)
                if self._excess[n] == 0:
                    break

            if self._excess[n] > 0:
                self._relabel(n)
                relabels += 1
        return relabels

    def _relabel(self, n: NodeID) -> None:
        neighbors = [self.get_height(other) for other, _ in self._residual_neighbors(n)]
        if not neighbors:
            raise MatchingError(
                f"Node '{n}' holds excess {self._excess[n]} but has no residual arcs."
            )
        self._heights[n] = 1 + min(neighbors)

    def _run_fifo(self) -> int:
        active: Deque[NodeID] = deque(self.active_nodes())
        queued = set(active)

        def _enqueue(n: NodeID) -> None:
            if n not in queued:
                queued.add(n)
                active.append(n)

        relabels = 0
        while active:
            current = active.popleft()
            queued.discard(current)
            relabels += self._discharge(current, _enqueue)
        return relabels

    def _run_highest_label(self) -> int:
        relabels = 0
        while True:
            candidates = self.active_nodes()
            if not candidates:
                return relabels
            current = max(candidates, key=self.get_height)
            relabels += self._discharge(current, lambda _n: None)
