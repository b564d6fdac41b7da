import logging

import networkx as nx
import pytest

from flowmatch.algorithms.push_relabel import PushRelabelMaxFlow
from flowmatch.algorithms.types import FlowSummary, SolverState
from flowmatch.config import SolverConfig
from flowmatch.exceptions import CapacityViolationError, InvalidArgumentError
from flowmatch.graph.flow_network import FlowNetwork
from flowmatch.types.base import NodeSelection


def _assert_valid_flow(network: FlowNetwork) -> None:
    """Capacity bounds hold on every arc and every inner node is balanced."""
    for _origin, _destination, capacity, flow in network.arcs():
        assert 0 <= flow <= capacity
    for n in network.nodes:
        if n not in (network.source, network.sink):
            assert network.excess(n) == 0


class TestPreflowPushBasic:
    """
    Tests that directly verify flow values on known small networks.
    """

    def test_line1(self, line1):
        """
        On line1 fixture:
         - Max flow from A to C is bounded by the B-C arc: 3.
        """
        solver = PushRelabelMaxFlow(line1)
        assert solver.preflow_push() == 3
        assert line1.get_arc_flow("A", "B") == 3
        assert line1.get_arc_flow("B", "C") == 3
        _assert_valid_flow(line1)

    def test_diamond(self, diamond):
        solver = PushRelabelMaxFlow(diamond)
        assert solver.preflow_push() == 6
        _assert_valid_flow(diamond)

    def test_clrs(self, clrs):
        solver = PushRelabelMaxFlow(clrs)
        assert solver.preflow_push() == 23
        _assert_valid_flow(clrs)

    def test_dead_end_returns_excess_to_source(self, dead_end):
        """
        Preflow pushed into the dead-end branch must flow back to the source.
        """
        solver = PushRelabelMaxFlow(dead_end)
        assert solver.preflow_push() == 1
        assert dead_end.get_arc_flow("S", "A") == 1
        assert dead_end.get_arc_flow("A", "X") == 0
        assert solver.active_nodes() == []
        _assert_valid_flow(dead_end)

    def test_disconnected(self, disconnected):
        solver = PushRelabelMaxFlow(disconnected)
        assert solver.preflow_push() == 0
        assert disconnected.get_arc_flow("S", "A") == 0
        _assert_valid_flow(disconnected)

    def test_terminals_only(self):
        net = FlowNetwork(source="s", sink="t")
        assert PushRelabelMaxFlow(net).preflow_push() == 0

    def test_direct_source_sink_arc(self):
        net = FlowNetwork(source="s", sink="t")
        net.set_arc_capacity(4, "s", "t")
        assert PushRelabelMaxFlow(net).preflow_push() == 4

    @pytest.mark.parametrize("selection", list(NodeSelection))
    def test_selection_orders_agree(self, clrs, selection):
        """Every active-node selection order reaches the same maximum."""
        solver = PushRelabelMaxFlow(clrs, SolverConfig(selection=selection))
        assert solver.preflow_push() == 23
        _assert_valid_flow(clrs)


class TestPreflowPushAgainstNetworkx:
    """
    Cross-check flow values against networkx on larger generated networks.
    """

    @pytest.mark.parametrize("seed", [1, 7, 42, 99])
    @pytest.mark.parametrize("selection", list(NodeSelection))
    def test_random_networks(self, seed, selection):
        generated = nx.gnp_random_graph(14, 0.3, seed=seed, directed=True)
        net = FlowNetwork(source=0, sink=13)
        for origin, destination in generated.edges:
            net.set_arc_capacity((origin * 7 + destination * 3) % 9 + 1, origin, destination)

        expected = nx.maximum_flow_value(net, 0, 13)
        solver = PushRelabelMaxFlow(net, SolverConfig(selection=selection))
        assert solver.preflow_push() == expected
        _assert_valid_flow(net)

    def test_antiparallel_arcs(self):
        net = FlowNetwork(source="s", sink="t")
        net.set_arc_capacity(3, "s", "a")
        net.set_arc_capacity(3, "s", "b")
        net.set_arc_capacity(2, "a", "b")
        net.set_arc_capacity(2, "b", "a")
        net.set_arc_capacity(1, "a", "t")
        net.set_arc_capacity(5, "b", "t")

        solver = PushRelabelMaxFlow(net)
        assert solver.preflow_push() == nx.maximum_flow_value(net, "s", "t") == 6
        _assert_valid_flow(net)


class TestPreflowPushReentry:
    """
    Verifies behavior of repeated runs, manual pushes and capacity changes.
    """

    def test_second_run_is_noop(self, clrs):
        solver = PushRelabelMaxFlow(clrs)
        solver.preflow_push()
        before = solver.get_state()

        assert solver.preflow_push() == 23
        after = solver.get_state()
        assert dict(after.flows) == dict(before.flows)
        assert dict(after.heights) == dict(before.heights)
        assert dict(after.excess) == dict(before.excess)

    def test_capacity_increase_then_rerun(self, line1):
        solver = PushRelabelMaxFlow(line1)
        assert solver.preflow_push() == 3

        line1.set_arc_capacity(10, "B", "C")
        assert solver.preflow_push() == 5
        _assert_valid_flow(line1)

    def test_capacity_increase_deep_in_network(self, clrs):
        solver = PushRelabelMaxFlow(clrs)
        solver.preflow_push()

        clrs.set_arc_capacity(30, "v3", "t")
        clrs.set_arc_capacity(20, "v1", "v3")
        expected = nx.maximum_flow_value(clrs, "s", "t")
        assert solver.preflow_push() == expected
        _assert_valid_flow(clrs)

    def test_manual_push_leaves_active_node(self, diamond):
        solver = PushRelabelMaxFlow(diamond)
        solver.push_flow(2, "A", "B")

        assert solver.get_excess("B") == 2
        assert solver.get_excess("A") == -2
        assert solver.active_nodes() == ["B"]

        assert solver.preflow_push() == 6
        _assert_valid_flow(diamond)

    def test_manual_push_ignores_admissibility(self, line1):
        solver = PushRelabelMaxFlow(line1)
        assert solver.get_height("A") == solver.get_height("B") == 0
        solver.push_flow(1, "A", "B")
        solver.push_flow(1, "B", "C")
        assert solver.flow_value == 1
        assert solver.active_nodes() == []

    def test_manual_push_beyond_residual_capacity(self, line1):
        solver = PushRelabelMaxFlow(line1)
        with pytest.raises(CapacityViolationError, match="residual capacity is 3"):
            solver.push_flow(4, "B", "C")
        assert line1.get_arc_flow("B", "C") == 0
        assert solver.get_excess("B") == 0

    @pytest.mark.parametrize("amount", [0, -1, 1.5, True])
    def test_manual_push_invalid_amount(self, line1, amount):
        solver = PushRelabelMaxFlow(line1)
        with pytest.raises(InvalidArgumentError):
            solver.push_flow(amount, "A", "B")

    def test_manual_push_on_reverse_arc_cancels_flow(self, line1):
        solver = PushRelabelMaxFlow(line1)
        solver.preflow_push()
        solver.push_flow(2, "C", "B")

        assert line1.get_arc_flow("B", "C") == 1
        assert solver.get_excess("B") == 2
        assert solver.flow_value == 1

        assert solver.preflow_push() == 3
        _assert_valid_flow(line1)


class TestPinnedFlow:
    def test_pinned_flow_is_never_cancelled(self):
        # s -> a -> x -> t and s -> b -> x; b can only use x, a could use y.
        net = FlowNetwork(source="s", sink="t")
        for origin, destination in [
            ("s", "a"),
            ("s", "b"),
            ("a", "x"),
            ("a", "y"),
            ("b", "x"),
            ("x", "t"),
            ("y", "t"),
        ]:
            net.set_arc_capacity(1, origin, destination)

        solver = PushRelabelMaxFlow(net)
        for origin, destination in [("s", "b"), ("b", "x"), ("x", "t")]:
            solver.push_flow(1, origin, destination, pin=True)

        assert solver.preflow_push() == 2
        assert net.get_arc_flow("b", "x") == 1
        assert net.get_arc_flow("a", "y") == 1
        assert solver.get_pinned("b", "x") == 1

    def test_pin_requires_forward_capacity(self, line1):
        solver = PushRelabelMaxFlow(line1)
        solver.preflow_push()
        with pytest.raises(CapacityViolationError):
            solver.push_flow(1, "C", "B", pin=True)

    def test_pinned_path_can_block_a_larger_flow(self):
        """Pins act as lower bounds, so the maximum is taken around them."""
        net = FlowNetwork(source="s", sink="t")
        for origin, destination in [
            ("s", "a"),
            ("s", "b"),
            ("a", "x"),
            ("a", "y"),
            ("b", "y"),
            ("x", "t"),
            ("y", "t"),
        ]:
            net.set_arc_capacity(1, origin, destination)

        solver = PushRelabelMaxFlow(net)
        for origin, destination in [("s", "a"), ("a", "y"), ("y", "t")]:
            solver.push_flow(1, origin, destination, pin=True)

        assert solver.preflow_push() == 1
        assert net.get_arc_flow("a", "y") == 1
        assert net.get_arc_flow("b", "y") == 0


class TestSolverState:
    def test_state_is_independent_copy(self, diamond):
        solver = PushRelabelMaxFlow(diamond)
        state = solver.get_state()
        solver.preflow_push()

        assert all(flow == 0 for flow in state.flows.values())
        assert dict(state.excess) == {}
        with pytest.raises(TypeError):
            state.flows[("A", "B")] = 1  # type: ignore[index]

    def test_restore_discards_progress(self, clrs):
        solver = PushRelabelMaxFlow(clrs)
        solver.push_flow(4, "s", "v1")
        state = solver.get_state()

        solver.preflow_push()
        assert solver.flow_value == 23

        solver.restore(state)
        assert solver.flow_value == 0
        assert clrs.get_arc_flow("s", "v1") == 4
        assert solver.get_excess("v1") == 4
        assert solver.active_nodes() == ["v1"]

        assert solver.preflow_push() == 23
        _assert_valid_flow(clrs)

    def test_restore_keeps_capacities(self, line1):
        solver = PushRelabelMaxFlow(line1)
        state = solver.get_state()
        line1.set_arc_capacity(7, "B", "C")

        solver.restore(state)
        assert line1.get_arc_capacity("B", "C") == 7

    def test_restore_rejects_foreign_object(self, line1):
        solver = PushRelabelMaxFlow(line1)
        with pytest.raises(InvalidArgumentError, match="Expected a SolverState"):
            solver.restore({"flows": {}})  # type: ignore[arg-type]

    def test_state_type(self, line1):
        assert isinstance(PushRelabelMaxFlow(line1).get_state(), SolverState)

    def test_reset(self, line1):
        solver = PushRelabelMaxFlow(line1)
        solver.preflow_push()
        solver.reset()
        assert solver.flow_value == 0
        assert solver.get_height("A") == 0
        assert solver.preflow_push() == 3


class TestSummary:
    def test_summary_min_cut(self, line1):
        solver = PushRelabelMaxFlow(line1)
        solver.preflow_push()
        summary = solver.summary()

        assert isinstance(summary, FlowSummary)
        assert summary.total_flow == 3
        assert summary.reachable == {"A", "B"}
        assert summary.min_cut == [("B", "C")]
        assert summary.edge_flow[("A", "B")] == 3
        assert summary.residual_cap[("A", "B")] == 2

    def test_summary_cut_capacity_equals_flow(self, clrs):
        solver = PushRelabelMaxFlow(clrs)
        solver.preflow_push()
        summary = solver.summary()

        cut_capacity = sum(clrs.get_arc_capacity(*arc) for arc in summary.min_cut)
        assert cut_capacity == summary.total_flow == 23


def test_debug_logging_reports_flow_value(caplog, line1):
    with caplog.at_level(logging.DEBUG, logger="flowmatch"):
        PushRelabelMaxFlow(line1).preflow_push()
    assert "flow value is 3" in caplog.text


def test_solver_requires_network():
    with pytest.raises(InvalidArgumentError):
        PushRelabelMaxFlow(None)  # type: ignore[arg-type]
