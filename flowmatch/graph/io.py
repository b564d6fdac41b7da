"""Serialization helpers for `FlowNetwork`."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from flowmatch.graph.flow_network import FlowNetwork


def graph_to_node_link(graph: FlowNetwork) -> Dict[str, Any]:
    """
    Converts a FlowNetwork into a node-link dict representation.

    Node identities are rendered with ``str()`` so the result can be passed
    to ``json.dumps`` regardless of the caller's value types.

    The returned dict has the following structure:
        {
            "graph": { ... top-level graph attributes ... },
            "nodes": [
                {"id": "<node>", "attr": {"terminal": "source" | "sink" | None}},
                ...
            ],
            "links": [
                {
                    "source": <indexed_node>,
                    "target": <indexed_node>,
                    "attr": {"capacity": ..., "flow": ...}
                },
                ...
            ]
        }
    """
    node_map = {node_id: num for num, node_id in enumerate(graph.nodes)}

    def _terminal(node_id: Any) -> Any:
        if node_id == graph.source:
            return "source"
        if node_id == graph.sink:
            return "sink"
        return None

    return {
        "graph": dict(graph.graph),
        "nodes": [
            {"id": str(node_id), "attr": {"terminal": _terminal(node_id)}}
            for node_id in node_map
        ],
        "links": [
            {
                "source": node_map[origin],
                "target": node_map[destination],
                "attr": {"capacity": capacity, "flow": flow},
            }
            for origin, destination, capacity, flow in graph.arcs()
        ],
    }
