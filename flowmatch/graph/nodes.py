"""Node identities used as keys of the flow network.

A node is either a caller value tagged with the side of the bipartite graph it
belongs to (``ValueNode``) or one of the two terminals (``SOURCE``, ``SINK``).
Both are immutable and hash by value, so they can key dictionaries and
``networkx`` adjacency structures directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable, Optional, Union

from flowmatch.exceptions import InvalidArgumentError


class Side(Enum):
    """Side of the bipartite graph a caller value belongs to."""

    U = "u"
    V = "v"


class Terminal(Enum):
    """Source and sink terminals of a flow network."""

    SOURCE = "source"
    SINK = "sink"

    def __repr__(self) -> str:
        return self.name.capitalize()

    def __str__(self) -> str:
        return self.__repr__()


@dataclass(frozen=True)
class ValueNode:
    """Wraps a caller-supplied hashable value.

    Attributes:
        side: Side of the bipartite graph, or None for a free-standing node.
        value: The wrapped caller value.
    """

    side: Optional[Side]
    value: Hashable

    def __repr__(self) -> str:
        if self.side is None:
            return f"{self.value!r}"
        return f"{self.side.value}:{self.value!r}"


Node = Union[ValueNode, Terminal]

SOURCE = Terminal.SOURCE
SINK = Terminal.SINK


def node(value: Any, side: Optional[Side] = None) -> ValueNode:
    """Wrap ``value`` as a node identity.

    Args:
        value: Hashable caller value.
        side: Optional side tag; values on different sides never compare equal.

    Returns:
        ValueNode: The wrapped node.

    Raises:
        InvalidArgumentError: If ``value`` is not hashable.
    """
    try:
        hash(value)
    except TypeError:
        raise InvalidArgumentError(f"Value {value!r} is not hashable.") from None
    return ValueNode(side, value)


def u_node(value: Any) -> ValueNode:
    """Wrap a U-side value."""
    return node(value, Side.U)


def v_node(value: Any) -> ValueNode:
    """Wrap a V-side value."""
    return node(value, Side.V)


def is_terminal(n: Node) -> bool:
    return isinstance(n, Terminal)
