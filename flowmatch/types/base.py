"""Base enums for flowmatch algorithms."""

from __future__ import annotations

from enum import IntEnum


class NodeSelection(IntEnum):
    """Order in which the push-relabel solver discharges active nodes.

    The choice only affects performance; every order reaches the same
    maximum flow value.
    """

    #: First-in, first-out queue of active nodes.
    FIFO = 1
    #: Always discharge the active node with the greatest height.
    HIGHEST_LABEL = 2

    @classmethod
    def from_string(cls, value: str) -> "NodeSelection":
        """Parse a string into a NodeSelection enum value.

        Args:
            value: Case-insensitive string name (e.g., "fifo", "HIGHEST_LABEL").

        Returns:
            The corresponding NodeSelection enum member.

        Raises:
            ValueError: If the string doesn't match any enum member.
        """
        try:
            return cls[value.upper()]
        except KeyError:
            valid = ", ".join(e.name for e in cls)
            raise ValueError(
                f"Invalid node selection '{value}'. Valid values are: {valid}"
            ) from None
