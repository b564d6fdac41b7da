"""Configuration classes for flowmatch components."""

from dataclasses import dataclass

from flowmatch.types.base import NodeSelection


@dataclass
class SolverConfig:
    """Configuration for the push-relabel solver and the matching facade."""

    # Order in which active nodes are discharged
    selection: NodeSelection = NodeSelection.FIFO

    # Quantity assumed for each V value when a plain set is given
    default_quantity: int = 1


# Global configuration instance
SOLVER_CONFIG = SolverConfig()
