"""Shared enums and type aliases."""

from flowmatch.types.base import NodeSelection

__all__ = ["NodeSelection"]
